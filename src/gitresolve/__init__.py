"""gitresolve - typed access to a git object database.

gitresolve resolves content addresses and reference names into decoded
commits, trees, blobs and tags, and creates annotated tags bound to
``refs/tags/<name>``.
"""

__version__ = "0.1.0"
__author__ = "gitresolve Contributors"

from gitresolve.exceptions import (
    DecodeError,
    GitResolveError,
    InvalidReferenceNameError,
    MalformedIdentifierError,
    ObjectNotFoundError,
    UnexpectedTypeError,
)
from gitresolve.objects import Blob, Commit, ObjectKind, Signature, Tag, Tree, TreeEntry
from gitresolve.repository import Header, RawObject, Repository

__all__ = [
    "__version__",
    "__author__",
    "Repository",
    "Header",
    "RawObject",
    "ObjectKind",
    "Signature",
    "Blob",
    "Commit",
    "Tag",
    "Tree",
    "TreeEntry",
    "GitResolveError",
    "MalformedIdentifierError",
    "ObjectNotFoundError",
    "UnexpectedTypeError",
    "DecodeError",
    "InvalidReferenceNameError",
]
