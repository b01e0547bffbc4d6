"""Exception hierarchy for gitresolve.

Every failure raised by the public surface derives from GitResolveError so
callers can catch the whole family, while the concrete classes let them tell
bad input, missing objects, type mismatches and naming conflicts apart.
"""


class GitResolveError(Exception):
    """Base exception for all gitresolve errors."""


class RepositoryNotFoundError(GitResolveError):
    """Raised when a path does not contain a repository."""


class RepositoryClosedError(GitResolveError):
    """Raised when a closed repository is used."""


class MalformedIdentifierError(GitResolveError, ValueError):
    """Raised when an identifier is not a well-formed content address."""


class MalformedReferenceNameError(MalformedIdentifierError):
    """Raised when a reference name violates the ref naming rules."""


class ObjectNotFoundError(GitResolveError, LookupError):
    """Raised when a mandatory object or reference lookup finds nothing."""


class UnexpectedTypeError(GitResolveError, TypeError):
    """Raised when a resolved object is not of the kind the caller expected."""


class DecodeError(GitResolveError):
    """Raised when a raw payload cannot be parsed per its declared kind."""


class CorruptObjectError(GitResolveError):
    """Raised when a stored object envelope is unreadable or fails its hash check."""


class InvalidReferenceNameError(GitResolveError):
    """Raised when a reference name is already bound to an existing reference."""


class ReferenceExistsError(InvalidReferenceNameError):
    """Raised by the reference store when creating over an existing reference."""


class ReferenceLockedError(GitResolveError):
    """Raised when another writer holds the lock file of a reference."""
