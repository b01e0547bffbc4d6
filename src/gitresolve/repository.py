"""Repository facade.

``Repository`` is the single entry point callers use: it owns the backing
stores for its lifetime and composes reference lookups, object resolution
and object building into identifier resolution and tag creation.
"""

import logging
from dataclasses import dataclass
from functools import wraps
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar, Union

from gitresolve.constants import HEADS_PREFIX, REFS_PREFIX, REMOTES_PREFIX, TAGS_PREFIX
from gitresolve.core import ObjectBuilder, ObjectResolver, ReferenceManager
from gitresolve.core.resolver import ExpectedKind
from gitresolve.exceptions import InvalidReferenceNameError, RepositoryClosedError
from gitresolve.objects import GitObject, ObjectKind, Signature, Tag, as_kind, is_valid_address
from gitresolve.storage import (
    Reference,
    RepositoryDetails,
    RepositoryLifecycleManager,
    create_tag,
    init_repository,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class Header:
    """Kind and length of a stored object."""

    address: str
    kind: ObjectKind
    length: int


@dataclass(frozen=True)
class RawObject:
    """A stored object's header and undecoded payload."""

    header: Header
    payload: bytes


def requires_open(func: Callable[..., R]) -> Callable[..., R]:
    """Decorate a Repository method to refuse calls after close()."""

    @wraps(func)
    def _verify_open(self: "Repository", *args, **kwargs) -> R:
        if self._lifecycle.is_disposed:
            msg = f"Repository {self.details.repository_directory} has been closed"
            raise RepositoryClosedError(msg)
        return func(self, *args, **kwargs)

    return _verify_open


def reference_candidates(name: str) -> Iterator[str]:
    """Yield the full reference names a short name may refer to, in priority order."""
    yield name
    yield REFS_PREFIX + name
    yield TAGS_PREFIX + name
    yield HEADS_PREFIX + name
    yield REMOTES_PREFIX + name
    yield REMOTES_PREFIX + name + "/HEAD"


class Repository:
    """A repository opened from disk.

    Objects returned by this class hold their own copies of payload bytes
    and stay valid after ``close()``; the repository itself does not.

    Example:
        >>> with Repository("path/to/work") as repo:
        ...     tag = repo.apply_tag(commit_sha, "v1.0", "Release", signature)
        ...     assert repo.resolve("v1.0", Tag) == tag
    """

    def __init__(self, path: Union[str, Path]) -> None:
        """Open the repository at ``path``.

        Args:
            path: Working directory containing ``.git``, or a repository
                directory

        Raises:
            RepositoryNotFoundError: If no repository is found at ``path``
        """
        self._lifecycle = RepositoryLifecycleManager(path)
        self._builder = ObjectBuilder()
        self._resolver = ObjectResolver(self._lifecycle.object_store, self._builder)
        self._refs = ReferenceManager(self._lifecycle.ref_store)

    @staticmethod
    def init(path: Union[str, Path], is_bare: bool = False) -> str:
        """Create a repository and return its repository directory."""
        details = init_repository(path, is_bare)
        return str(details.repository_directory)

    @property
    def details(self) -> RepositoryDetails:
        return self._lifecycle.details

    @property
    def refs(self) -> ReferenceManager:
        return self._refs

    @requires_open
    def resolve(self, identifier: str, expected_kind: ExpectedKind = None) -> Optional[GitObject]:
        """Resolve a content address or reference name to an object.

        A well-formed content address is read directly and a missing object
        is an error. Anything else is looked up as a reference name, trying
        ``<name>``, ``refs/<name>``, ``refs/tags/<name>``,
        ``refs/heads/<name>``, ``refs/remotes/<name>`` and
        ``refs/remotes/<name>/HEAD`` in that order; if none exists the
        result is None.

        Args:
            identifier: Content address or reference name
            expected_kind: Required kind (ObjectKind, domain class or type
                name); None accepts any kind

        Returns:
            The resolved object, or None if no reference matches

        Raises:
            ObjectNotFoundError: If the address (or a reference's target)
                doesn't exist
            UnexpectedTypeError: If the object is not of the expected kind
            DecodeError: If the object cannot be decoded
        """
        kind = as_kind(expected_kind)

        if is_valid_address(identifier):
            return self._resolver.resolve(identifier, kind)

        reference = self._lookup_short_name(identifier)
        if reference is None:
            logger.debug("No reference matches %r", identifier)
            return None

        return self._resolver.resolve(reference.target, kind)

    @requires_open
    def apply_tag(self, target_id: str, tag_name: str, message: str, signature: Signature) -> Tag:
        """Create an annotated tag named ``tag_name`` on ``target_id``.

        Both validations run before anything is written: the tag name must
        not already be bound and the target must exist.

        Args:
            target_id: Content address of the object to tag
            tag_name: Short tag name; the tag is bound to ``refs/tags/<tag_name>``
            message: Tag message
            signature: Tagger identity; it is not retained

        Returns:
            The new Tag

        Raises:
            InvalidReferenceNameError: If a reference already occupies the tag name
            MalformedReferenceNameError: If the tag name is not a valid ref name
            MalformedIdentifierError: If target_id is not a content address
            ObjectNotFoundError: If the target object doesn't exist
        """
        ref_name = TAGS_PREFIX + tag_name
        if self._refs.lookup(ref_name, throw_if_not_found=False) is not None:
            raise InvalidReferenceNameError(f"Tag already exists: {tag_name}")

        object_store = self._lifecycle.object_store
        target = object_store.lookup(target_id)

        tag_address = create_tag(
            object_store,
            self._lifecycle.ref_store,
            tag_name,
            target.address,
            target.kind,
            signature.encode(),
            message,
        )

        return self._resolver.resolve(tag_address, ObjectKind.TAG)

    @requires_open
    def read_header(self, address: str) -> Header:
        """Read the kind and length of an object without its payload.

        Raises:
            MalformedIdentifierError: If address is not a content address
            ObjectNotFoundError: If the object doesn't exist
        """
        record = self._lifecycle.object_store.read_header(address)
        return Header(record.address, record.kind, record.length)

    @requires_open
    def read(self, address: str) -> RawObject:
        """Read an object's header and raw payload.

        Raises:
            MalformedIdentifierError: If address is not a content address
            ObjectNotFoundError: If the object doesn't exist
        """
        record = self._lifecycle.object_store.read(address)
        return RawObject(Header(record.address, record.kind, record.length), record.payload)

    @requires_open
    def exists(self, address: str) -> bool:
        return self._lifecycle.object_store.exists(address)

    def close(self) -> None:
        """Release the backing stores. Further calls raise RepositoryClosedError."""
        self._lifecycle.dispose()

    def __enter__(self) -> "Repository":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Repository({str(self.details.repository_directory)!r})"

    def _lookup_short_name(self, name: str) -> Optional[Reference]:
        for candidate in reference_candidates(name):
            if not self._refs.is_valid_name(candidate):
                continue
            reference = self._refs.lookup(candidate, throw_if_not_found=False, follow=True)
            if reference is not None:
                return reference
        return None
