"""Resolution of content addresses into typed objects."""

import logging
from typing import Type, Union

from gitresolve.core.builder import ObjectBuilder
from gitresolve.exceptions import UnexpectedTypeError
from gitresolve.objects import GitObject, ObjectKind, as_kind
from gitresolve.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

ExpectedKind = Union[ObjectKind, Type[GitObject], str, None]


class ObjectResolver:
    """Fetches records by address and builds them into domain objects.

    Nothing is cached: every call reads and decodes the record again.
    """

    def __init__(self, object_store: ObjectStore, builder: ObjectBuilder) -> None:
        self.object_store = object_store
        self.builder = builder

    def resolve(self, address: str, expected_kind: ExpectedKind = None) -> GitObject:
        """Read the object at ``address`` and check its kind.

        Args:
            address: Content address of the object
            expected_kind: Required kind (ObjectKind, domain class or type
                name); None accepts any kind

        Raises:
            MalformedIdentifierError: If address is not a valid content address
            ObjectNotFoundError: If the object doesn't exist
            DecodeError: If the payload cannot be parsed
            UnexpectedTypeError: If the object is not of the expected kind
        """
        kind = as_kind(expected_kind)

        record = self.object_store.read(address)
        obj = self.builder.build_from(record)

        if kind is not None and obj.kind is not kind:
            raise UnexpectedTypeError(f"Object {obj.sha} is a {obj.kind}, not a {kind}")

        logger.debug("Resolved %s to %s", address, obj.kind)
        return obj
