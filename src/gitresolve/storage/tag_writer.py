"""Annotated tag creation primitive."""

import logging

from gitresolve.constants import TAGS_PREFIX
from gitresolve.objects import ObjectKind, encode_tag
from gitresolve.storage.object_store import ObjectStore
from gitresolve.storage.ref_store import RefStore

logger = logging.getLogger(__name__)


def create_tag(
    object_store: ObjectStore,
    ref_store: RefStore,
    name: str,
    target: str,
    target_kind: ObjectKind,
    tagger: bytes,
    message: str,
) -> str:
    """Write a tag record and bind ``refs/tags/<name>`` to it.

    The tag ref is created without force, so an existing tag of the same
    name makes this call fail even if the caller checked beforehand.

    Args:
        object_store: Store receiving the tag record
        ref_store: Store receiving the tag reference
        name: Short tag name (without ``refs/tags/``)
        target: Address of the tagged object
        target_kind: Kind of the tagged object
        tagger: Encoded tagger identity line
        message: Tag message

    Returns:
        Address of the new tag record

    Raises:
        MalformedReferenceNameError: If the tag name is not a valid ref component
        InvalidReferenceNameError: If an existing ref is a prefix or child of the tag ref
        ReferenceExistsError: If ``refs/tags/<name>`` already exists
        ReferenceLockedError: If the tag ref is being written concurrently
    """
    ref_name = TAGS_PREFIX + name
    # A bad or conflicting name must fail before the record is written
    ref_store.check_available(ref_name)

    payload = encode_tag(target, target_kind, name, tagger, message)
    address = object_store.write(ObjectKind.TAG, payload)
    ref_store.create(ref_name, address)

    logger.info("Created tag %s (%s) -> %s %s", name, address, target_kind, target)
    return address
