"""Loose-object database.

Objects are stored the way git stores loose objects: the envelope
``<type> <length>\\0<payload>`` is hashed with SHA-1 to obtain the content
address and written zlib-compressed under ``objects/<hash[:2]>/<hash[2:]>``.
"""

import hashlib
import logging
import os
import tempfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from gitresolve.constants import (
    HASH_ALGORITHM,
    HEADER_READ_CHUNK,
    ZLIB_LEVEL,
)
from gitresolve.exceptions import (
    CorruptObjectError,
    MalformedIdentifierError,
    ObjectNotFoundError,
    UnexpectedTypeError,
)
from gitresolve.objects import ObjectKind, is_valid_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawRecord:
    """Decoded envelope of a stored object.

    Attributes:
        address: Content address of the record
        kind: Declared object kind
        length: Payload length in bytes
        payload: Payload bytes, or None for a header-only read
    """

    address: str
    kind: ObjectKind
    length: int
    payload: Optional[bytes] = None

    def __post_init__(self) -> None:
        if self.payload is not None and len(self.payload) != self.length:
            raise ValueError(
                f"Payload length {len(self.payload)} does not match declared length {self.length}"
            )


@dataclass(frozen=True)
class ObjectHandle:
    """Address and kind of an object known to exist in the store."""

    address: str
    kind: ObjectKind


class ObjectStore:
    """Content-addressable storage for git objects.

    Storage layout:
        <repo>/objects/<hash[:2]>/<hash[2:]>      # zlib(<type> <len>\\0<payload>)

    Attributes:
        objects_dir: Path to the objects directory

    Example:
        >>> store = ObjectStore(Path(".git/objects"))
        >>> address = store.write(ObjectKind.BLOB, b"")
        >>> address
        'e69de29bb2d1d6434b8b29ae775ad8c2e48c5391'
        >>> store.read(address).length
        0
    """

    def __init__(self, objects_dir: Path) -> None:
        """Initialize the object store.

        Args:
            objects_dir: Path to the objects directory

        Raises:
            ValueError: If objects_dir doesn't exist
        """
        self.objects_dir = Path(objects_dir)

        if not self.objects_dir.is_dir():
            raise ValueError(f"Objects directory not found: {objects_dir}")

    def write(self, kind: ObjectKind, payload: bytes) -> str:
        """Write an object to the store.

        If an object with the same address already exists, returns the
        address without writing (deduplication). Uses atomic write (tmp
        file + rename) to prevent corruption.

        Args:
            kind: Object kind recorded in the envelope
            payload: Object payload

        Returns:
            Content address of the object (40 hex characters)

        Raises:
            OSError: If write fails (permissions, disk full, etc.)
        """
        envelope = self._envelope(kind, payload)
        address = self._compute_hash(envelope)

        if self.exists(address):
            logger.debug("Object %s already stored", address)
            return address

        object_path = self._get_object_path(address)
        object_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=object_path.parent,
            prefix=".tmp_",
            suffix=".obj",
        )
        try:
            with os.fdopen(tmp_fd, "wb") as f:
                f.write(zlib.compress(envelope, ZLIB_LEVEL))
                f.flush()
                os.fsync(f.fileno())

            try:
                os.replace(tmp_path, object_path)
            except OSError:
                # Another writer stored the same object first
                if object_path.exists():
                    os.unlink(tmp_path)
                    return address
                raise

        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.debug("Wrote %s object %s (%d bytes)", kind, address, len(payload))
        return address

    def exists(self, address: str) -> bool:
        """Check if an object exists in the store.

        Malformed addresses are reported as absent rather than raising.
        """
        if not is_valid_address(address):
            return False
        return self._get_object_path(address.lower()).is_file()

    def read_header(self, address: str) -> RawRecord:
        """Read an object's kind and length without its payload.

        Only the beginning of the compressed stream is inflated.

        Args:
            address: Content address (40 hex characters)

        Returns:
            RawRecord with ``payload`` set to None

        Raises:
            MalformedIdentifierError: If address is not a valid content address
            ObjectNotFoundError: If the object doesn't exist
            CorruptObjectError: If the envelope cannot be parsed
        """
        address = self._normalize(address)
        object_path = self._locate(address)

        decompressor = zlib.decompressobj()
        head = b""
        try:
            with open(object_path, "rb") as f:
                while b"\x00" not in head:
                    chunk = f.read(HEADER_READ_CHUNK)
                    if not chunk:
                        break
                    head += decompressor.decompress(chunk, HEADER_READ_CHUNK)
        except zlib.error as e:
            raise CorruptObjectError(f"Object {address} is not valid zlib data: {e}") from e

        kind, length, _ = self._parse_header(address, head)
        logger.debug("Read header of %s: %s, %d bytes", address, kind, length)
        return RawRecord(address, kind, length)

    def read(self, address: str, verify_hash: bool = True) -> RawRecord:
        """Read a full object from the store.

        Args:
            address: Content address (40 hex characters)
            verify_hash: Whether to recompute and verify the address

        Returns:
            RawRecord carrying the payload bytes

        Raises:
            MalformedIdentifierError: If address is not a valid content address
            ObjectNotFoundError: If the object doesn't exist
            CorruptObjectError: If decompression, the envelope or the hash check fails
        """
        address = self._normalize(address)
        object_path = self._locate(address)

        try:
            envelope = zlib.decompress(object_path.read_bytes())
        except zlib.error as e:
            raise CorruptObjectError(f"Object {address} is not valid zlib data: {e}") from e

        if verify_hash:
            actual = self._compute_hash(envelope)
            if actual != address:
                raise CorruptObjectError(f"Object corrupted: expected {address}, got {actual}")

        kind, length, offset = self._parse_header(address, envelope)
        payload = envelope[offset:]
        if len(payload) != length:
            raise CorruptObjectError(
                f"Object {address} declares {length} bytes but holds {len(payload)}"
            )

        logger.debug("Read %s object %s (%d bytes)", kind, address, length)
        return RawRecord(address, kind, length, payload)

    def lookup(self, address: str, expected_kind: Optional[ObjectKind] = None) -> ObjectHandle:
        """Locate an object and report its kind.

        Args:
            address: Content address
            expected_kind: If given, the object must be of this kind

        Raises:
            MalformedIdentifierError: If address is not a valid content address
            ObjectNotFoundError: If the object doesn't exist
            UnexpectedTypeError: If the object is not of ``expected_kind``
        """
        record = self.read_header(address)
        if expected_kind is not None and record.kind is not expected_kind:
            raise UnexpectedTypeError(
                f"Object {record.address} is a {record.kind}, not a {expected_kind}"
            )
        return ObjectHandle(record.address, record.kind)

    def _envelope(self, kind: ObjectKind, payload: bytes) -> bytes:
        return b"%s %d\x00" % (kind.value.encode("ascii"), len(payload)) + payload

    def _compute_hash(self, envelope: bytes) -> str:
        hasher = hashlib.new(HASH_ALGORITHM)
        hasher.update(envelope)
        return hasher.hexdigest()

    def _get_object_path(self, address: str) -> Path:
        """Get the filesystem path for an object.

        Uses git sharding: objects/<hash[:2]>/<hash[2:]>
        """
        return self.objects_dir / address[:2] / address[2:]

    def _locate(self, address: str) -> Path:
        object_path = self._get_object_path(address)
        if not object_path.is_file():
            raise ObjectNotFoundError(f"Object not found: {address}")
        return object_path

    def _normalize(self, address: str) -> str:
        if not is_valid_address(address):
            raise MalformedIdentifierError(f"Not a valid object address: {address!r}")
        return address.lower()

    def _parse_header(self, address: str, data: bytes) -> Tuple[ObjectKind, int, int]:
        """Split ``<type> <length>\\0`` off the start of an envelope.

        Returns:
            Tuple of (kind, declared length, offset of the payload)
        """
        nul = data.find(b"\x00")
        if nul < 0:
            raise CorruptObjectError(f"Object {address} has no header terminator")

        type_name, sep, size = data[:nul].partition(b" ")
        if not sep or not size.isdigit():
            raise CorruptObjectError(f"Object {address} has a malformed header: {data[:nul]!r}")

        try:
            kind = ObjectKind.from_name(type_name)
        except ValueError as e:
            raise CorruptObjectError(f"Object {address} has unknown type {type_name!r}") from e

        return kind, int(size), nul + 1
