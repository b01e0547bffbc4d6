"""Typed domain objects stored in the object database.

The set of object kinds is closed: every stored record is a commit, a tree,
a blob or an annotated tag. Each kind has one frozen dataclass here; decoding
from raw payloads lives in ``gitresolve.core.builder`` and the canonical
encoders below are the inverse used when writing new records.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import ClassVar, Optional, Tuple, Type, Union

from gitresolve.constants import (
    HASH_LENGTH,
    MODE_GITLINK,
    MODE_TREE,
)

_ADDRESS_RE = re.compile(r"^[0-9a-fA-F]{%d}$" % HASH_LENGTH)


class ObjectKind(Enum):
    """Kind of a stored object, valued by its on-disk type name."""

    COMMIT = "commit"
    TREE = "tree"
    BLOB = "blob"
    TAG = "tag"

    @classmethod
    def from_name(cls, name: Union[str, bytes]) -> "ObjectKind":
        """Look up a kind by its type name.

        Raises:
            ValueError: If the name is not one of the four object kinds
        """
        if isinstance(name, bytes):
            name = name.decode("ascii", errors="replace")
        return cls(name)

    def __str__(self) -> str:
        return self.value


def is_valid_address(identifier: object) -> bool:
    """Return True if ``identifier`` is syntactically a content address."""
    return isinstance(identifier, str) and bool(_ADDRESS_RE.match(identifier))


@dataclass(frozen=True)
class Signature:
    """Identity and timestamp attached to commits and tags.

    Attributes:
        name: Display name
        email: Email address (without angle brackets)
        when: Timestamp, stored at whole-second precision; naive datetimes
            are taken to be UTC
    """

    name: str
    email: str
    when: datetime

    def __post_init__(self) -> None:
        if "<" in self.name or ">" in self.name or "\n" in self.name:
            raise ValueError(f"Invalid signature name: {self.name!r}")
        if "<" in self.email or ">" in self.email or "\n" in self.email:
            raise ValueError(f"Invalid signature email: {self.email!r}")

        # Keep only what the encoded form can carry
        when = self.when.replace(microsecond=0)
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        object.__setattr__(self, "when", when)

    @classmethod
    def now(cls, name: str, email: str) -> "Signature":
        """Create a signature stamped with the current local time."""
        return cls(name, email, datetime.now(timezone.utc).astimezone())

    def encode(self) -> bytes:
        """Encode as ``Name <email> <epoch> <+hhmm>``."""
        when = self.when
        offset = when.utcoffset() or timedelta(0)
        minutes = int(offset.total_seconds()) // 60
        sign = "-" if minutes < 0 else "+"
        hours, mins = divmod(abs(minutes), 60)

        line = f"{self.name} <{self.email}> {int(when.timestamp())} {sign}{hours:02d}{mins:02d}"
        return line.encode("utf-8")


@dataclass(frozen=True)
class TreeEntry:
    """One entry of a tree: mode, file name and the address it points to."""

    mode: int
    name: str
    sha: str

    @property
    def kind(self) -> ObjectKind:
        if self.mode == MODE_TREE:
            return ObjectKind.TREE
        if self.mode == MODE_GITLINK:
            return ObjectKind.COMMIT
        return ObjectKind.BLOB


@dataclass(frozen=True)
class Blob:
    """File contents."""

    kind: ClassVar[ObjectKind] = ObjectKind.BLOB

    sha: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Tree:
    """Directory listing."""

    kind: ClassVar[ObjectKind] = ObjectKind.TREE

    sha: str
    entries: Tuple[TreeEntry, ...] = ()

    def __getitem__(self, name: str) -> TreeEntry:
        for entry in self.entries:
            if entry.name == name:
                return entry
        raise KeyError(name)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class Commit:
    """Snapshot of a tree with its history and authorship."""

    kind: ClassVar[ObjectKind] = ObjectKind.COMMIT

    sha: str
    tree: str
    parents: Tuple[str, ...]
    author: Signature
    committer: Signature
    message: str
    encoding: Optional[str] = None
    # Headers such as gpgsig or mergetag, in their original order
    extra_headers: Tuple[Tuple[str, str], ...] = field(default=())


@dataclass(frozen=True)
class Tag:
    """Annotated tag binding a name, a tagger and a message to a target."""

    kind: ClassVar[ObjectKind] = ObjectKind.TAG

    sha: str
    name: str
    target: str
    target_kind: ObjectKind
    tagger: Optional[Signature]
    message: str


GitObject = Union[Commit, Tree, Blob, Tag]

OBJECT_CLASSES = {
    ObjectKind.COMMIT: Commit,
    ObjectKind.TREE: Tree,
    ObjectKind.BLOB: Blob,
    ObjectKind.TAG: Tag,
}


def as_kind(expected: Union[ObjectKind, Type[GitObject], str, None]) -> Optional[ObjectKind]:
    """Normalise an expected-type argument to an ObjectKind.

    Accepts an ObjectKind, one of the domain classes, a type name such as
    ``"tag"``, or None (meaning any kind).

    Raises:
        ValueError: If ``expected`` names no object kind
    """
    if expected is None or isinstance(expected, ObjectKind):
        return expected
    if isinstance(expected, str):
        return ObjectKind.from_name(expected)
    for kind, cls in OBJECT_CLASSES.items():
        if expected is cls:
            return kind
    raise ValueError(f"Not an object kind: {expected!r}")


def encode_tree(entries) -> bytes:
    """Encode tree entries in canonical (name-sorted) order.

    Directories sort as if their name had a trailing slash, which is how git
    orders them.
    """
    def sort_key(entry: TreeEntry) -> bytes:
        name = entry.name.encode("utf-8")
        return name + b"/" if entry.mode == MODE_TREE else name

    chunks = []
    for entry in sorted(entries, key=sort_key):
        chunks.append(b"%o %s\x00" % (entry.mode, entry.name.encode("utf-8")))
        chunks.append(bytes.fromhex(entry.sha))
    return b"".join(chunks)


def encode_commit(
    tree: str,
    parents,
    author: Signature,
    committer: Signature,
    message: str,
    encoding: Optional[str] = None,
) -> bytes:
    """Encode a commit payload."""
    lines = [b"tree " + tree.encode("ascii")]
    lines.extend(b"parent " + parent.encode("ascii") for parent in parents)
    lines.append(b"author " + author.encode())
    lines.append(b"committer " + committer.encode())
    if encoding:
        lines.append(b"encoding " + encoding.encode("ascii"))
    body = message.encode(encoding or "utf-8")
    return b"\n".join(lines) + b"\n\n" + body


def encode_tag(
    target: str,
    target_kind: ObjectKind,
    name: str,
    tagger: Optional[bytes],
    message: str,
) -> bytes:
    """Encode an annotated tag payload.

    ``tagger`` is an already-encoded identity line (see Signature.encode).
    """
    lines = [
        b"object " + target.encode("ascii"),
        b"type " + target_kind.value.encode("ascii"),
        b"tag " + name.encode("utf-8"),
    ]
    if tagger is not None:
        lines.append(b"tagger " + tagger)
    return b"\n".join(lines) + b"\n\n" + message.encode("utf-8")
