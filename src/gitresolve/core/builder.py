"""Decoding of raw records into typed domain objects."""

import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from gitresolve.constants import RAW_HASH_LENGTH
from gitresolve.exceptions import DecodeError
from gitresolve.objects import (
    Blob,
    Commit,
    GitObject,
    ObjectKind,
    Signature,
    Tag,
    Tree,
    TreeEntry,
    is_valid_address,
)
from gitresolve.storage.object_store import RawRecord

_SIGNATURE_RE = re.compile(
    rb"^(?P<name>[^<>]*?) ?<(?P<email>[^<>]*)> (?P<time>-?\d+) (?P<tz>[+-]\d{4})$"
)

Headers = List[Tuple[str, str]]


def parse_signature(value: bytes) -> Signature:
    """Parse ``Name <email> <epoch> <+hhmm>`` into a Signature.

    Raises:
        DecodeError: If the line is not a well-formed identity
    """
    match = _SIGNATURE_RE.match(value)
    if match is None:
        raise DecodeError(f"Malformed signature: {value!r}")

    tz = match.group("tz").decode("ascii")
    minutes = int(tz[1:3]) * 60 + int(tz[3:5])
    offset = timedelta(minutes=-minutes if tz[0] == "-" else minutes)

    try:
        when = datetime.fromtimestamp(int(match.group("time")), tz=timezone(offset))
    except (OverflowError, OSError, ValueError) as e:
        raise DecodeError(f"Signature timestamp out of range: {value!r}") from e

    return Signature(
        match.group("name").decode("utf-8", errors="replace"),
        match.group("email").decode("utf-8", errors="replace"),
        when,
    )


def split_headers(payload: bytes) -> Tuple[Headers, bytes]:
    """Split a commit or tag payload into header pairs and the message.

    Lines starting with a space continue the previous header's value.
    """
    head, sep, message = payload.partition(b"\n\n")
    if not sep and head.endswith(b"\n"):
        head = head[:-1]

    headers: Headers = []
    for line in head.split(b"\n") if head else []:
        if line.startswith(b" "):
            if not headers:
                raise DecodeError("Continuation line before any header")
            key, value = headers[-1]
            headers[-1] = (key, value + "\n" + line[1:].decode("utf-8", errors="replace"))
            continue
        key, space, value = line.partition(b" ")
        if not space or not key:
            raise DecodeError(f"Malformed header line: {line!r}")
        headers.append((key.decode("ascii", errors="replace"), value.decode("utf-8", errors="replace")))

    return headers, message


def _single(headers: Headers, key: str, kind: ObjectKind, required: bool = True) -> Optional[str]:
    values = [value for name, value in headers if name == key]
    if not values:
        if required:
            raise DecodeError(f"{kind} is missing its '{key}' header")
        return None
    if len(values) > 1:
        raise DecodeError(f"{kind} has {len(values)} '{key}' headers")
    return values[0]


def _address(value: str, field: str) -> str:
    if not is_valid_address(value):
        raise DecodeError(f"Invalid address in '{field}' header: {value!r}")
    return value.lower()


class ObjectBuilder:
    """Builds typed objects from raw records.

    Dispatch is on the record's declared kind; the built object's kind
    therefore always matches the record it came from.
    """

    def __init__(self) -> None:
        self._decoders = {
            ObjectKind.BLOB: self._build_blob,
            ObjectKind.TREE: self._build_tree,
            ObjectKind.COMMIT: self._build_commit,
            ObjectKind.TAG: self._build_tag,
        }

    def build_from(self, record: RawRecord) -> GitObject:
        """Decode ``record`` into its domain object.

        Raises:
            DecodeError: If the record has no payload (header-only read) or
                the payload cannot be parsed as its declared kind
        """
        if record.payload is None:
            raise DecodeError(f"Record {record.address} carries no payload")

        decoder = self._decoders.get(record.kind)
        if decoder is None:
            raise DecodeError(f"Record {record.address} has unsupported kind {record.kind!r}")
        return decoder(record.address, record.payload)

    def _build_blob(self, sha: str, payload: bytes) -> Blob:
        return Blob(sha, bytes(payload))

    def _build_tree(self, sha: str, payload: bytes) -> Tree:
        entries = []
        pos = 0
        size = len(payload)
        while pos < size:
            space = payload.find(b" ", pos)
            nul = payload.find(b"\x00", space + 1) if space >= 0 else -1
            if space < 0 or nul < 0 or nul + 1 + RAW_HASH_LENGTH > size:
                raise DecodeError(f"Tree {sha} has a truncated entry at offset {pos}")

            try:
                mode = int(payload[pos:space], 8)
            except ValueError as e:
                raise DecodeError(f"Tree {sha} has an invalid mode {payload[pos:space]!r}") from e

            name = payload[space + 1:nul].decode("utf-8", errors="surrogateescape")
            if not name:
                raise DecodeError(f"Tree {sha} has an entry without a name")

            raw = payload[nul + 1:nul + 1 + RAW_HASH_LENGTH]
            entries.append(TreeEntry(mode, name, raw.hex()))
            pos = nul + 1 + RAW_HASH_LENGTH

        return Tree(sha, tuple(entries))

    def _build_commit(self, sha: str, payload: bytes) -> Commit:
        headers, message = split_headers(payload)
        kind = ObjectKind.COMMIT

        tree = _address(_single(headers, "tree", kind), "tree")
        parents = tuple(_address(value, "parent") for name, value in headers if name == "parent")
        author = parse_signature(_single(headers, "author", kind).encode("utf-8"))
        committer = parse_signature(_single(headers, "committer", kind).encode("utf-8"))
        encoding = _single(headers, "encoding", kind, required=False)

        try:
            text = message.decode(encoding or "utf-8", errors="replace")
        except LookupError as e:
            raise DecodeError(f"Commit {sha} declares unknown encoding {encoding!r}") from e

        known = {"tree", "parent", "author", "committer", "encoding"}
        extra = tuple((name, value) for name, value in headers if name not in known)

        return Commit(sha, tree, parents, author, committer, text, encoding, extra)

    def _build_tag(self, sha: str, payload: bytes) -> Tag:
        headers, message = split_headers(payload)
        kind = ObjectKind.TAG

        target = _address(_single(headers, "object", kind), "object")
        type_name = _single(headers, "type", kind)
        try:
            target_kind = ObjectKind.from_name(type_name)
        except ValueError as e:
            raise DecodeError(f"Tag {sha} points at unknown type {type_name!r}") from e

        name = _single(headers, "tag", kind)
        tagger_line = _single(headers, "tagger", kind, required=False)
        tagger = parse_signature(tagger_line.encode("utf-8")) if tagger_line is not None else None

        return Tag(sha, name, target, target_kind, tagger, message.decode("utf-8", errors="replace"))
