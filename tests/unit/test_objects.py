"""Unit tests for domain objects and encoders."""

from datetime import datetime, timedelta, timezone

import pytest

from gitresolve.constants import MODE_BLOB, MODE_TREE
from gitresolve.objects import (
    Blob,
    Commit,
    ObjectKind,
    Signature,
    Tag,
    Tree,
    TreeEntry,
    as_kind,
    encode_commit,
    encode_tag,
    encode_tree,
    is_valid_address,
)


class TestAddresses:
    """Test content address syntax."""

    @pytest.mark.parametrize(
        "value",
        ["e69de29bb2d1d6434b8b29ae775ad8c2e48c5391", "E69DE29BB2D1D6434B8B29AE775AD8C2E48C5391"],
    )
    def test_valid(self, value: str) -> None:
        """Test that 40 hex characters in either case are an address."""
        assert is_valid_address(value)

    @pytest.mark.parametrize(
        "value",
        ["", "e69de29", "e69de29bb2d1d6434b8b29ae775ad8c2e48c539", "z" * 40, "a" * 41, None, 42],
    )
    def test_invalid(self, value) -> None:
        """Test that short, long, non-hex and non-string values are rejected."""
        assert not is_valid_address(value)


class TestObjectKind:
    """Test kind lookups."""

    def test_from_name(self) -> None:
        """Test that kinds are found by str or bytes type name."""
        assert ObjectKind.from_name("tag") is ObjectKind.TAG
        assert ObjectKind.from_name(b"tree") is ObjectKind.TREE
        assert str(ObjectKind.BLOB) == "blob"

    def test_from_unknown_name(self) -> None:
        """Test that an unknown type name raises ValueError."""
        with pytest.raises(ValueError):
            ObjectKind.from_name("widget")

    @pytest.mark.parametrize(
        "expected,kind",
        [
            (None, None),
            (ObjectKind.TAG, ObjectKind.TAG),
            (Tag, ObjectKind.TAG),
            (Commit, ObjectKind.COMMIT),
            (Tree, ObjectKind.TREE),
            (Blob, ObjectKind.BLOB),
            ("blob", ObjectKind.BLOB),
        ],
    )
    def test_as_kind(self, expected, kind) -> None:
        """Test that kinds, classes and type names normalise to ObjectKind."""
        assert as_kind(expected) is kind

    def test_class_kinds(self) -> None:
        """Test that each domain class carries its kind."""
        assert Blob("a" * 40, b"").kind is ObjectKind.BLOB
        assert Tree("a" * 40).kind is ObjectKind.TREE


class TestSignature:
    """Test signature encoding."""

    def test_encode(self) -> None:
        """Test that a signature encodes as name, email, epoch and offset."""
        sig = Signature("Ada", "ada@example.com", datetime(2024, 5, 1, 12, 30, tzinfo=timezone(timedelta(hours=2))))

        assert sig.encode() == b"Ada <ada@example.com> 1714559400 +0200"

    def test_encode_negative_offset(self) -> None:
        """Test that negative offsets keep their minutes."""
        sig = Signature("A", "a@b", datetime(1970, 1, 1, tzinfo=timezone(-timedelta(hours=5, minutes=30))))

        assert sig.encode() == b"A <a@b> 19800 -0530"

    def test_naive_datetime_is_utc(self) -> None:
        """Test that a naive timestamp is encoded and stored as UTC."""
        sig = Signature("A", "a@b", datetime(1970, 1, 2))

        assert sig.encode() == b"A <a@b> 86400 +0000"
        assert sig.when == datetime(1970, 1, 2, tzinfo=timezone.utc)
        assert sig.when.tzinfo is not None

    def test_microseconds_are_dropped(self) -> None:
        """Test that the timestamp keeps only whole seconds."""
        sig = Signature("A", "a@b", datetime(2024, 1, 1, 8, 0, 0, 999999, tzinfo=timezone.utc))

        assert sig.when.microsecond == 0
        assert sig.when == datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "name,email",
        [("A <x>", "a@b"), ("A", "<a@b>"), ("A\nB", "a@b"), ("A", "a\n@b")],
    )
    def test_rejects_delimiters(self, name: str, email: str) -> None:
        """Test that angle brackets and newlines are rejected."""
        with pytest.raises(ValueError):
            Signature(name, email, datetime(2024, 1, 1, tzinfo=timezone.utc))

    def test_now_is_timezone_aware(self) -> None:
        """Test that Signature.now carries a timezone and whole seconds."""
        sig = Signature.now("A", "a@b")

        assert sig.when.tzinfo is not None
        assert sig.when.microsecond == 0


class TestEncoders:
    """Test canonical payload encoders."""

    def test_empty_tree(self) -> None:
        """Test that an empty tree encodes to an empty payload."""
        assert encode_tree([]) == b""

    def test_tree_sorts_directories_with_trailing_slash(self) -> None:
        """Test that 'a.txt' sorts before directory 'a', which sorts as 'a/'."""
        payload = encode_tree([
            TreeEntry(MODE_TREE, "a", "1" * 40),
            TreeEntry(MODE_BLOB, "a.txt", "2" * 40),
        ])

        assert payload.index(b"a.txt") < payload.index(b"40000 a\x00")

    def test_commit(self) -> None:
        """Test the canonical commit header order."""
        sig = Signature("A", "a@b", datetime(1970, 1, 1, tzinfo=timezone.utc))

        payload = encode_commit("1" * 40, ["2" * 40], sig, sig, "msg\n")

        assert payload == (
            b"tree " + b"1" * 40 + b"\n"
            b"parent " + b"2" * 40 + b"\n"
            b"author A <a@b> 0 +0000\n"
            b"committer A <a@b> 0 +0000\n"
            b"\n"
            b"msg\n"
        )

    def test_tag_without_tagger(self) -> None:
        """Test that the tagger line is omitted when there is no tagger."""
        payload = encode_tag("1" * 40, ObjectKind.BLOB, "v1", None, "m")

        assert payload == b"object " + b"1" * 40 + b"\ntype blob\ntag v1\n\nm"
