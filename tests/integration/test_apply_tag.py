"""Integration tests for annotated tag creation through Repository."""

from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict

import pytest

from gitresolve import ObjectKind, Repository, Signature, Tag
from gitresolve.exceptions import (
    InvalidReferenceNameError,
    MalformedIdentifierError,
    MalformedReferenceNameError,
    ObjectNotFoundError,
    ReferenceExistsError,
)
from gitresolve.storage import ObjectStore, RefStore


def stored_files(object_store: ObjectStore) -> list:
    return sorted(p for p in object_store.objects_dir.rglob("*") if p.is_file())


class TestApplyTag:
    """Test the happy path."""

    def test_round_trip(self, repo: Repository, history: Dict[str, str], signature: Signature) -> None:
        """Test that a new tag resolves by name to an equal Tag."""
        tag = repo.apply_tag(history["commit"], "v1", "msg", signature)

        resolved = repo.resolve("v1", Tag)

        assert resolved == tag
        assert resolved.name == "v1"
        assert resolved.target == history["commit"]
        assert resolved.target_kind is ObjectKind.COMMIT
        assert resolved.message == "msg"
        assert resolved.tagger == signature

    def test_round_trip_with_current_time(self, repo: Repository, history: Dict[str, str]) -> None:
        """Test that a tagger stamped with Signature.now survives the round trip."""
        signature = Signature.now("Ada", "ada@example.com")

        repo.apply_tag(history["commit"], "v1", "msg", signature)

        assert repo.resolve("v1", Tag).tagger == signature

    def test_round_trip_with_naive_time(self, repo: Repository, history: Dict[str, str]) -> None:
        """Test that a tagger with a naive timestamp survives the round trip."""
        signature = Signature("Ada", "ada@example.com", datetime(2024, 5, 1, 12, 30))

        repo.apply_tag(history["commit"], "v1", "msg", signature)

        assert repo.resolve("v1", Tag).tagger == signature

    def test_reference_points_at_tag(
        self, repo: Repository, ref_store: RefStore, history: Dict[str, str], signature: Signature
    ) -> None:
        """Test that refs/tags/<name> holds the tag's own address."""
        tag = repo.apply_tag(history["commit"], "v1", "msg", signature)

        assert ref_store.lookup("refs/tags/v1").target == tag.sha
        assert repo.resolve("refs/tags/v1").sha == tag.sha
        assert repo.read_header(tag.sha).kind is ObjectKind.TAG

    @pytest.mark.parametrize(
        "key,kind",
        [("hello", ObjectKind.BLOB), ("tree", ObjectKind.TREE), ("root", ObjectKind.COMMIT)],
    )
    def test_target_kind_is_recorded(
        self, repo: Repository, history: Dict[str, str], signature: Signature, key: str, kind: ObjectKind
    ) -> None:
        """Test that the tag records the kind of whatever it targets."""
        tag = repo.apply_tag(history[key], f"tag-{key}", "", signature)

        assert tag.target_kind is kind
        assert tag.target == history[key]

    def test_tag_of_a_tag(self, repo: Repository, history: Dict[str, str], signature: Signature) -> None:
        """Test that a tag can target another tag."""
        inner = repo.apply_tag(history["commit"], "inner", "first", signature)

        outer = repo.apply_tag(inner.sha, "outer", "second", signature)

        assert outer.target == inner.sha
        assert outer.target_kind is ObjectKind.TAG

    def test_nested_tag_name(self, repo: Repository, history: Dict[str, str], signature: Signature) -> None:
        """Test that tag names may contain slashes."""
        repo.apply_tag(history["commit"], "release/2024", "msg", signature)

        assert repo.resolve("release/2024", Tag).name == "release/2024"

    def test_multiline_message(self, repo: Repository, history: Dict[str, str], signature: Signature) -> None:
        """Test that multi-line messages are kept verbatim."""
        message = "Release 1.0\n\n* first\n* second\n"

        tag = repo.apply_tag(history["commit"], "v1.0", message, signature)

        assert tag.message == message

    def test_uppercase_target_address(self, repo: Repository, history: Dict[str, str], signature: Signature) -> None:
        """Test that an upper-case target address is stored in lower case."""
        tag = repo.apply_tag(history["commit"].upper(), "v1", "msg", signature)

        assert tag.target == history["commit"]

    def test_signature_is_not_changed(self, repo: Repository, history: Dict[str, str], signature: Signature) -> None:
        """Test that the caller's signature is left as it was."""
        snapshot = replace(signature)

        repo.apply_tag(history["commit"], "v1", "msg", signature)

        assert signature == snapshot


class TestApplyTagValidation:
    """Test the checks that run before anything is written."""

    def test_second_tag_with_same_name_fails(
        self, repo: Repository, ref_store: RefStore, history: Dict[str, str], signature: Signature
    ) -> None:
        """Test that an existing tag name is refused and left untouched."""
        first = repo.apply_tag(history["commit"], "v1", "msg", signature)

        with pytest.raises(InvalidReferenceNameError):
            repo.apply_tag(history["root"], "v1", "other", signature)

        assert ref_store.lookup("refs/tags/v1").target == first.sha

    def test_existing_lightweight_tag_collides(
        self, repo: Repository, ref_store: RefStore, history: Dict[str, str], signature: Signature
    ) -> None:
        """Test that a lightweight tag of the same name also blocks the new tag."""
        ref_store.create("refs/tags/v2", history["hello"])

        with pytest.raises(InvalidReferenceNameError):
            repo.apply_tag(history["commit"], "v2", "msg", signature)

        assert ref_store.lookup("refs/tags/v2").target == history["hello"]

    def test_collision_writes_nothing(
        self, repo: Repository, object_store: ObjectStore, history: Dict[str, str], signature: Signature
    ) -> None:
        """Test that a name collision leaves the object database unchanged."""
        repo.apply_tag(history["commit"], "v1", "msg", signature)
        before = stored_files(object_store)

        with pytest.raises(InvalidReferenceNameError):
            repo.apply_tag(history["commit"], "v1", "different message", signature)

        assert stored_files(object_store) == before

    @pytest.mark.parametrize(
        "existing,tag_name",
        [("refs/tags/rel/x", "rel"), ("refs/tags/v1", "v1/x")],
    )
    def test_ref_path_conflict_writes_nothing(
        self,
        repo: Repository,
        ref_store: RefStore,
        object_store: ObjectStore,
        history: Dict[str, str],
        signature: Signature,
        existing: str,
        tag_name: str,
    ) -> None:
        """Test that a tag name clashing with an existing ref path leaves no orphan object."""
        ref_store.create(existing, history["hello"])
        before = stored_files(object_store)

        with pytest.raises(InvalidReferenceNameError):
            repo.apply_tag(history["commit"], tag_name, "msg", signature)

        assert stored_files(object_store) == before
        assert ref_store.lookup(existing).target == history["hello"]

    def test_missing_target(
        self,
        repo: Repository,
        ref_store: RefStore,
        object_store: ObjectStore,
        workspace: Path,
        signature: Signature,
    ) -> None:
        """Test that a missing target fails with nothing written."""
        before = stored_files(object_store)

        with pytest.raises(ObjectNotFoundError):
            repo.apply_tag("f" * 40, "v1", "msg", signature)

        assert ref_store.lookup("refs/tags/v1") is None
        assert repo.resolve("v1") is None
        assert stored_files(object_store) == before
        assert list((workspace / ".git" / "refs" / "tags").iterdir()) == []

    def test_target_must_be_an_address(self, repo: Repository, signature: Signature) -> None:
        """Test that targets are not looked up through references."""
        with pytest.raises(MalformedIdentifierError):
            repo.apply_tag("main", "v1", "msg", signature)

        assert repo.resolve("v1") is None

    @pytest.mark.parametrize("name", ["bad name", "a..b", "v1.lock", ""])
    def test_malformed_tag_name(
        self, repo: Repository, history: Dict[str, str], signature: Signature, name: str
    ) -> None:
        """Test that malformed tag names are rejected."""
        with pytest.raises(MalformedReferenceNameError):
            repo.apply_tag(history["commit"], name, "msg", signature)

    def test_backend_guards_against_concurrent_creation(
        self,
        repo: Repository,
        ref_store: RefStore,
        history: Dict[str, str],
        signature: Signature,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that a tag created between the collision check and the write is not overwritten."""
        original = repo.refs.lookup

        def lookup_then_race(name, throw_if_not_found=True, follow=False):
            result = original(name, throw_if_not_found, follow)
            if name == "refs/tags/v1" and result is None:
                ref_store.create("refs/tags/v1", history["hello"])
            return result

        monkeypatch.setattr(repo.refs, "lookup", lookup_then_race)

        with pytest.raises(ReferenceExistsError):
            repo.apply_tag(history["commit"], "v1", "msg", signature)

        assert ref_store.lookup("refs/tags/v1").target == history["hello"]
