"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict

import pytest

from gitresolve.constants import MODE_BLOB, MODE_TREE
from gitresolve.objects import (
    ObjectKind,
    Signature,
    TreeEntry,
    encode_commit,
    encode_tree,
)
from gitresolve.repository import Repository
from gitresolve.storage import ObjectStore, RefStore

EMPTY_BLOB = "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391"
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
HELLO_BLOB = "ce013625030ba8dba906f756967f9e9ca394464a"  # b"hello\n"


@pytest.fixture
def signature() -> Signature:
    """A fixed tagger/author identity."""
    return Signature(
        "Ada Lovelace",
        "ada@example.com",
        datetime(2024, 5, 1, 12, 30, tzinfo=timezone(timedelta(hours=2))),
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary working directory with an initialized repository."""
    work = tmp_path / "work"
    work.mkdir()
    Repository.init(work)
    return work


@pytest.fixture
def git_dir(workspace: Path) -> Path:
    return workspace / ".git"


@pytest.fixture
def object_store(git_dir: Path) -> ObjectStore:
    return ObjectStore(git_dir / "objects")


@pytest.fixture
def ref_store(git_dir: Path) -> RefStore:
    return RefStore(git_dir)


@pytest.fixture
def history(object_store: ObjectStore, ref_store: RefStore, signature: Signature) -> Dict[str, str]:
    """Write a small history and point refs/heads/main at it.

    Layout:
        hello.txt          -> "hello\\n"
        empty              -> ""
        docs/              -> empty tree
    """
    hello = object_store.write(ObjectKind.BLOB, b"hello\n")
    empty = object_store.write(ObjectKind.BLOB, b"")
    docs = object_store.write(ObjectKind.TREE, encode_tree([]))
    tree = object_store.write(
        ObjectKind.TREE,
        encode_tree([
            TreeEntry(MODE_BLOB, "hello.txt", hello),
            TreeEntry(MODE_BLOB, "empty", empty),
            TreeEntry(MODE_TREE, "docs", docs),
        ]),
    )
    root = object_store.write(
        ObjectKind.COMMIT,
        encode_commit(tree, [], signature, signature, "Initial commit\n"),
    )
    second = object_store.write(
        ObjectKind.COMMIT,
        encode_commit(tree, [root], signature, signature, "Second commit\n"),
    )
    ref_store.create("refs/heads/main", second)

    return {
        "hello": hello,
        "empty": empty,
        "docs": docs,
        "tree": tree,
        "root": root,
        "commit": second,
    }


@pytest.fixture
def repo(workspace: Path, history: Dict[str, str]):
    """Open the populated repository; closed again after the test."""
    repository = Repository(workspace)
    yield repository
    repository.close()
