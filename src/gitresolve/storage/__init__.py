"""Storage layer for gitresolve.

This module provides the loose-object database, the reference store, the
tag creation primitive and repository lifecycle management.
"""

from gitresolve.storage.lifecycle import (
    RepositoryDetails,
    RepositoryLifecycleManager,
    discover_repository,
    init_repository,
)
from gitresolve.storage.object_store import ObjectHandle, ObjectStore, RawRecord
from gitresolve.storage.ref_store import Reference, RefStore, is_valid_reference_name
from gitresolve.storage.tag_writer import create_tag

__all__ = [
    "ObjectStore",
    "ObjectHandle",
    "RawRecord",
    "RefStore",
    "Reference",
    "is_valid_reference_name",
    "create_tag",
    "RepositoryDetails",
    "RepositoryLifecycleManager",
    "discover_repository",
    "init_repository",
]
