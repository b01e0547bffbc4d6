"""Repository creation, discovery and disposal.

The lifecycle manager owns the object and reference stores of one
repository. Once disposed, the stores it handed out must not be used.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from gitresolve.constants import (
    CONFIG_FILE,
    DEFAULT_BRANCH,
    GIT_DIR,
    HEAD_FILE,
    HEADS_DIR,
    HEADS_PREFIX,
    OBJECTS_DIR,
    REFS_DIR,
    SYMREF_PREFIX,
    TAGS_DIR,
)
from gitresolve.exceptions import RepositoryClosedError, RepositoryNotFoundError
from gitresolve.storage.object_store import ObjectStore
from gitresolve.storage.ref_store import RefStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositoryDetails:
    """Static description of an on-disk repository.

    Attributes:
        repository_directory: Directory holding objects/, refs/ and HEAD
        working_directory: Checkout root, or None for a bare repository
        is_bare: Whether the repository has no working directory
    """

    repository_directory: Path
    working_directory: Optional[Path]
    is_bare: bool

    @property
    def objects_directory(self) -> Path:
        return self.repository_directory / OBJECTS_DIR

    @property
    def refs_directory(self) -> Path:
        return self.repository_directory / REFS_DIR


def is_repository_directory(path: Path) -> bool:
    """Return True if ``path`` has the layout of a repository directory."""
    return (
        (path / HEAD_FILE).is_file()
        and (path / OBJECTS_DIR).is_dir()
        and (path / REFS_DIR).is_dir()
    )


def init_repository(path: Union[str, Path], is_bare: bool = False) -> RepositoryDetails:
    """Create a repository at ``path``.

    A non-bare repository keeps its data in ``<path>/.git``; a bare one uses
    ``path`` itself. Initialising an existing repository leaves it intact.

    Args:
        path: Working directory (non-bare) or repository directory (bare)
        is_bare: Create a bare repository

    Returns:
        Details of the created (or already existing) repository

    Raises:
        OSError: If the directories cannot be created
    """
    root = Path(path).resolve()
    repo_dir = root if is_bare else root / GIT_DIR

    if is_repository_directory(repo_dir):
        logger.info("Reinitialized existing repository in %s", repo_dir)
        return RepositoryDetails(repo_dir, None if is_bare else root, is_bare)

    (repo_dir / OBJECTS_DIR).mkdir(parents=True, exist_ok=True)
    (repo_dir / REFS_DIR / HEADS_DIR).mkdir(parents=True, exist_ok=True)
    (repo_dir / REFS_DIR / TAGS_DIR).mkdir(parents=True, exist_ok=True)

    head_file = repo_dir / HEAD_FILE
    if not head_file.exists():
        head_file.write_text(f"{SYMREF_PREFIX}{HEADS_PREFIX}{DEFAULT_BRANCH}\n", encoding="utf-8")

    config_file = repo_dir / CONFIG_FILE
    if not config_file.exists():
        config_file.write_text(
            "[core]\n"
            "\trepositoryformatversion = 0\n"
            "\tfilemode = true\n"
            f"\tbare = {'true' if is_bare else 'false'}\n",
            encoding="utf-8",
        )

    logger.info("Initialized empty %srepository in %s", "bare " if is_bare else "", repo_dir)
    return RepositoryDetails(repo_dir, None if is_bare else root, is_bare)


def discover_repository(path: Union[str, Path]) -> RepositoryDetails:
    """Find the repository at ``path``.

    ``path`` may be a working directory containing ``.git`` or a repository
    directory itself (bare, or a ``.git`` directory).

    Raises:
        RepositoryNotFoundError: If neither layout is present
    """
    root = Path(path).resolve()

    if is_repository_directory(root / GIT_DIR):
        return RepositoryDetails(root / GIT_DIR, root, False)

    if is_repository_directory(root):
        if root.name == GIT_DIR:
            return RepositoryDetails(root, root.parent, False)
        return RepositoryDetails(root, None, True)

    raise RepositoryNotFoundError(f"Not a repository: {root}")


class RepositoryLifecycleManager:
    """Owner of the backing stores of one repository.

    Attributes:
        details: Static repository description
    """

    def __init__(self, path: Union[str, Path], is_bare: Optional[bool] = None) -> None:
        """Open a repository, or create one when ``is_bare`` is given.

        Args:
            path: Repository or working directory
            is_bare: None to open an existing repository; True or False to
                initialise one (idempotent) with that layout first

        Raises:
            RepositoryNotFoundError: If opening and no repository is found
        """
        if is_bare is None:
            self.details = discover_repository(path)
        else:
            self.details = init_repository(path, is_bare)

        self._object_store: Optional[ObjectStore] = ObjectStore(self.details.objects_directory)
        self._ref_store: Optional[RefStore] = RefStore(self.details.repository_directory)
        logger.debug("Opened repository %s", self.details.repository_directory)

    @property
    def is_disposed(self) -> bool:
        return self._object_store is None

    @property
    def object_store(self) -> ObjectStore:
        if self._object_store is None:
            raise RepositoryClosedError(
                f"Repository {self.details.repository_directory} has been closed"
            )
        return self._object_store

    @property
    def ref_store(self) -> RefStore:
        if self._ref_store is None:
            raise RepositoryClosedError(
                f"Repository {self.details.repository_directory} has been closed"
            )
        return self._ref_store

    def dispose(self) -> None:
        """Release the backing stores. Safe to call more than once."""
        if self._object_store is not None:
            logger.debug("Closed repository %s", self.details.repository_directory)
        self._object_store = None
        self._ref_store = None

    def __enter__(self) -> "RepositoryLifecycleManager":
        return self

    def __exit__(self, *args) -> None:
        self.dispose()
