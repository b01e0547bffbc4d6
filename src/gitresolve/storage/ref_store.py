"""Reference storage.

References are plain files below the repository directory holding either a
content address or ``ref: <other name>``. References that have been packed
live in a single ``packed-refs`` file; a loose file always shadows its packed
counterpart.
"""

import logging
import os
import re
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional

from gitresolve.constants import (
    LOCK_SUFFIX,
    MAX_SYMREF_DEPTH,
    PACKED_REFS_FILE,
    REFS_PREFIX,
    SYMREF_PREFIX,
)
from gitresolve.exceptions import (
    CorruptObjectError,
    InvalidReferenceNameError,
    MalformedReferenceNameError,
    ReferenceExistsError,
    ReferenceLockedError,
)
from gitresolve.objects import is_valid_address

logger = logging.getLogger(__name__)

_FORBIDDEN_CHARS = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]")
_ONELEVEL_NAME = re.compile(r"^[A-Z][A-Z0-9_]*$")


@dataclass(frozen=True)
class Reference:
    """A named pointer to a content address or to another reference."""

    name: str
    target: str

    @property
    def is_symbolic(self) -> bool:
        return not is_valid_address(self.target)


def is_valid_reference_name(name: str) -> bool:
    """Check a reference name against git's ref naming rules.

    Names outside ``refs/`` must be a single upper-case component such as
    ``HEAD`` or ``ORIG_HEAD``.
    """
    if not isinstance(name, str) or not name:
        return False
    if name == "@" or "@{" in name or ".." in name or "//" in name:
        return False
    if _FORBIDDEN_CHARS.search(name):
        return False
    if name.startswith("/") or name.endswith("/") or name.endswith("."):
        return False

    components = name.split("/")
    for component in components:
        if component.startswith(".") or component.endswith(LOCK_SUFFIX):
            return False

    if len(components) == 1:
        return bool(_ONELEVEL_NAME.match(name))
    return name.startswith(REFS_PREFIX)


class RefStore:
    """Filesystem-backed reference store.

    Attributes:
        repository_dir: Directory holding HEAD, refs/ and packed-refs
    """

    def __init__(self, repository_dir: Path) -> None:
        self.repository_dir = Path(repository_dir)
        self.packed_refs_path = self.repository_dir / PACKED_REFS_FILE

    @staticmethod
    def is_valid_name(name: str) -> bool:
        return is_valid_reference_name(name)

    def lookup(self, name: str, follow: bool = False) -> Optional[Reference]:
        """Look up a reference by its full name.

        Args:
            name: Full reference name, e.g. ``refs/tags/v1`` or ``HEAD``
            follow: Dereference symbolic references until a content
                address is reached. The returned Reference keeps ``name``
                and carries the final target.

        Returns:
            The Reference, or None if ``name`` (or, when following, any
            reference along the chain) does not exist

        Raises:
            MalformedReferenceNameError: If name violates the naming rules
            InvalidReferenceNameError: If a symbolic chain is too deep
            CorruptObjectError: If a reference file holds neither an
                address nor a symbolic target
        """
        self.validate_name(name)

        target = self._read(name)
        if target is None:
            return None
        if not follow:
            return Reference(name, target)

        depth = 0
        while not is_valid_address(target):
            depth += 1
            if depth > MAX_SYMREF_DEPTH:
                raise InvalidReferenceNameError(
                    f"Symbolic reference {name} nests deeper than {MAX_SYMREF_DEPTH} levels"
                )
            if not is_valid_reference_name(target):
                raise CorruptObjectError(f"Reference {name} points at invalid name {target!r}")
            next_target = self._read(target)
            if next_target is None:
                logger.debug("Reference %s points at missing reference %s", name, target)
                return None
            target = next_target

        return Reference(name, target)

    def create(self, name: str, target: str, force: bool = False) -> Reference:
        """Create a reference.

        The reference is written under an exclusive ``<name>.lock`` file,
        and the existence check happens while the lock is held, so two
        writers cannot both create the same name.

        Args:
            name: Full reference name
            target: Content address, or another reference name for a
                symbolic reference
            force: Overwrite an existing reference

        Raises:
            MalformedReferenceNameError: If name (or a symbolic target) is malformed
            ReferenceExistsError: If the reference exists and force is False
            InvalidReferenceNameError: If an existing reference is a prefix or
                a child of name
            ReferenceLockedError: If another writer holds the lock
        """
        self.validate_name(name)
        if is_valid_address(target):
            target = target.lower()
            content = target + "\n"
        else:
            self.validate_name(target)
            content = SYMREF_PREFIX + target + "\n"

        with self._lock(name) as lock_path:
            if not force and self._read(name) is not None:
                raise ReferenceExistsError(f"Reference already exists: {name}")
            self.check_available(name)

            lock_path.write_text(content, encoding="utf-8")
            try:
                os.replace(lock_path, self._loose_path(name))
            except OSError as e:
                raise InvalidReferenceNameError(
                    f"Cannot create {name}: conflicts with an existing reference"
                ) from e

        logger.debug("Created reference %s -> %s", name, target)
        return Reference(name, target)

    def check_available(self, name: str) -> None:
        """Check that ``name`` could be created next to the existing refs.

        A reference cannot be both a file and a directory, so ``refs/tags/v1``
        and ``refs/tags/v1/x`` cannot coexist, whether loose or packed.

        Raises:
            MalformedReferenceNameError: If name violates the naming rules
            InvalidReferenceNameError: If an existing reference is a prefix
                or a child of name
        """
        self.validate_name(name)
        packed = self._read_packed_refs()

        components = name.split("/")
        for end in range(1, len(components)):
            parent = "/".join(components[:end])
            if parent in packed or self._loose_path(parent).is_file():
                raise InvalidReferenceNameError(
                    f"Cannot create {name}: reference {parent} already exists"
                )

        prefix = name + "/"
        children = sorted(ref for ref in packed if ref.startswith(prefix))
        if children:
            raise InvalidReferenceNameError(
                f"Cannot create {name}: reference {children[0]} already exists"
            )
        # Even an empty directory would stop the ref file from being renamed into place
        if self._loose_path(name).is_dir():
            raise InvalidReferenceNameError(f"Cannot create {name}: a directory is in the way")

    @contextmanager
    def _lock(self, name: str) -> Iterator[Path]:
        """Hold ``<name>.lock`` for the duration of the block.

        The lock file is removed on every exit path unless it was renamed
        into place.
        """
        loose_path = self._loose_path(name)
        lock_path = loose_path.with_name(loose_path.name + LOCK_SUFFIX)
        try:
            loose_path.parent.mkdir(parents=True, exist_ok=True)
        except (FileExistsError, NotADirectoryError) as e:
            raise InvalidReferenceNameError(
                f"Cannot create {name}: a parent reference already exists"
            ) from e

        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as e:
            raise ReferenceLockedError(f"Reference {name} is locked ({lock_path} exists)") from e
        os.close(fd)

        try:
            yield lock_path
        finally:
            if lock_path.exists():
                lock_path.unlink()

    def _read(self, name: str) -> Optional[str]:
        """Return the raw target of a reference, loose first, then packed."""
        loose_path = self._loose_path(name)
        if loose_path.is_file():
            content = loose_path.read_text(encoding="utf-8").strip()
            if content.startswith(SYMREF_PREFIX):
                return content[len(SYMREF_PREFIX):].strip()
            if is_valid_address(content):
                return content.lower()
            raise CorruptObjectError(f"Reference {name} is corrupt: {content!r}")

        return self._read_packed_refs().get(name)

    def _read_packed_refs(self) -> Dict[str, str]:
        """Parse packed-refs into a name -> address mapping.

        Peeled lines (``^<address>``) describe the object a packed tag
        points to and are skipped.
        """
        if not self.packed_refs_path.is_file():
            return {}

        refs = {}
        for line in self.packed_refs_path.read_text(encoding="utf-8").splitlines():
            if not line or line.startswith("#") or line.startswith("^"):
                continue
            address, _, ref_name = line.partition(" ")
            if is_valid_address(address) and ref_name:
                refs[ref_name.strip()] = address.lower()
        return refs

    def _loose_path(self, name: str) -> Path:
        return self.repository_dir.joinpath(*name.split("/"))

    def validate_name(self, name: str) -> None:
        """Raise MalformedReferenceNameError if name violates the naming rules."""
        if not is_valid_reference_name(name):
            raise MalformedReferenceNameError(f"Invalid reference name: {name!r}")
