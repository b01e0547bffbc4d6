"""Typed lookups over the reference store."""

import logging
from typing import Optional

from gitresolve.exceptions import ObjectNotFoundError
from gitresolve.storage.ref_store import Reference, RefStore

logger = logging.getLogger(__name__)


class ReferenceManager:
    """Looks up and creates named references.

    Lookups only resolve the name binding; they never check that the target
    object exists.
    """

    def __init__(self, ref_store: RefStore) -> None:
        self.ref_store = ref_store

    def lookup(
        self,
        name: str,
        throw_if_not_found: bool = True,
        follow: bool = False,
    ) -> Optional[Reference]:
        """Look up a reference by full name.

        Args:
            name: Full reference name, e.g. ``refs/tags/v1``
            throw_if_not_found: Raise instead of returning None when the
                reference doesn't exist
            follow: Dereference symbolic references to a content address

        Returns:
            The Reference, or None if it doesn't exist and
            ``throw_if_not_found`` is False

        Raises:
            MalformedReferenceNameError: If name violates the naming rules
            ObjectNotFoundError: If the reference doesn't exist and
                ``throw_if_not_found`` is True
        """
        reference = self.ref_store.lookup(name, follow=follow)
        if reference is None:
            logger.debug("Reference %s not found", name)
            if throw_if_not_found:
                raise ObjectNotFoundError(f"Reference not found: {name}")
        return reference

    def exists(self, name: str) -> bool:
        return self.lookup(name, throw_if_not_found=False) is not None

    def create(self, name: str, target: str, force: bool = False) -> Reference:
        """Create ``name`` pointing at ``target``; see RefStore.create."""
        return self.ref_store.create(name, target, force=force)

    def is_valid_name(self, name: str) -> bool:
        return self.ref_store.is_valid_name(name)
