"""In-memory store of per-branch state."""

import threading
from typing import Callable, Dict, Optional

from repowatcher.models.branch import BranchState

#: Receives the current entry (or None) and returns the replacement.
#: Returning None or the same object leaves the store untouched.
BranchMutator = Callable[[Optional[BranchState]], Optional[BranchState]]


class BranchStateStore:
    """Authoritative mapping from branch name to BranchState.

    All writes go through ``upsert`` under a single lock. Entries are
    immutable, so readers always get a consistent entry even while a pass is
    running.
    """

    def __init__(self) -> None:
        self._branches: Dict[str, BranchState] = {}
        self._lock = threading.RLock()

    def get(self, name: str) -> Optional[BranchState]:
        """Get the state for a branch.

        Args:
            name: Branch name

        Returns:
            BranchState if it exists, None otherwise
        """
        with self._lock:
            return self._branches.get(name)

    def get_all(self) -> Dict[str, BranchState]:
        """Get a point-in-time copy of every entry."""
        with self._lock:
            return dict(self._branches)

    def upsert(self, name: str, mutator: BranchMutator) -> Optional[BranchState]:
        """Atomically read-or-create an entry and apply a transformation.

        Args:
            name: Branch name
            mutator: Function computing the new entry from the current one

        Returns:
            The entry stored after the call, None if there is none

        Raises:
            ValueError: If the mutator returns an entry for another branch
        """
        with self._lock:
            current = self._branches.get(name)
            updated = mutator(current)
            if updated is None or updated is current:
                return current
            if updated.name != name:
                raise ValueError(f"Mutator for {name!r} returned state for {updated.name!r}")
            self._branches[name] = updated
            return updated

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._branches

    def __len__(self) -> int:
        with self._lock:
            return len(self._branches)
