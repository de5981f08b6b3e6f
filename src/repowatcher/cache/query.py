"""Read-only access to cached branch state."""

from typing import List

from repowatcher.cache.store import BranchStateStore
from repowatcher.errors import BranchNotFoundError, SnapshotNotReadyError
from repowatcher.models.branch import BranchState


class BranchQuery:
    """Read-only projection of the branch store used by the HTTP layer.

    Never triggers synchronization.
    """

    def __init__(self, store: BranchStateStore) -> None:
        self.store = store

    def list_branches(self) -> List[BranchState]:
        """List every known branch, most recently updated first.

        Ties on the update time are ordered by name.
        """
        states = sorted(self.store.get_all().values(), key=lambda s: s.name)
        # stable sort keeps the name order within equal timestamps
        return sorted(states, key=lambda s: s.last_update, reverse=True)

    def get_branch(self, name: str) -> BranchState:
        """Get one branch.

        Raises:
            BranchNotFoundError: If the branch has never been observed
        """
        state = self.store.get(name)
        if state is None:
            raise BranchNotFoundError(name)
        return state

    def get_snapshot(self, name: str) -> bytes:
        """Get the cached snapshot of a branch.

        Raises:
            BranchNotFoundError: If the branch has never been observed
            SnapshotNotReadyError: If the branch is known but was never built
        """
        state = self.get_branch(name)
        if state.snapshot is None:
            raise SnapshotNotReadyError(name)
        return state.snapshot
