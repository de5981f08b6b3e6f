"""Change detection against the branch state store.

Compares freshly observed remote branch heads with the stored state and flags
branches whose head commit moved forward in time.
"""

import threading
from typing import Iterable, List, Optional

import structlog

from repowatcher.cache.cancellation import raise_if_cancelled
from repowatcher.cache.store import BranchStateStore
from repowatcher.errors import NotFoundError, TransportError
from repowatcher.models.branch import BranchObservation, BranchState, RemoteRef, SnapshotStatus
from repowatcher.repository.base import BaseRepositoryClient

logger = structlog.get_logger(__name__)


class ChangeDetector:
    """Reconciles the branch store with the remote's current branch heads."""

    def __init__(self, store: BranchStateStore, client: BaseRepositoryClient) -> None:
        """Initialize the change detector.

        Args:
            store: Branch state store to update
            client: Repository client used to resolve commit metadata
        """
        self.store = store
        self.client = client

    def observe(
        self, refs: Iterable[RemoteRef], cancel: Optional[threading.Event] = None
    ) -> List[BranchObservation]:
        """Resolve commit metadata for every branch reference.

        Branches whose commit cannot be resolved are skipped with a warning;
        the rest are still returned.

        Args:
            refs: References listed by the remote
            cancel: Cancellation signal, checked between branches

        Returns:
            One observation per resolvable branch

        Raises:
            PassCancelledError: If ``cancel`` fires
        """
        observations = []
        for ref in refs:
            if not ref.is_branch:
                continue
            raise_if_cancelled(cancel)
            try:
                metadata = self.client.commit_metadata_for(ref.hexsha)
            except (NotFoundError, TransportError) as e:
                logger.warning("branch_commit_unresolved", branch=ref.short_name, error=str(e))
                continue
            observations.append(BranchObservation.from_commit(ref.short_name, metadata))
        return observations

    def detect(
        self,
        observations: Iterable[BranchObservation],
        cancel: Optional[threading.Event] = None,
    ) -> List[str]:
        """Flag branches that are new or whose head moved forward in time.

        An equal timestamp counts as unchanged. Entries that are not newer are
        left untouched, including their changed flag; branches missing from
        ``observations`` are kept as they are.

        Args:
            observations: Remote branch heads for this cycle
            cancel: Cancellation signal, checked between branches

        Returns:
            Names of the branches flagged as changed

        Raises:
            PassCancelledError: If ``cancel`` fires
        """
        changed = []
        for observation in observations:
            raise_if_cancelled(cancel)
            flagged = []

            def apply(current: Optional[BranchState]) -> Optional[BranchState]:
                if current is None:
                    flagged.append(True)
                    return BranchState.from_observation(observation)
                if observation.last_update <= current.last_update:
                    return current
                flagged.append(True)
                return current.model_copy(
                    update={
                        "last_update": observation.last_update,
                        "commit": observation.commit,
                        "last_updated_by": observation.author_name,
                        "last_updated_by_email": observation.author_email,
                        "status": SnapshotStatus.STALE,
                        "generation": current.generation + 1,
                    }
                )

            self.store.upsert(observation.name, apply)
            if flagged:
                changed.append(observation.name)

        if changed:
            logger.info("branches_changed", branches=changed, count=len(changed))
        else:
            logger.debug("no_branch_changes")
        return changed

    def run(
        self, refs: Iterable[RemoteRef], cancel: Optional[threading.Event] = None
    ) -> List[str]:
        """Observe the given refs and reconcile the store with them."""
        return self.detect(self.observe(refs, cancel), cancel)
