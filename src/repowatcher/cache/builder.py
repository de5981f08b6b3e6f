"""Snapshot cache builder.

Rebuilds the cached archive of every branch flagged as changed. A failed
build leaves the branch flagged so the next pass retries it.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from repowatcher.archive import TarGzArchiver
from repowatcher.cache.cancellation import raise_if_cancelled
from repowatcher.cache.store import BranchStateStore
from repowatcher.errors import (
    BranchNotFoundError,
    EncodingError,
    NotFoundError,
    PassCancelledError,
    TransportError,
)
from repowatcher.models.branch import BranchState, SnapshotStatus
from repowatcher.repository.base import BaseRepositoryClient

logger = structlog.get_logger(__name__)

BUILT = "built"
FAILED = "failed"
SUPERSEDED = "superseded"
CANCELLED = "cancelled"


@dataclass
class BuildReport:
    """Outcome of one build pass."""

    built: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    superseded: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.built) + len(self.failed) + len(self.superseded)


class SnapshotCacheBuilder:
    """Materializes snapshots for branches flagged as changed."""

    def __init__(
        self,
        store: BranchStateStore,
        client: BaseRepositoryClient,
        archiver: Optional[TarGzArchiver] = None,
        max_workers: int = 1,
    ) -> None:
        """Initialize the builder.

        Args:
            store: Branch state store
            client: Repository client providing file trees
            archiver: Archiver used to package trees
            max_workers: Branches built concurrently (1 builds sequentially)
        """
        self.store = store
        self.client = client
        self.archiver = archiver or TarGzArchiver()
        self.max_workers = max(1, max_workers)

    def pending(self) -> List[BranchState]:
        """Entries currently flagged as changed, ordered by name."""
        states = self.store.get_all().values()
        return sorted((s for s in states if s.changed), key=lambda s: s.name)

    def build(self, cancel: Optional[threading.Event] = None) -> BuildReport:
        """Rebuild the snapshot of every changed branch.

        Args:
            cancel: Cancellation signal, checked before each branch

        Returns:
            BuildReport listing built, failed and superseded branches

        Raises:
            PassCancelledError: If ``cancel`` fires before all branches ran
        """
        pending = self.pending()
        report = BuildReport()
        if not pending:
            return report

        logger.info("building_snapshots", branches=[s.name for s in pending])

        if self.max_workers == 1:
            outcomes = []
            for state in pending:
                raise_if_cancelled(cancel)
                outcomes.append((state.name, self._build_entry(state, cancel)))
        else:
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="snapshot-build"
            ) as pool:
                futures = [
                    (state.name, pool.submit(self._build_entry, state, cancel))
                    for state in pending
                ]
                outcomes = [(name, future.result()) for name, future in futures]

        for name, outcome in outcomes:
            if outcome == BUILT:
                report.built.append(name)
            elif outcome == FAILED:
                report.failed.append(name)
            elif outcome == SUPERSEDED:
                report.superseded.append(name)

        if any(outcome == CANCELLED for _, outcome in outcomes):
            raise PassCancelledError("build pass cancelled")

        logger.info(
            "snapshots_built",
            built=len(report.built),
            failed=len(report.failed),
            superseded=len(report.superseded),
        )
        return report

    def build_one(self, name: str, cancel: Optional[threading.Event] = None) -> bool:
        """Rebuild a single branch if it is flagged as changed.

        Returns:
            True if the branch now has a fresh snapshot

        Raises:
            BranchNotFoundError: If the branch is unknown
        """
        state = self.store.get(name)
        if state is None:
            raise BranchNotFoundError(name)
        if not state.changed:
            return True
        return self._build_entry(state, cancel) == BUILT

    def _build_entry(self, state: BranchState, cancel: Optional[threading.Event]) -> str:
        if cancel is not None and cancel.is_set():
            return CANCELLED

        try:
            payload = self.archiver.package_tree(self.client.file_tree_for(state.commit))
        except (TransportError, NotFoundError, EncodingError) as e:
            logger.error(
                "snapshot_build_failed",
                branch=state.name,
                commit=state.commit,
                error=str(e),
                error_type=type(e).__name__,
            )
            return FAILED

        superseded = []

        def apply(current: Optional[BranchState]) -> Optional[BranchState]:
            # only clear the flag if nothing was detected while we were building
            if current is None or current.generation != state.generation:
                superseded.append(True)
                return current
            return current.model_copy(
                update={
                    "snapshot": payload,
                    "snapshot_commit": state.commit,
                    "status": SnapshotStatus.FRESH,
                }
            )

        self.store.upsert(state.name, apply)

        if superseded:
            logger.info("snapshot_superseded", branch=state.name, commit=state.commit)
            return SUPERSEDED

        logger.debug("snapshot_built", branch=state.name, commit=state.commit, size=len(payload))
        return BUILT
