"""Repository watcher - orchestrates poll passes over the branch cache."""

import threading
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from repowatcher.archive import TarGzArchiver
from repowatcher.cache.builder import BuildReport, SnapshotCacheBuilder
from repowatcher.cache.detector import ChangeDetector
from repowatcher.cache.query import BranchQuery
from repowatcher.cache.store import BranchStateStore
from repowatcher.errors import PassCancelledError, TransportError
from repowatcher.models.config import WatcherSettings
from repowatcher.models.runner import RunnerConfig, parse_runner_config
from repowatcher.repository.base import BaseRepositoryClient
from repowatcher.repository.git_client import GitRepositoryClient

logger = structlog.get_logger(__name__)


@dataclass
class PassResult:
    """Result of one detection and build pass."""

    changed: List[str] = field(default_factory=list)
    report: Optional[BuildReport] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class RepoWatcher:
    """Watches one remote repository and keeps the branch cache current.

    Owns the branch store; the detector and builder are the only writers.
    """

    def __init__(
        self,
        client: BaseRepositoryClient,
        repo_name: str,
        archiver: Optional[TarGzArchiver] = None,
        max_workers: int = 1,
        runner_file: str = "runner.yaml",
    ) -> None:
        """Initialize the watcher.

        Args:
            client: Repository client for the watched remote
            repo_name: Repository name, used as the default runner model name
            archiver: Archiver used to package snapshots
            max_workers: Branches built concurrently
            runner_file: Path of the runner configuration inside each branch
        """
        self.client = client
        self.repo_name = repo_name
        self.runner_file = runner_file
        self.store = BranchStateStore()
        self.detector = ChangeDetector(self.store, client)
        self.builder = SnapshotCacheBuilder(
            self.store, client, archiver=archiver, max_workers=max_workers
        )
        self.query = BranchQuery(self.store)
        self._pass_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: WatcherSettings) -> "RepoWatcher":
        """Clone (or reopen) the configured mirror and build a watcher for it.

        Raises:
            TransportError: If the initial clone fails
        """
        client = GitRepositoryClient.open(settings)
        return cls(
            client,
            repo_name=settings.repo_name,
            max_workers=settings.max_workers,
            runner_file=settings.runner_file,
        )

    def run_pass(self, cancel: Optional[threading.Event] = None, build: bool = True) -> PassResult:
        """Fetch, detect changed branches and rebuild their snapshots.

        A transport failure while fetching or listing aborts this pass only;
        the store is left as it was and the next pass retries.

        Args:
            cancel: Cancellation signal, checked between branches
            build: Whether to rebuild snapshots after detection

        Returns:
            PassResult

        Raises:
            PassCancelledError: If ``cancel`` fires during the pass
        """
        with self._pass_lock:
            logger.info("checking_for_updates")
            try:
                self.client.fetch_updates()
                refs = self.client.list_remote_refs()
            except TransportError as e:
                logger.error("check_and_pull_failed", error=str(e))
                return PassResult(error=str(e))

            changed = self.detector.run(refs, cancel)
            report = self.builder.build(cancel) if build else None

            logger.info("repository_up_to_date", branches=len(self.store), changed=len(changed))
            return PassResult(changed=changed, report=report)

    def runner_config(self, name: str) -> RunnerConfig:
        """Parse the runner configuration at a branch's last observed commit.

        Raises:
            BranchNotFoundError: If the branch is unknown
            NotFoundError: If the branch has no runner file
            RunnerConfigError: If the runner file is invalid
        """
        state = self.query.get_branch(name)
        data = self.client.read_file(state.commit, self.runner_file)
        return parse_runner_config(data, self.repo_name, name)

    def close(self) -> None:
        self.client.close()


class PollScheduler:
    """Runs watcher passes on a background thread at a fixed interval."""

    def __init__(self, watcher: RepoWatcher, interval: float) -> None:
        self.watcher = watcher
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, run_immediately: bool = True) -> None:
        """Start polling.

        Args:
            run_immediately: Run the first pass right away instead of after
                one interval
        """
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop,
            args=(run_immediately,),
            name="repowatcher-poll",
            daemon=True,
        )
        self._thread.start()
        logger.info("poll_scheduler_started", interval=self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the running pass to stop and wait for the thread to exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("poll_scheduler_stopped")

    def run_once(self) -> Optional[PassResult]:
        """Run a single pass, containing every failure to this pass."""
        try:
            return self.watcher.run_pass(cancel=self._stop_event)
        except PassCancelledError:
            logger.info("pass_cancelled")
        except Exception:
            logger.exception("pass_crashed")
        return None

    def _loop(self, run_immediately: bool) -> None:
        if run_immediately:
            self.run_once()
        while not self._stop_event.wait(self.interval):
            self.run_once()
