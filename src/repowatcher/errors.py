"""Exception types raised by the watcher and its collaborators."""


class RepoWatcherError(Exception):
    """Base class for all repowatcher errors."""


class TransportError(RepoWatcherError):
    """Remote listing, fetch or object read failed."""


class NotFoundError(RepoWatcherError):
    """A commit, branch or path could not be resolved locally."""


class EncodingError(RepoWatcherError):
    """Packaging a file tree into an archive failed."""


class PassCancelledError(RepoWatcherError):
    """A detection/build pass was stopped by the cancellation signal."""


class BranchNotFoundError(RepoWatcherError, LookupError):
    """The requested branch has never been observed."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Branch not found: {name}")
        self.name = name


class SnapshotNotReadyError(RepoWatcherError, LookupError):
    """The branch is known but no snapshot has been built for it yet."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No snapshot built yet for branch: {name}")
        self.name = name


class RunnerConfigError(RepoWatcherError, ValueError):
    """A runner configuration file is missing required values."""
