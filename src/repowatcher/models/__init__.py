"""Data models for branch tracking, settings and runner files."""

from repowatcher.models.branch import (
    BranchObservation,
    BranchState,
    CommitMetadata,
    RemoteRef,
    SnapshotStatus,
)
from repowatcher.models.config import WatcherSettings
from repowatcher.models.runner import RunnerConfig, parse_runner_config, parse_runner_config_file

__all__ = [
    "BranchObservation",
    "BranchState",
    "CommitMetadata",
    "RemoteRef",
    "SnapshotStatus",
    "WatcherSettings",
    "RunnerConfig",
    "parse_runner_config",
    "parse_runner_config_file",
]
