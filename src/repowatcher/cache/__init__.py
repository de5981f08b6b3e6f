"""Change detection and snapshot cache.

The store holds one immutable BranchState per branch. The detector flags
branches whose head moved forward, the builder rebuilds their snapshots, and
the query surface serves the results.
"""

from repowatcher.cache.builder import BuildReport, SnapshotCacheBuilder
from repowatcher.cache.detector import ChangeDetector
from repowatcher.cache.query import BranchQuery
from repowatcher.cache.store import BranchMutator, BranchStateStore

__all__ = [
    "BranchStateStore",
    "BranchMutator",
    "ChangeDetector",
    "SnapshotCacheBuilder",
    "BuildReport",
    "BranchQuery",
]
