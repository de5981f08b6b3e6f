"""repowatcher - watch a git remote and serve per-branch snapshots."""

__version__ = "0.1.0"
