"""Access to the watched repository."""

from repowatcher.repository.base import BaseRepositoryClient, TreeEntry
from repowatcher.repository.git_client import GitRepositoryClient, auth_environment

__all__ = [
    "BaseRepositoryClient",
    "TreeEntry",
    "GitRepositoryClient",
    "auth_environment",
]
