"""HTTP API for branch metadata and snapshots."""

from repowatcher.api.app import create_app
from repowatcher.api.router_branches import create_branch_router

__all__ = ["create_app", "create_branch_router"]
