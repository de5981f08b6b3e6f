"""FastAPI router for branch endpoints.

The router is a thin shell: all state lives in the watcher's branch store,
and no request ever triggers synchronization.
"""

# NOTE: FastAPI needs runtime annotations for Depends(), so this module does
# not use `from __future__ import annotations`.

import re
from typing import Annotated, Any, List
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response

from repowatcher.api.models import BranchInfo
from repowatcher.errors import (
    BranchNotFoundError,
    NotFoundError,
    RunnerConfigError,
    SnapshotNotReadyError,
)
from repowatcher.models.runner import RunnerConfig
from repowatcher.watcher import RepoWatcher

_UNSAFE_FILENAME_CHARS = re.compile(r'[^\x20-\x7e]|["\\]')


def content_disposition(branch_name: str) -> str:
    """Attachment header for a branch snapshot.

    Header values must be latin-1, so non-ASCII branch names are sent as an
    RFC 5987 ``filename*`` next to an ASCII ``filename`` fallback.
    """
    filename = branch_name.replace("/", "-") + ".tar.gz"
    fallback = _UNSAFE_FILENAME_CHARS.sub("_", filename)
    if fallback == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def create_branch_router(*, get_watcher: Any) -> APIRouter:
    """Create the router serving branch metadata and snapshots.

    Args:
        get_watcher: Dependency callable returning the RepoWatcher

    Returns:
        Configured APIRouter
    """
    router = APIRouter(prefix="/branches", tags=["branches"])

    @router.get("", response_model=List[BranchInfo], summary="List branches")
    def list_branches(
        watcher: Annotated[RepoWatcher, Depends(get_watcher)],
    ) -> List[BranchInfo]:
        """All known branches, most recently updated first."""
        return [BranchInfo.from_state(s) for s in watcher.query.list_branches()]

    # Branch names may contain slashes, so the suffixed routes come first.
    @router.get(
        "/{name:path}/contents",
        response_class=Response,
        summary="Download branch snapshot",
        responses={200: {"content": {"application/gzip": {}}}},
    )
    def get_branch_contents(
        name: str,
        watcher: Annotated[RepoWatcher, Depends(get_watcher)],
    ) -> Response:
        """The cached gzipped tar archive of a branch."""
        try:
            payload = watcher.query.get_snapshot(name)
        except (BranchNotFoundError, SnapshotNotReadyError) as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

        return Response(
            content=payload,
            media_type="application/gzip",
            headers={"Content-Disposition": content_disposition(name)},
        )

    @router.get("/{name:path}/runner", response_model=RunnerConfig, summary="Get runner config")
    def get_branch_runner(
        name: str,
        watcher: Annotated[RepoWatcher, Depends(get_watcher)],
    ) -> RunnerConfig:
        """The runner configuration at the branch's last observed commit."""
        try:
            return watcher.runner_config(name)
        except (BranchNotFoundError, NotFoundError) as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except RunnerConfigError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

    @router.get("/{name:path}", response_model=BranchInfo, summary="Get branch")
    def get_branch(
        name: str,
        watcher: Annotated[RepoWatcher, Depends(get_watcher)],
    ) -> BranchInfo:
        """One branch by name."""
        try:
            return BranchInfo.from_state(watcher.query.get_branch(name))
        except BranchNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

    return router


__all__ = ["content_disposition", "create_branch_router"]
