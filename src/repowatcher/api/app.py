"""FastAPI application factory for the branch API.

Usage:
    >>> watcher = RepoWatcher.from_settings(settings)
    >>> scheduler = PollScheduler(watcher, settings.poll_interval)
    >>> app = create_app(watcher, scheduler=scheduler)
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request

from repowatcher import __version__
from repowatcher.api.models import HealthStatus
from repowatcher.api.router_branches import create_branch_router
from repowatcher.watcher import PollScheduler, RepoWatcher

logger = structlog.get_logger(__name__)


def create_app(
    watcher: RepoWatcher,
    *,
    scheduler: Optional[PollScheduler] = None,
) -> FastAPI:
    """Create a FastAPI application serving the watcher's branch cache.

    Args:
        watcher: Watcher whose store is served
        scheduler: Poll scheduler started and stopped with the application

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if scheduler is not None:
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()

    async def get_watcher() -> RepoWatcher:
        return watcher

    app = FastAPI(
        title="repowatcher",
        description="Branch metadata and snapshot archives for a watched git repository",
        version=__version__,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status=status,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )

    app.include_router(create_branch_router(get_watcher=get_watcher))

    @app.get("/health", response_model=HealthStatus, tags=["infrastructure"])
    async def health_check() -> HealthStatus:
        """Liveness probe."""
        return HealthStatus(status="ok", branches=len(watcher.store))

    return app


__all__ = ["create_app"]
