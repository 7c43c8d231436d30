"""
FastAPI application serving the latest inverter reading.

Provides:
- GET /: the most recent Reading from the shared StatusCell, or 404 while
  no poll has succeeded yet.
- GET /health: liveness probe with the package version.

The app factory receives the StatusCell explicitly. When an UpdateLoop is
passed, the lifespan performs the initial login (a failure aborts startup)
and runs the loop as a background task until shutdown.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import APIRouter, FastAPI, HTTPException, Request

from grabber.src import __version__

if TYPE_CHECKING:
    from grabber.src.services import Service
    from grabber.src.status import StatusCell
    from grabber.src.update import UpdateLoop

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/")
async def status(request: Request) -> dict:
    """Return the current (last known) status.

    Raises:
        HTTPException: 404 if no reading has been published yet.
    """
    reading = request.app.state.status_cell.read()
    if reading is None:
        raise HTTPException(status_code=404, detail="No status available yet.")
    return reading.model_dump()


@router.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Return a simple health status.

    Returns:
        dict: ``{"status": "ok", "version": ...}``.
    """
    return {"status": "ok", "version": __version__}


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    status_cell: StatusCell,
    *,
    updater: UpdateLoop | None = None,
    service: Service | None = None,
) -> FastAPI:
    """Build the FastAPI app around an explicitly owned StatusCell.

    Args:
        status_cell: The cell that request handlers read from.
        updater: Update loop to run for the app's lifetime, or None to serve
            the cell only.
        service: Service whose HTTP client is closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        task: asyncio.Task[None] | None = None
        if updater is not None:
            # Initial login failure propagates and aborts startup.
            await updater.start()
            task = asyncio.create_task(updater.run_forever(), name="update-loop")
        logger.info("Solar grabber API ready")
        try:
            yield
        finally:
            logger.info("Solar grabber API shutting down")
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            if service is not None:
                await service.aclose()

    app = FastAPI(
        title="Solar Grabber",
        description="Latest photovoltaic inverter reading from the vendor cloud.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.status_cell = status_cell
    app.include_router(router)
    return app
