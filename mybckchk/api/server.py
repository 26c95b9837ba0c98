"""FastAPI app answering every request from the published backend state.

Any path, any standard HTTP method: 200 "OK" when the backend is available,
500 "NOT OK" otherwise. Handlers only read the state store, so a slow or
stalled probe cycle never delays a response.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from mybckchk import __version__
from mybckchk.scheduler import ProbeScheduler
from mybckchk.state import BackendState

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"]


def create_app(state: BackendState, scheduler: ProbeScheduler | None = None) -> FastAPI:
    """Build the health-check app; the scheduler runs for the app's lifetime."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if scheduler is not None:
            await scheduler.start()
        yield
        if scheduler is not None:
            await scheduler.stop()

    # No docs routes: every path belongs to the health check
    app = FastAPI(
        title="mybckchk - MySQL backend checker",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.backend_state = state
    app.state.scheduler = scheduler

    @app.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def backend_status(request: Request) -> PlainTextResponse:
        if request.app.state.backend_state.read():
            return PlainTextResponse("OK", status_code=200)
        return PlainTextResponse("NOT OK", status_code=500)

    return app
