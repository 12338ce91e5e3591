"""
FastAPI application factory and server thread for the snapshot API.

The API is the only reader of the shared snapshot. It runs in its own thread
with its own uvicorn event loop so request handling is scheduled
independently of the acquisition ticks; the snapshot lock is the only
coordination between the two.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI

from smawatch.src.api.health import router as health_router
from smawatch.src.api.values import router as values_router

if TYPE_CHECKING:
    from smawatch.src.snapshot import Snapshot

logger = logging.getLogger(__name__)


def create_app(snapshot: Snapshot) -> FastAPI:
    """Build the API application around an existing snapshot.

    Args:
        snapshot: The shared snapshot; stored on ``app.state.snapshot``.

    Returns:
        FastAPI: The configured application.
    """
    app = FastAPI(
        title="SMA Watch",
        description="Current DC string readings from the SMA inverters.",
        version="0.1.0",
    )
    app.state.snapshot = snapshot
    app.include_router(values_router)
    app.include_router(health_router)
    return app


class ApiServerThread:
    """Runs a uvicorn server for *app* on a dedicated daemon thread.

    uvicorn installs no signal handlers outside the main thread, so process
    shutdown stays with the caller, which calls :meth:`stop`.

    Args:
        app: The ASGI application to serve.
        host: Bind address.
        port: TCP port.
    """

    def __init__(self, app: FastAPI, host: str, port: int) -> None:
        config = uvicorn.Config(app, host=host, port=port, log_config=None, access_log=False)
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(target=self._run, name="snapshot-api", daemon=True)
        self._host = host
        self._port = port

    def _run(self) -> None:
        try:
            self._server.run()
        except SystemExit:
            logger.error("Snapshot API on %s:%d failed to start", self._host, self._port)

    def start(self) -> None:
        """Start serving in the background."""
        logger.info("Snapshot API listening on %s:%d", self._host, self._port)
        self._thread.start()

    def stop(self, timeout_s: float = 5.0) -> None:
        """Ask the server to exit and wait for the thread."""
        self._server.should_exit = True
        self._thread.join(timeout_s)
