from __future__ import annotations

import logging
import threading
import time

import uvicorn
from fastapi import FastAPI

logger = logging.getLogger(__name__)

# Room for uvicorn to finish its own drain before the deadline check.
_JOIN_MARGIN_S = 1.0


class ShutdownTimeoutError(Exception):
    pass


class ApiServer:
    """
    Serves the FastAPI app from a background thread so the listener never
    waits on, or holds up, the check worker.
    """

    def __init__(
        self,
        app: FastAPI,
        host: str = "0.0.0.0",
        port: int = 8080,
        shutdown_timeout: float = 5.0,
    ) -> None:
        self.shutdown_timeout = shutdown_timeout
        self._server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=host,
                port=port,
                timeout_graceful_shutdown=max(1, int(shutdown_timeout)),
                log_config=None,
            )
        )
        self._thread: threading.Thread | None = None

    @property
    def started(self) -> bool:
        return self._server.started

    @property
    def bound_port(self) -> int:
        """Actual listening port, useful when configured with port 0."""
        return self._server.servers[0].sockets[0].getsockname()[1]

    def start(self, wait_s: float = 5.0) -> None:
        logger.info(
            "Starting HTTP server on %s:%d",
            self._server.config.host,
            self._server.config.port,
        )
        self._thread = threading.Thread(
            target=self._server.run, name="api-server", daemon=True
        )
        self._thread.start()

        deadline = time.monotonic() + wait_s
        while not self._server.started:
            if not self._thread.is_alive():
                raise RuntimeError("HTTP server failed to start")
            if time.monotonic() > deadline:
                raise RuntimeError(f"HTTP server did not start within {wait_s}s")
            time.sleep(0.05)

    def stop(self, timeout: float | None = None) -> None:
        """
        Stop accepting connections and drain in-flight requests.
        Raises ShutdownTimeoutError if the server is still running at the deadline.
        """
        if self._thread is None:
            return
        timeout = self.shutdown_timeout if timeout is None else timeout

        self._server.should_exit = True
        self._thread.join(timeout + _JOIN_MARGIN_S)
        if self._thread.is_alive():
            self._server.force_exit = True
            raise ShutdownTimeoutError(
                f"HTTP server did not shut down within {timeout}s"
            )
        logger.info("HTTP server stopped")
