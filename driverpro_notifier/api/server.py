"""Runs the HTTP application with uvicorn on a background thread.

The main thread keeps ownership of signal handling; uvicorn only installs
its own handlers when it runs on the main thread.
"""

import threading
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI

from driverpro_notifier.logging import get_logger

logger = get_logger(__name__, component="http")

FatalCallback = Callable[[BaseException], None]


class HTTPServer:
    """Start/stop wrapper around a uvicorn server thread."""

    def __init__(
        self,
        app: FastAPI,
        host: str = "0.0.0.0",
        port: int = 8080,
        on_fatal: Optional[FatalCallback] = None,
    ):
        self.host = host
        self.port = port
        self.on_fatal = on_fatal
        self._server = uvicorn.Server(
            uvicorn.Config(app, host=host, port=port, log_config=None, access_log=True)
        )
        self._thread: Optional[threading.Thread] = None
        self._stopping = False

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name="http-server", daemon=True)
        self._thread.start()
        logger.info(
            f"HTTP server listening on port {self.port}",
            extra={"event": "http.starting", "host": self.host, "port": self.port},
        )

    def stop(self, timeout: float = 10.0) -> None:
        """Ask uvicorn to exit and wait for the thread to finish."""
        self._stopping = True
        self._server.should_exit = True
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout)
        logger.info("HTTP server stopped", extra={"event": "http.stopped"})

    def _run(self) -> None:
        try:
            self._server.run()
        except BaseException as e:
            logger.critical(
                f"HTTP server crashed: {e}",
                exc_info=True,
                extra={"event": "http.fatal", "error_type": type(e).__name__},
            )
            if self.on_fatal is not None:
                self.on_fatal(e)
            return

        # uvicorn returns early (e.g. port already in use) without raising.
        if not self._stopping:
            error = RuntimeError(f"HTTP server on port {self.port} exited unexpectedly")
            logger.critical(str(error), extra={"event": "http.fatal"})
            if self.on_fatal is not None:
                self.on_fatal(error)
