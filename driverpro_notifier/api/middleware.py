"""HTTP middleware: security headers and per-client rate limiting."""

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from driverpro_notifier.logging import get_logger

logger = get_logger(__name__, component="http")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds conservative security headers to every response."""

    HEADERS = {
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
        "Cross-Origin-Opener-Policy": "same-origin",
        "Cross-Origin-Resource-Policy": "same-origin",
        "Referrer-Policy": "no-referrer",
        "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
        "X-Content-Type-Options": "nosniff",
        "X-DNS-Prefetch-Control": "off",
        "X-Frame-Options": "SAMEORIGIN",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class FixedWindowRateLimiter:
    """Counts requests per client within fixed time windows."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def allow(self, client_id: str) -> bool:
        """Record one request and return whether it is within the limit."""
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(client_id, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[client_id] = (started, count)
            self._prune(now)
        return count <= self.max_requests

    def _prune(self, now: float) -> None:
        expired = [
            client_id
            for client_id, (started, _) in self._windows.items()
            if now - started >= self.window_seconds
        ]
        for client_id in expired:
            del self._windows[client_id]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects clients that exceed the limiter's budget with HTTP 429."""

    def __init__(self, app, limiter: FixedWindowRateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_id = request.client.host if request.client else "unknown"
        if not self.limiter.allow(client_id):
            logger.warning(
                f"Rate limit exceeded for {client_id}",
                extra={"event": "http.rate_limited", "client": client_id, "path": request.url.path},
            )
            return JSONResponse(
                status_code=429,
                content={
                    "status": "error",
                    "message": "Trop de requêtes, veuillez réessayer plus tard",
                },
                headers={"Retry-After": str(self.limiter.window_seconds)},
            )
        return await call_next(request)
