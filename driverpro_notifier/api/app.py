"""FastAPI application exposing liveness and diagnostic endpoints."""

from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from driverpro_notifier import __version__
from driverpro_notifier.config.models import HTTPConfig
from driverpro_notifier.logging import get_logger
from driverpro_notifier.notifications.models import NotificationError
from driverpro_notifier.notifications.service import Notifier
from driverpro_notifier.utils.timestamps import format_timestamp, utc_now

from .middleware import FixedWindowRateLimiter, RateLimitMiddleware, SecurityHeadersMiddleware

logger = get_logger(__name__, component="http")


def create_app(notifier: Notifier, test_email: str, http_config: Optional[HTTPConfig] = None) -> FastAPI:
    """Build the HTTP application.

    Args:
        notifier: Notifier used by the diagnostic endpoint
        test_email: Recipient of the diagnostic email
        http_config: Rate limit settings (defaults when None)
    """
    http_config = http_config or HTTPConfig()

    app = FastAPI(
        title="DriverPro Notifications",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(
        RateLimitMiddleware,
        limiter=FixedWindowRateLimiter(
            max_requests=http_config.rate_limit_requests,
            window_seconds=http_config.rate_limit_window_seconds,
        ),
    )
    # Added last so it wraps rate-limited responses too.
    app.add_middleware(SecurityHeadersMiddleware)

    @app.get("/")
    def liveness():
        return {
            "status": "success",
            "message": "Service DriverPro Notifications actif",
            "timestamp": format_timestamp(utc_now()),
        }

    @app.get("/test-email")
    def send_test_email():
        try:
            notifier.send_diagnostic(test_email)
        except NotificationError as e:
            logger.error(
                f"Test email failed: {e}",
                extra={"event": "http.test_email.failed", "error_type": type(e).__name__},
            )
            return JSONResponse(
                status_code=500,
                content={
                    "status": "error",
                    "message": "Échec envoi email",
                    "error": str(e),
                },
            )
        return {"status": "success", "message": "Email de test envoyé"}

    return app
