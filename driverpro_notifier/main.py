"""Main entry point for the DriverPro notification service."""

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from driverpro_notifier.api import HTTPServer, create_app
from driverpro_notifier.config.environment import DEFAULT_ENVIRONMENT, EnvironmentConfig
from driverpro_notifier.config.exceptions import ConfigurationError
from driverpro_notifier.config.loader import load_config
from driverpro_notifier.config.models import AppConfig
from driverpro_notifier.listener import ReservationChangeHandler, SubscriptionManager
from driverpro_notifier.logging import get_logger
from driverpro_notifier.logging.config import configure_logging
from driverpro_notifier.notifications import Notifier, SendGridClient
from driverpro_notifier.store.base import DocumentStore
from driverpro_notifier.store.exceptions import CapabilityInitError
from driverpro_notifier.store.firestore import FirestoreDocumentStore

logger = get_logger(__name__, component="cli")


def load_dotenv_files() -> None:
    """Load ``.env``, or ``.env.prod`` when ENVIRONMENT=production.

    Variables already present in the environment are never overridden.
    """
    environment = os.getenv("ENVIRONMENT", DEFAULT_ENVIRONMENT)
    load_dotenv(".env.prod" if environment == "production" else ".env")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


class NotifierService:
    """Owns the running components and decides how the process ends.

    Shutdown is requested by a signal (exit code 0) or by a fatal error
    reported from any background thread (exit code 1). Either way the
    subscription is released before the HTTP listener is closed.
    """

    def __init__(
        self,
        manager: SubscriptionManager,
        http_server: Optional[HTTPServer] = None,
    ):
        self.manager = manager
        self.http_server = http_server
        self.shutdown_event = threading.Event()
        self.fatal_error: Optional[BaseException] = None
        self._fatal_lock = threading.Lock()

    def fail(self, error: BaseException) -> None:
        """Record a fatal error and wake the main thread. Only the first error is kept."""
        with self._fatal_lock:
            if self.fatal_error is None:
                self.fatal_error = error
        self.shutdown_event.set()

    def request_shutdown(self, signum: Optional[int] = None) -> None:
        if signum is not None:
            logger.info(
                f"Received {signal.Signals(signum).name}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
        self.shutdown_event.set()

    def start(self) -> None:
        self.manager.start()
        if self.http_server is not None:
            self.http_server.start()

    def stop(self) -> None:
        self.manager.shutdown()
        if self.http_server is not None:
            self.http_server.stop()

    def run(self) -> int:
        """Start everything, block until shutdown, tear down, return the exit code."""
        try:
            self.start()
            self.shutdown_event.wait()
        finally:
            self.stop()
        return 1 if self.fatal_error is not None else 0


def build_service(
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    store: DocumentStore,
    email_client: Optional[SendGridClient] = None,
    with_http: bool = True,
) -> NotifierService:
    """Wire the store and email capabilities into the listener and HTTP app."""
    email_client = email_client or SendGridClient(
        env_config.sendgrid_api_key, timeout=app_config.email.request_timeout
    )
    notifier = Notifier(
        email_client=email_client,
        sender_email=env_config.sendgrid_from_email,
        sender_name=app_config.email.sender_name,
        environment=env_config.environment,
    )
    handler = ReservationChangeHandler(
        store=store,
        notifier=notifier,
        drivers_collection=app_config.listener.drivers_collection,
        timezone=app_config.email.timezone,
    )
    manager = SubscriptionManager(
        store=store,
        handler=handler,
        collection=app_config.listener.reservations_collection,
        reconnect_delay_seconds=app_config.listener.reconnect_delay_seconds,
        health_check_interval_seconds=app_config.listener.health_check_interval_seconds,
    )
    service = NotifierService(manager)
    manager.on_fatal = service.fail

    if with_http:
        app = create_app(notifier, env_config.test_email, app_config.http)
        service.http_server = HTTPServer(
            app,
            host=app_config.http.host,
            port=env_config.port,
            on_fatal=service.fail,
        )

    return service


def install_process_hooks(service: NotifierService) -> None:
    """Route SIGINT/SIGTERM and uncaught thread exceptions to the service."""

    def signal_handler(signum, frame):
        service.request_shutdown(signum)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    def thread_excepthook(args: threading.ExceptHookArgs) -> None:
        if issubclass(args.exc_type, SystemExit):
            return
        logger.critical(
            f"Uncaught exception in thread {args.thread.name if args.thread else '?'}",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            extra={"event": "service.uncaught_exception"},
        )
        service.fail(args.exc_value)

    threading.excepthook = thread_excepthook


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="DriverPro Notifications - emails customers when their reservation is confirmed or cancelled"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML configuration file (default: config.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Validate configuration and environment, then exit",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the service until a termination signal or a fatal error.

    Returns:
        Exit code: 0 on clean shutdown, 1 on configuration, initialization or fatal errors
    """
    start_time = time.time()
    load_dotenv_files()
    args = parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1

    if args.check_config:
        print("Configuration is valid")
        return 0

    configure_logging(
        level=env_config.log_level,
        format_type=app_config.logging.format,
        environment=env_config.environment,
    )
    logger.info(
        "DriverPro notifier starting",
        extra={
            "event": "service.starting",
            "environment": env_config.environment,
            "port": env_config.port,
        },
    )

    try:
        store = FirestoreDocumentStore.from_config(env_config)
    except CapabilityInitError as e:
        logger.critical(
            f"Store initialization failed: {e}",
            extra={"event": "service.startup.failed", "error_type": type(e).__name__},
        )
        return 1

    service = build_service(app_config, env_config, store)
    install_process_hooks(service)

    try:
        exit_code = service.run()
    except Exception as e:
        logger.critical(
            "Fatal error in main thread",
            exc_info=True,
            extra={"event": "service.fatal", "error_type": type(e).__name__},
        )
        return 1

    if service.fatal_error is not None:
        logger.critical(
            f"Stopping after fatal error: {service.fatal_error}",
            extra={"event": "service.fatal", "error_type": type(service.fatal_error).__name__},
        )

    logger.info(
        "DriverPro notifier stopped",
        extra={
            "event": "service.stopping",
            "exit_code": exit_code,
            "uptime_seconds": round(time.time() - start_time, 2),
        },
    )
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
