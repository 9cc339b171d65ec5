"""Root logger setup with JSON and key-value output formats."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Literal

from .context import get_log_context

LogFormat = Literal["json", "key-value"]

SERVICE_NAME = "driverpro-notifier"

# Attributes every LogRecord has; anything else on a record came from `extra` or the context.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class ContextualFilter(logging.Filter):
    """Adds service/environment labels and the active log_context() fields to each record."""

    def __init__(self, service: str = SERVICE_NAME, environment: str = "development"):
        super().__init__()
        self.service = service
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service
        record.environment = self.environment

        for key, value in get_log_context().items():
            # Explicit `extra` on the call takes precedence over scoped context.
            if not hasattr(record, key):
                setattr(record, key, value)

        return True


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """Single-line JSON records with stable field names."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in _extra_fields(record).items():
            if isinstance(value, datetime):
                log_obj[key] = value.isoformat()
            elif isinstance(value, (str, int, float, bool, list, dict, type(None))):
                log_obj[key] = value
            else:
                log_obj[key] = str(value)

        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, ensure_ascii=False, default=str)

    @staticmethod
    def _format_timestamp(created: float) -> str:
        """ISO-8601 UTC with millisecond precision and a 'Z' suffix."""
        dt = datetime.fromtimestamp(created, tz=timezone.utc)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class KeyValueFormatter(logging.Formatter):
    """Human-readable lines: ``timestamp [level] logger: message key=value ...``."""

    HIDDEN_FIELDS = {"service", "environment"}

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)

        pairs = []
        for key, value in sorted(_extra_fields(record).items()):
            if key in self.HIDDEN_FIELDS:
                continue
            pairs.append(f"{key}={self._format_value(value)}")

        return f"{base} {' '.join(pairs)}" if pairs else base

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, bool):
            return str(value).lower()
        if value is None:
            return "null"
        if isinstance(value, datetime):
            return value.isoformat()
        text = str(value)
        if any(ch in text for ch in (" ", "=", ",")):
            return f'"{text}"'
        return text


_FORMATTERS = {
    "json": lambda: JSONFormatter(),
    "key-value": lambda: KeyValueFormatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ),
}

# Loggers whose records go through the root handler instead of their own.
_ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def configure_logging(
    level: str = "INFO",
    format_type: LogFormat = "key-value",
    environment: str = "development",
) -> None:
    """
    Install a single stdout handler on the root logger.

    Uvicorn's loggers are routed through the same handler so access logs
    share the format of the rest of the service.

    Raises:
        ValueError: If level or format_type is invalid
    """
    level_name = level.upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    make_formatter = _FORMATTERS.get(format_type)
    if make_formatter is None:
        raise ValueError(f"Invalid log format: {format_type}. Must be 'json' or 'key-value'")

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(make_formatter())
    stream_handler.addFilter(ContextualFilter(environment=environment))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(stream_handler)
    root.setLevel(numeric_level)

    for name in _ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers.clear()
        routed.propagate = True

    # The Firestore watch stream is chatty at INFO.
    logging.getLogger("google.cloud.firestore_v1.watch").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured ({level_name}, {format_type})",
        extra={"event": "logging.configured", "component": "logging"},
    )
