"""Structured logging helpers shared by every component."""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that tags records with a component while keeping per-call extras."""

    def process(self, msg, kwargs):
        # Per-call extra wins over the adapter's defaults.
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Return the named logger, wrapped so every record carries ``component`` when given.

    Example:
        >>> logger = get_logger(__name__, component="listener")
        >>> logger.info("Batch received", extra={"event": "listener.batch.received"})
    """
    logger = logging.getLogger(name)
    if component:
        return ComponentLoggerAdapter(logger, {"component": component})
    return logger
