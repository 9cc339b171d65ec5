"""Reservation change listener: subscription management and per-change handling."""

from .exceptions import (
    DispatchFailedError,
    DriverLookupError,
    DriverNotFoundError,
    HandlerError,
    MissingRecipientError,
    UnknownStatusError,
)
from .handler import ReservationChangeHandler
from .models import ChangeOutcome, SubscriptionState
from .service import SubscriptionManager

__all__ = [
    "SubscriptionManager",
    "ReservationChangeHandler",
    "SubscriptionState",
    "ChangeOutcome",
    "HandlerError",
    "DriverNotFoundError",
    "DriverLookupError",
    "MissingRecipientError",
    "UnknownStatusError",
    "DispatchFailedError",
]
