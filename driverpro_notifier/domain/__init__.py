"""Domain models for the DriverPro notifier."""

from .models import (
    ChangeBatch,
    ChangeEvent,
    ChangeKind,
    Driver,
    Reservation,
    ReservationStatus,
    SubscriptionFilter,
    Trip,
)

__all__ = [
    "Reservation",
    "ReservationStatus",
    "Trip",
    "Driver",
    "ChangeKind",
    "ChangeEvent",
    "ChangeBatch",
    "SubscriptionFilter",
]
