"""Result and state types for the reservation listener."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from driverpro_notifier.notifications.models import NotificationResult


class SubscriptionState(str, Enum):
    """Lifecycle of the subscription manager.

    disconnected -> subscribing -> listening -> (error) disconnected -> ...
    stopped is terminal and only reached through unsubscribe().
    """

    DISCONNECTED = "disconnected"
    SUBSCRIBING = "subscribing"
    LISTENING = "listening"
    STOPPED = "stopped"


@dataclass
class ChangeOutcome:
    """What happened to one modified reservation.

    Attributes:
        reservation_id: Reservation document id
        status: "sent", "skipped" (unusable record) or "failed"
        reason: HandlerError reason, or "unexpected_error"
        error: Error message when not sent
        result: Notifier result when sent
    """

    reservation_id: str
    status: str
    reason: Optional[str] = None
    error: Optional[str] = None
    result: Optional[NotificationResult] = None

    def is_success(self) -> bool:
        return self.status == "sent"
