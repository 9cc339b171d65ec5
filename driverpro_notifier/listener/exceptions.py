"""Per-reservation failures raised by the change handler.

Every HandlerError is confined to the reservation it was raised for: the
subscription manager logs it and moves on to the next change.
"""

from typing import Any, Optional


class HandlerError(Exception):
    """Base class for failures processing one reservation change.

    Attributes:
        reservation_id: Reservation being processed
        reason: Stable machine-readable label used in logs and outcomes
        outcome: "skipped" when the record itself is unusable, "failed" for I/O errors
    """

    reason = "handler_error"
    outcome = "failed"

    def __init__(self, message: str, reservation_id: str) -> None:
        super().__init__(message)
        self.reservation_id = reservation_id


class DriverNotFoundError(HandlerError):
    """The reservation has no driver id, or the driver document does not exist."""

    reason = "driver_not_found"
    outcome = "skipped"

    def __init__(self, reservation_id: str, driver_id: Optional[str]) -> None:
        super().__init__(f"Driver {driver_id} not found", reservation_id)
        self.driver_id = driver_id


class DriverLookupError(HandlerError):
    """The driver document could not be read."""

    reason = "driver_lookup_failed"


class MissingRecipientError(HandlerError):
    """The reservation has no customer email."""

    reason = "missing_recipient"
    outcome = "skipped"

    def __init__(self, reservation_id: str) -> None:
        super().__init__("Customer email missing", reservation_id)


class UnknownStatusError(HandlerError):
    """No notification template is registered for the reservation's status."""

    reason = "unknown_status"
    outcome = "skipped"

    def __init__(self, reservation_id: str, status: Optional[str]) -> None:
        super().__init__(f"No template for status {status!r}", reservation_id)
        self.status = status


class DispatchFailedError(HandlerError):
    """The email provider did not accept the notification."""

    reason = "dispatch_failed"

    def __init__(
        self,
        message: str,
        reservation_id: str,
        status_code: Optional[int] = None,
        response_body: Optional[Any] = None,
    ) -> None:
        super().__init__(message, reservation_id)
        self.status_code = status_code
        self.response_body = response_body
