"""Change handler: from one modified reservation to one customer email."""

import logging
from typing import Any, Dict, Optional

from driverpro_notifier.domain.models import Driver, Reservation
from driverpro_notifier.logging import get_logger
from driverpro_notifier.notifications.formatting import DEFAULT_TIMEZONE, build_payload
from driverpro_notifier.notifications.models import (
    EmailDeliveryError,
    NotificationResult,
    TemplateNotFoundError,
)
from driverpro_notifier.notifications.service import Notifier
from driverpro_notifier.notifications.templates import resolve_template
from driverpro_notifier.store.base import DocumentStore
from driverpro_notifier.store.exceptions import DocumentReadError

from .exceptions import (
    DispatchFailedError,
    DriverLookupError,
    DriverNotFoundError,
    MissingRecipientError,
    UnknownStatusError,
)

logger = get_logger(__name__, component="handler")


class ReservationChangeHandler:
    """Processes one reservation change.

    Steps, each of which can end processing with a HandlerError:
    1. Fetch the driver referenced by ``driverId`` (DriverNotFoundError, DriverLookupError)
    2. Require a customer email (MissingRecipientError)
    3. Resolve the template for the status (UnknownStatusError)
    4. Build the payload
    5. Send through the notifier (DispatchFailedError)

    The handler keeps no state between calls and never retries.
    """

    def __init__(
        self,
        store: DocumentStore,
        notifier: Notifier,
        drivers_collection: str = "drivers",
        timezone: str = DEFAULT_TIMEZONE,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.drivers_collection = drivers_collection
        self.timezone = timezone
        self.logger = logger_instance or logger

    def handle(self, reservation_id: str, data: Dict[str, Any]) -> NotificationResult:
        """Notify the customer of a reservation's current status.

        Args:
            reservation_id: Reservation document id
            data: Reservation document fields at event time

        Returns:
            NotificationResult for the email that was sent

        Raises:
            HandlerError: A subclass describing why no email was sent
        """
        self.logger.info(
            f"Processing reservation {reservation_id}",
            extra={"event": "handler.started"},
        )
        reservation = Reservation.from_document(reservation_id, data)

        driver = self._fetch_driver(reservation)

        if not reservation.customer_email:
            raise MissingRecipientError(reservation_id)

        try:
            template = resolve_template(reservation.status or "")
        except TemplateNotFoundError as e:
            raise UnknownStatusError(reservation_id, reservation.status) from e

        payload = build_payload(reservation, driver, self.timezone)

        try:
            result = self.notifier.send(reservation.customer_email, template, payload)
        except EmailDeliveryError as e:
            raise DispatchFailedError(
                f"Email dispatch failed: {e}",
                reservation_id,
                status_code=e.status_code,
                response_body=e.response_body,
            ) from e

        self.logger.info(
            f"Reservation {reservation_id} notified ({template.status_key})",
            extra={"event": "handler.completed", "status": template.status_key},
        )
        return result

    def _fetch_driver(self, reservation: Reservation) -> Driver:
        if not reservation.driver_id:
            raise DriverNotFoundError(reservation.id, reservation.driver_id)

        try:
            data = self.store.get_document(self.drivers_collection, reservation.driver_id)
        except DocumentReadError as e:
            raise DriverLookupError(
                f"Driver {reservation.driver_id} could not be read: {e}", reservation.id
            ) from e

        if data is None:
            raise DriverNotFoundError(reservation.id, reservation.driver_id)

        return Driver.from_document(reservation.driver_id, data)
