"""French formatting of reservation data for email templates.

Everything here is pure and lenient: missing or malformed optional values
fall back to placeholders instead of raising.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional
from zoneinfo import ZoneInfo

from driverpro_notifier.domain.models import Driver, Reservation
from driverpro_notifier.utils.timestamps import ensure_utc, parse_iso_datetime

from .models import NotificationPayload, TripPayload

DEFAULT_TIMEZONE = "Europe/Paris"

DEFAULT_CLIENT_NAME = "Client"
DEFAULT_DRIVER_NAME = "Votre chauffeur"
DEFAULT_DRIVER_PHONE = "Non disponible"
TRIP_PLACEHOLDER = "Non spécifié"
DATE_PLACEHOLDER = "Date non spécifiée"

RESERVATION_ID_LENGTH = 8

WEEKDAYS = ("lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche")
MONTHS = (
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
)

_CENTS = Decimal("0.01")


def to_datetime(value: Any) -> Optional[datetime]:
    """Interpret a stored date value as a UTC datetime.

    Accepts datetimes (including Firestore timestamps), dates, ISO 8601
    strings and epoch milliseconds. Returns None for anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        return parse_iso_datetime(value)
    return None


def format_date(value: Any, tz: str = DEFAULT_TIMEZONE) -> str:
    """Render a date the way fr-FR long formatting does: ``lundi 3 mars 2025 à 14:05``."""
    dt = to_datetime(value)
    if dt is None:
        return DATE_PLACEHOLDER

    try:
        local = dt.astimezone(ZoneInfo(tz))
    except (OverflowError, ValueError):
        # Shifting to local time can leave the representable range near year 1 or 9999.
        return DATE_PLACEHOLDER
    weekday = WEEKDAYS[local.weekday()]
    month = MONTHS[local.month - 1]
    return f"{weekday} {local.day} {month} {local.year} à {local:%H:%M}"


def format_price(value: Any) -> str:
    """Exactly two decimals, rounding half up. Absent or invalid prices render as 0.00."""
    if value is None or isinstance(value, bool):
        return "0.00"
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return "0.00"
    if not amount.is_finite():
        return "0.00"
    return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))


def short_reservation_id(reservation_id: str) -> str:
    return reservation_id[:RESERVATION_ID_LENGTH]


def build_payload(
    reservation: Reservation, driver: Driver, tz: str = DEFAULT_TIMEZONE
) -> NotificationPayload:
    """Assemble template variables for a reservation and its driver."""
    trip = reservation.trip
    return NotificationPayload(
        reservation_id=short_reservation_id(reservation.id),
        client_name=reservation.customer_name or DEFAULT_CLIENT_NAME,
        driver_name=driver.name or DEFAULT_DRIVER_NAME,
        driver_phone=driver.phone or DEFAULT_DRIVER_PHONE,
        date=format_date(reservation.scheduled_at, tz),
        trip=TripPayload(
            origin=(trip.origin if trip else None) or TRIP_PLACEHOLDER,
            destination=(trip.destination if trip else None) or TRIP_PLACEHOLDER,
        ),
        price=format_price(reservation.price),
    )
