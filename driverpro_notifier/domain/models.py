"""Core domain models for reservations, drivers, and store change events.

- Reservation / Trip: trip booking records mutated by the booking app
- Driver: reference data looked up for each notification
- ChangeEvent / ChangeBatch: what the document store reports when records change
- SubscriptionFilter: the query predicate a subscription is opened with

Records are written by another system, so parsing is lenient: malformed
optional fields become None instead of failing validation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReservationStatus(str, Enum):
    """Statuses the booking app is known to write."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


def _optional_text(value: Any) -> Optional[str]:
    """Strip strings; anything else (or a blank string) becomes None."""
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


class Trip(BaseModel):
    """Origin and destination of a booked trip."""

    model_config = ConfigDict(populate_by_name=True)

    origin: Optional[str] = Field(None, alias="from")
    destination: Optional[str] = Field(None, alias="to")

    @field_validator("origin", "destination", mode="before")
    @classmethod
    def lenient_text(cls, v: Any) -> Optional[str]:
        return _optional_text(v)


class Reservation(BaseModel):
    """A trip booking as stored in the reservations collection.

    Field aliases match the document keys written by the booking app
    (``name``, ``email``, ``driverId``, ``trip.from``, ``trip.to``).
    ``scheduled_at`` keeps the raw stored value: an ISO string, a datetime
    (Firestore timestamp) or epoch milliseconds.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: Optional[str] = None
    customer_name: Optional[str] = Field(None, alias="name")
    customer_email: Optional[str] = Field(None, alias="email")
    driver_id: Optional[str] = Field(None, alias="driverId")
    trip: Optional[Trip] = None
    scheduled_at: Any = Field(None, alias="date")
    price: Optional[Decimal] = None

    @field_validator("status", "customer_name", "customer_email", "driver_id", mode="before")
    @classmethod
    def lenient_text(cls, v: Any) -> Optional[str]:
        return _optional_text(v)

    @field_validator("trip", mode="before")
    @classmethod
    def lenient_trip(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, Trip)) else None

    @field_validator("price", mode="before")
    @classmethod
    def lenient_price(cls, v: Any) -> Optional[Decimal]:
        if v is None or isinstance(v, bool):
            return None
        try:
            price = Decimal(str(v).strip())
        except (InvalidOperation, ValueError):
            return None
        return price if price.is_finite() else None

    @classmethod
    def from_document(cls, reservation_id: str, data: Optional[Dict[str, Any]]) -> "Reservation":
        """Build a Reservation from a document id and its raw field mapping."""
        fields = dict(data or {})
        fields.pop("id", None)
        return cls.model_validate({**fields, "id": reservation_id})


class Driver(BaseModel):
    """Driver reference data. Fetched on demand, never cached."""

    id: str
    name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def lenient_name(cls, v: Any) -> Optional[str]:
        return _optional_text(v)

    @field_validator("phone", mode="before")
    @classmethod
    def lenient_phone(cls, v: Any) -> Optional[str]:
        # Phone numbers are sometimes stored as numbers.
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return _optional_text(v)

    @classmethod
    def from_document(cls, driver_id: str, data: Optional[Dict[str, Any]]) -> "Driver":
        fields = dict(data or {})
        fields.pop("id", None)
        return cls.model_validate({**fields, "id": driver_id})


class ChangeKind(str, Enum):
    """How a document changed between two snapshots of a query."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class ChangeEvent:
    """One document change reported by a subscription.

    Attributes:
        reservation_id: Document id of the changed reservation
        kind: added, modified or removed (relative to the query results)
        data: Document fields at event time
        previous_data: Fields before the change, when the store reports them
    """

    reservation_id: str
    kind: ChangeKind
    data: Dict[str, Any] = field(default_factory=dict)
    previous_data: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ChangeBatch:
    """Changes delivered together by the store, in the store's order."""

    changes: Tuple[ChangeEvent, ...] = ()
    read_time: Optional[datetime] = None

    def __len__(self) -> int:
        return len(self.changes)

    def __iter__(self) -> Iterator[ChangeEvent]:
        return iter(self.changes)

    def modified(self) -> List[ChangeEvent]:
        """Modified changes only, in delivery order."""
        return [change for change in self.changes if change.kind is ChangeKind.MODIFIED]


@dataclass(frozen=True)
class SubscriptionFilter:
    """A single-field query predicate, e.g. ``status in (confirmed, cancelled)``."""

    field: str
    operator: str
    values: Tuple[Any, ...]

    def describe(self) -> str:
        return f"{self.field} {self.operator} {list(self.values)}"
