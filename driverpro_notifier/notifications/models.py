"""Data models and exceptions for customer notifications."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class TemplateNotFoundError(NotificationError):
    """No template is registered for a reservation status."""

    def __init__(self, template_key: str) -> None:
        super().__init__(f"Template {template_key} not found")
        self.template_key = template_key


class NotificationTemplateError(NotificationError):
    """A local email template could not be rendered."""

    pass


class EmailDeliveryError(NotificationError):
    """The email provider rejected a send request or could not be reached.

    Attributes:
        status_code: HTTP status returned by the provider (None on network errors)
        response_body: Provider error body, kept for logging
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


@dataclass(frozen=True)
class TemplateDescriptor:
    """Subject line and provider template id for one reservation status."""

    status_key: str
    subject: str
    template_id: str


class TripPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    origin: str = Field(alias="from")
    destination: str = Field(alias="to")


class NotificationPayload(BaseModel):
    """Variables handed to the provider's dynamic template.

    Serialized with ``model_dump(by_alias=True)``; the aliases are the
    variable names the email templates reference.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    reservation_id: str = Field(alias="reservationId")
    client_name: str = Field(alias="clientName")
    driver_name: str = Field(alias="driverName")
    driver_phone: str = Field(alias="driverPhone")
    date: str
    trip: TripPayload
    price: str

    def to_template_data(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class EmailRequest:
    """A provider-neutral send request.

    Either ``template_id`` (with ``template_data``) or at least one of the
    bodies must be set.
    """

    to: str
    from_email: str
    from_name: Optional[str]
    subject: str
    template_id: Optional[str] = None
    template_data: Dict[str, Any] = field(default_factory=dict)
    text_body: Optional[str] = None
    html_body: Optional[str] = None


@dataclass
class NotificationResult:
    """Outcome of one successful dispatch.

    Attributes:
        reservation_id: Short reservation id shown in the email (None for diagnostics)
        recipient: Address the email was sent to
        template_key: Registered template key, or "diagnostic"
        message_id: Provider message id when returned
    """

    reservation_id: Optional[str]
    recipient: str
    template_key: str
    message_id: Optional[str] = None
