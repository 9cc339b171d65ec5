"""Customer notification emails.

- templates: status-to-template table and the diagnostic email templates
- formatting: French formatting of reservation data into template payloads
- SendGridClient: HTTP client for the SendGrid Mail Send API
- Notifier: one-attempt dispatch of a templated email
"""

from .formatting import build_payload, format_date, format_price
from .models import (
    EmailDeliveryError,
    EmailRequest,
    NotificationError,
    NotificationPayload,
    NotificationResult,
    NotificationTemplateError,
    TemplateDescriptor,
    TemplateNotFoundError,
)
from .sendgrid_client import SendGridClient
from .service import Notifier
from .templates import EMAIL_TEMPLATES, resolve_template, watched_statuses

__all__ = [
    "Notifier",
    "SendGridClient",
    "EMAIL_TEMPLATES",
    "resolve_template",
    "watched_statuses",
    "build_payload",
    "format_date",
    "format_price",
    "EmailRequest",
    "NotificationPayload",
    "NotificationResult",
    "TemplateDescriptor",
    "NotificationError",
    "NotificationTemplateError",
    "TemplateNotFoundError",
    "EmailDeliveryError",
]
