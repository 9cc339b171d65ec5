"""Notifier: turns a resolved template and payload into one provider send.

Each call makes exactly one delivery attempt. A failed send is logged with
the provider's error detail and raised to the caller; nothing is retried or
queued, so a customer email lost to a provider outage stays lost.
"""

import logging
from typing import Optional

from driverpro_notifier.logging import get_logger
from driverpro_notifier.utils.timestamps import format_timestamp, utc_now

from .models import (
    EmailDeliveryError,
    EmailRequest,
    NotificationPayload,
    NotificationResult,
    TemplateDescriptor,
)
from .sendgrid_client import SendGridClient
from .templates import DiagnosticTemplateRenderer, template_key

logger = get_logger(__name__, component="notifier")

DEFAULT_SENDER_NAME = "DriverPro Notifications"
DIAGNOSTIC_SUBJECT = "Test technique DriverPro"


class Notifier:
    """Sends customer notifications and the diagnostic email."""

    def __init__(
        self,
        email_client: SendGridClient,
        sender_email: str,
        sender_name: str = DEFAULT_SENDER_NAME,
        environment: str = "development",
        diagnostic_renderer: Optional[DiagnosticTemplateRenderer] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.email_client = email_client
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.environment = environment
        self.diagnostic_renderer = diagnostic_renderer or DiagnosticTemplateRenderer()
        self.logger = logger_instance or logger

    def send(
        self,
        recipient_email: str,
        template: TemplateDescriptor,
        payload: NotificationPayload,
    ) -> NotificationResult:
        """Send a templated notification for one reservation.

        Raises:
            EmailDeliveryError: If the provider rejects the request or is unreachable
        """
        key = template_key(template.status_key)
        request = EmailRequest(
            to=recipient_email,
            from_email=self.sender_email,
            from_name=self.sender_name,
            subject=template.subject,
            template_id=template.template_id,
            template_data=payload.to_template_data(),
        )

        self.logger.info(
            f"Sending email to {recipient_email}",
            extra={"event": "notifier.send.started", "template_key": key},
        )
        message_id = self._deliver(request, key)
        self.logger.info(
            "Email sent successfully",
            extra={
                "event": "notifier.send.succeeded",
                "template_key": key,
                "message_id": message_id,
            },
        )

        return NotificationResult(
            reservation_id=payload.reservation_id,
            recipient=recipient_email,
            template_key=key,
            message_id=message_id,
        )

    def send_diagnostic(self, recipient_email: str) -> NotificationResult:
        """Send the fixed technical test email.

        Raises:
            EmailDeliveryError: If the provider rejects the request or is unreachable
            NotificationTemplateError: If the local templates cannot be rendered
        """
        bodies = self.diagnostic_renderer.render(
            {"environment": self.environment, "sent_at": format_timestamp(utc_now())}
        )
        request = EmailRequest(
            to=recipient_email,
            from_email=self.sender_email,
            from_name=self.sender_name,
            subject=DIAGNOSTIC_SUBJECT,
            text_body=bodies["text_body"],
            html_body=bodies["html_body"],
        )

        message_id = self._deliver(request, "diagnostic")
        self.logger.info(
            f"Diagnostic email sent to {recipient_email}",
            extra={"event": "notifier.diagnostic.succeeded", "message_id": message_id},
        )
        return NotificationResult(
            reservation_id=None,
            recipient=recipient_email,
            template_key="diagnostic",
            message_id=message_id,
        )

    def _deliver(self, request: EmailRequest, key: str) -> Optional[str]:
        try:
            return self.email_client.send(request)
        except EmailDeliveryError as e:
            self.logger.error(
                f"Email delivery failed: {e}",
                extra={
                    "event": "notifier.send.failed",
                    "template_key": key,
                    "status_code": e.status_code,
                    "provider_response": e.response_body,
                },
            )
            raise
