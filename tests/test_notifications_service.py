"""Unit tests for the Notifier.

Tests:
- Templated send builds one provider request from template and payload
- Result carries the short reservation id and provider message id
- Provider failures are logged with their detail and re-raised
- Diagnostic email rendering and dispatch
"""

from unittest.mock import Mock

import pytest

from driverpro_notifier.notifications.models import (
    EmailDeliveryError,
    NotificationPayload,
    NotificationTemplateError,
    TripPayload,
)
from driverpro_notifier.notifications.sendgrid_client import SendGridClient
from driverpro_notifier.notifications.service import DIAGNOSTIC_SUBJECT, Notifier
from driverpro_notifier.notifications.templates import (
    DiagnosticTemplateRenderer,
    resolve_template,
)


@pytest.fixture
def email_client():
    client = Mock(spec=SendGridClient)
    client.send.return_value = "msg-123"
    return client


@pytest.fixture
def notifier(email_client):
    return Notifier(
        email_client=email_client,
        sender_email="notifications@driverpro.fr",
        sender_name="DriverPro Notifications",
        environment="test",
    )


@pytest.fixture
def payload():
    return NotificationPayload(
        reservation_id="abcdefgh",
        client_name="Alice",
        driver_name="Marc Dupont",
        driver_phone="+33 6 12 34 56 78",
        date="lundi 3 mars 2025 à 14:05",
        trip=TripPayload(origin="Gare de Lyon", destination="Orly"),
        price="42.50",
    )


class TestNotifierSend:
    """Test suite for Notifier.send."""

    def test_builds_template_request(self, notifier, email_client, payload):
        notifier.send("alice@example.com", resolve_template("confirmed"), payload)

        email_client.send.assert_called_once()
        request = email_client.send.call_args[0][0]
        assert request.to == "alice@example.com"
        assert request.from_email == "notifications@driverpro.fr"
        assert request.from_name == "DriverPro Notifications"
        assert request.subject == "Course confirmée par votre chauffeur"
        assert request.template_id == "d-81602ae7361f4254b28d4ca883226242"
        assert request.template_data["reservationId"] == "abcdefgh"
        assert request.template_data["trip"] == {"from": "Gare de Lyon", "to": "Orly"}

    def test_returns_result(self, notifier, payload):
        result = notifier.send("alice@example.com", resolve_template("cancelled"), payload)

        assert result.reservation_id == "abcdefgh"
        assert result.recipient == "alice@example.com"
        assert result.template_key == "driver_cancelled"
        assert result.message_id == "msg-123"

    def test_delivery_error_is_logged_and_raised(self, email_client, payload):
        error = EmailDeliveryError(
            "SendGrid returned HTTP 400", status_code=400, response_body={"errors": ["bad"]}
        )
        email_client.send.side_effect = error
        mock_logger = Mock()
        notifier = Notifier(
            email_client=email_client,
            sender_email="notifications@driverpro.fr",
            logger_instance=mock_logger,
        )

        with pytest.raises(EmailDeliveryError) as exc_info:
            notifier.send("alice@example.com", resolve_template("confirmed"), payload)

        assert exc_info.value is error
        mock_logger.error.assert_called_once()
        extra = mock_logger.error.call_args.kwargs["extra"]
        assert extra["event"] == "notifier.send.failed"
        assert extra["status_code"] == 400
        assert extra["provider_response"] == {"errors": ["bad"]}

    def test_send_is_attempted_once(self, notifier, email_client, payload):
        email_client.send.side_effect = EmailDeliveryError("down", status_code=503)

        with pytest.raises(EmailDeliveryError):
            notifier.send("alice@example.com", resolve_template("confirmed"), payload)

        assert email_client.send.call_count == 1


class TestNotifierDiagnostic:
    """Test suite for Notifier.send_diagnostic."""

    def test_sends_rendered_bodies(self, notifier, email_client):
        result = notifier.send_diagnostic("ops@example.com")

        request = email_client.send.call_args[0][0]
        assert request.to == "ops@example.com"
        assert request.subject == DIAGNOSTIC_SUBJECT
        assert request.template_id is None
        assert "Ceci est un test technique" in request.html_body
        assert "test" in request.text_body
        assert result.template_key == "diagnostic"
        assert result.reservation_id is None
        assert result.message_id == "msg-123"

    def test_render_failure_is_not_sent(self, email_client):
        renderer = Mock(spec=DiagnosticTemplateRenderer)
        renderer.render.side_effect = NotificationTemplateError("broken")
        notifier = Notifier(
            email_client=email_client,
            sender_email="notifications@driverpro.fr",
            diagnostic_renderer=renderer,
        )

        with pytest.raises(NotificationTemplateError):
            notifier.send_diagnostic("ops@example.com")

        email_client.send.assert_not_called()

    def test_delivery_error_propagates(self, notifier, email_client):
        email_client.send.side_effect = EmailDeliveryError("unauthorized", status_code=401)

        with pytest.raises(EmailDeliveryError):
            notifier.send_diagnostic("ops@example.com")
