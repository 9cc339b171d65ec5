"""SendGrid v3 Mail Send client.

Thin wrapper around ``requests`` that turns an EmailRequest into a
``POST /v3/mail/send`` call and raises EmailDeliveryError with the
provider's error body on failure.
"""

from typing import Any, Dict, Optional

import requests
from email_validator import EmailNotValidError, validate_email

from driverpro_notifier.logging import get_logger

from .models import EmailDeliveryError, EmailRequest

logger = get_logger(__name__, component="email")

SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"


class SendGridClient:
    """Sends EmailRequests through the SendGrid HTTP API.

    A ``requests.Session`` can be injected for testing.
    """

    def __init__(
        self,
        api_key: str,
        timeout: int = 15,
        api_url: str = SENDGRID_API_URL,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ValueError("SendGrid API key cannot be empty")

        self.api_url = api_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def send(self, email: EmailRequest) -> Optional[str]:
        """Send one email.

        Returns:
            The provider message id (``X-Message-Id`` header), if any

        Raises:
            EmailDeliveryError: If the request is invalid, the provider is
                unreachable, or it answers with a non-2xx status
        """
        body = build_mail_body(email)

        try:
            response = self._session.post(self.api_url, json=body, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise EmailDeliveryError(
                f"SendGrid request timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.RequestException as e:
            raise EmailDeliveryError(f"SendGrid request failed: {e}") from e

        if response.status_code >= 300:
            raise EmailDeliveryError(
                f"SendGrid returned HTTP {response.status_code}",
                status_code=response.status_code,
                response_body=_response_body(response),
            )

        message_id = response.headers.get("X-Message-Id")
        logger.debug(
            f"SendGrid accepted message for {email.to}",
            extra={
                "event": "email.provider.accepted",
                "status_code": response.status_code,
                "message_id": message_id,
            },
        )
        return message_id


def build_mail_body(email: EmailRequest) -> Dict[str, Any]:
    """Build the Mail Send JSON body.

    Raises:
        EmailDeliveryError: If the recipient address is invalid or the request has no content
    """
    try:
        recipient = validate_email(email.to, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise EmailDeliveryError(f"Invalid recipient address '{email.to}': {e}") from e

    personalization: Dict[str, Any] = {"to": [{"email": recipient}]}
    sender: Dict[str, str] = {"email": email.from_email}
    if email.from_name:
        sender["name"] = email.from_name

    body: Dict[str, Any] = {
        "personalizations": [personalization],
        "from": sender,
        "subject": email.subject,
    }

    if email.template_id:
        body["template_id"] = email.template_id
        personalization["dynamic_template_data"] = email.template_data
    else:
        content = []
        if email.text_body:
            content.append({"type": "text/plain", "value": email.text_body})
        if email.html_body:
            content.append({"type": "text/html", "value": email.html_body})
        if not content:
            raise EmailDeliveryError("Email request has neither a template nor a body")
        body["content"] = content

    return body


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
