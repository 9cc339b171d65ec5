"""Email templates: the status-to-template table and the local diagnostic templates.

Customer notifications use provider-hosted dynamic templates, looked up by
reservation status. The diagnostic email sent by ``GET /test-email`` is
rendered locally with Jinja2.
"""

import logging
from types import MappingProxyType
from typing import Dict, List, Mapping

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from .models import NotificationTemplateError, TemplateDescriptor, TemplateNotFoundError

logger = logging.getLogger(__name__)

TEMPLATE_KEY_PREFIX = "driver_"

EMAIL_TEMPLATES: Mapping[str, TemplateDescriptor] = MappingProxyType(
    {
        "driver_confirmed": TemplateDescriptor(
            status_key="confirmed",
            subject="Course confirmée par votre chauffeur",
            template_id="d-81602ae7361f4254b28d4ca883226242",
        ),
        "driver_cancelled": TemplateDescriptor(
            status_key="cancelled",
            subject="Annulation de votre course",
            template_id="d-a4ddb97407384b4fbb9b631ac4e35d57",
        ),
    }
)


def template_key(status: str) -> str:
    return f"{TEMPLATE_KEY_PREFIX}{status}"


def resolve_template(status: str) -> TemplateDescriptor:
    """Return the template registered for a reservation status.

    Raises:
        TemplateNotFoundError: If no template is registered for ``status``
    """
    key = template_key(status)
    try:
        return EMAIL_TEMPLATES[key]
    except KeyError:
        raise TemplateNotFoundError(key) from None


def watched_statuses() -> List[str]:
    """Statuses that have a template, in table order. The subscription filter uses these."""
    return [descriptor.status_key for descriptor in EMAIL_TEMPLATES.values()]


class DiagnosticTemplateRenderer:
    """Renders the diagnostic email from templates in the email_templates package."""

    def __init__(
        self,
        template_dir: str = "email_templates",
        html_template: str = "diagnostic.html.j2",
        text_template: str = "diagnostic.txt.j2",
    ):
        self.html_template_name = html_template
        self.text_template_name = text_template
        self.env = Environment(
            loader=PackageLoader("driverpro_notifier.notifications", template_dir),
            autoescape=True,
            undefined=StrictUndefined,
        )

    def render(self, context: Dict) -> Dict[str, str]:
        """Render both bodies.

        Returns:
            Dictionary with ``html_body`` and ``text_body``

        Raises:
            NotificationTemplateError: If rendering fails
        """
        try:
            html_body = self.env.get_template(self.html_template_name).render(context)
            text_body = self.env.get_template(self.text_template_name).render(context)
        except TemplateError as e:
            error_msg = f"Diagnostic template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

        return {"html_body": html_body, "text_body": text_body}
