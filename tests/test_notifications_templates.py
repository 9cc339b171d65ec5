"""Unit tests for email templates.

Tests:
- Status-to-template table contents
- Template resolution and unknown statuses
- Watched statuses used by the subscription filter
- Diagnostic email rendering with Jinja2
"""

import pytest

from driverpro_notifier.notifications.models import (
    NotificationTemplateError,
    TemplateNotFoundError,
)
from driverpro_notifier.notifications.templates import (
    EMAIL_TEMPLATES,
    DiagnosticTemplateRenderer,
    resolve_template,
    template_key,
    watched_statuses,
)


class TestTemplateTable:
    """Test suite for the status-to-template table."""

    def test_confirmed_template(self):
        template = resolve_template("confirmed")

        assert template.subject == "Course confirmée par votre chauffeur"
        assert template.template_id == "d-81602ae7361f4254b28d4ca883226242"
        assert template.status_key == "confirmed"

    def test_cancelled_template(self):
        template = resolve_template("cancelled")

        assert template.subject == "Annulation de votre course"
        assert template.template_id == "d-a4ddb97407384b4fbb9b631ac4e35d57"

    @pytest.mark.parametrize("status", ["pending", "completed", "", "Confirmed"])
    def test_unknown_status_raises(self, status):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            resolve_template(status)

        assert exc_info.value.template_key == f"driver_{status}"
        assert str(exc_info.value) == f"Template driver_{status} not found"

    def test_template_key(self):
        assert template_key("confirmed") == "driver_confirmed"

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            EMAIL_TEMPLATES["driver_pending"] = EMAIL_TEMPLATES["driver_confirmed"]

    def test_watched_statuses_match_table(self):
        assert watched_statuses() == ["confirmed", "cancelled"]


class TestDiagnosticTemplateRenderer:
    """Test suite for DiagnosticTemplateRenderer."""

    @pytest.fixture
    def renderer(self):
        return DiagnosticTemplateRenderer()

    def test_render_both_bodies(self, renderer):
        bodies = renderer.render({"environment": "production", "sent_at": "2025-03-03T13:05:00.000Z"})

        assert "<strong>Ceci est un test technique</strong>" in bodies["html_body"]
        assert "production" in bodies["html_body"]
        assert "Ceci est un test technique" in bodies["text_body"]
        assert "2025-03-03T13:05:00.000Z" in bodies["text_body"]

    def test_html_is_escaped(self, renderer):
        bodies = renderer.render({"environment": "<script>", "sent_at": "now"})

        assert "<script>" not in bodies["html_body"]
        assert "&lt;script&gt;" in bodies["html_body"]

    def test_missing_variable_raises(self, renderer):
        with pytest.raises(NotificationTemplateError, match="rendering failed"):
            renderer.render({"environment": "development"})

    def test_missing_template_raises(self):
        renderer = DiagnosticTemplateRenderer(html_template="missing.html.j2")

        with pytest.raises(NotificationTemplateError):
            renderer.render({"environment": "development", "sent_at": "now"})
