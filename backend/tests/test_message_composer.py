"""
Unit tests for the operator notification email composer.
"""

from datetime import datetime, timedelta, timezone

from app.models.contact import ContactSubmission
from app.services.message_composer import (
    CONTACT_EMAIL_SUBJECT,
    compose_contact_email,
    format_timestamp,
)

SUBMITTED_AT = datetime(2026, 3, 14, 9, 26, 53, 589_793, tzinfo=timezone.utc)


def _submission(**overrides) -> ContactSubmission:
    fields = {"name": "John Doe", "email": "john@example.com", "message": "Hi there"}
    fields.update(overrides)
    return ContactSubmission(**fields)


def _compose(submission=None, client_id="203.0.113.7"):
    return compose_contact_email(
        submission or _submission(),
        sender="site@gmail.com",
        recipient="admin@example.com",
        submitted_at=SUBMITTED_AT,
        client_id=client_id,
    )


class TestFormatTimestamp:
    def test_millisecond_precision_with_z_suffix(self):
        assert format_timestamp(SUBMITTED_AT) == "2026-03-14T09:26:53.589Z"

    def test_converts_to_utc(self):
        local = datetime(2026, 3, 14, 11, 26, 53, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(local) == "2026-03-14T09:26:53.000Z"

    def test_naive_treated_as_utc(self):
        assert format_timestamp(datetime(2026, 1, 1)) == "2026-01-01T00:00:00.000Z"


class TestComposeContactEmail:
    def test_envelope_fields(self):
        message = _compose()
        assert message.sender == "site@gmail.com"
        assert message.recipient == "admin@example.com"
        assert message.subject == CONTACT_EMAIL_SUBJECT
        assert message.reply_to == "john@example.com"

    def test_text_body_layout(self):
        assert _compose().text_body == (
            "New contact form submission from CampusCam:\n"
            "\n"
            "Name: John Doe\n"
            "Email: john@example.com\n"
            "Message: Hi there\n"
            "\n"
            "Submitted at: 2026-03-14T09:26:53.589Z\n"
            "IP Address: 203.0.113.7"
        )

    def test_sections_in_fixed_order(self):
        body = _compose().text_body
        positions = [
            body.index("Name:"),
            body.index("Email:"),
            body.index("Message:"),
            body.index("Submitted at:"),
            body.index("IP Address:"),
        ]
        assert positions == sorted(positions)

    def test_unknown_client(self):
        message = _compose(client_id=None)
        assert message.text_body.endswith("IP Address: Unknown")
        assert "IP Address: Unknown" in message.html_body

    def test_deterministic(self):
        assert _compose() == _compose()

    def test_html_body_escapes_user_input(self):
        submission = _submission(
            name="<script>alert(1)</script>",
            message="line one\n<b>bold</b>",
        )
        html_body = _compose(submission).html_body
        assert "<script>" not in html_body
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html_body
        assert "line one<br>&lt;b&gt;bold&lt;/b&gt;" in html_body

    def test_text_body_keeps_raw_text(self):
        submission = _submission(message="a < b & c")
        assert "Message: a < b & c" in _compose(submission).text_body
