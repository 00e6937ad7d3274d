"""
Builds the operator notification email for a contact submission.

compose_contact_email() is deterministic: the same submission, timestamp
and client identifier always produce the same OutboundMessage.
"""

import html
from datetime import datetime, timezone
from typing import Optional

from app.models.contact import ContactSubmission, OutboundMessage

CONTACT_EMAIL_SUBJECT = "New Contact Form Message - CampusCam"

_UNKNOWN_CLIENT = "Unknown"


def format_timestamp(moment: datetime) -> str:
    """
    Render moment as UTC ISO-8601 with millisecond precision and a Z suffix,
    e.g. 2026-01-01T12:00:00.000Z. Naive datetimes are taken as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"


def _text_body(submission: ContactSubmission, submitted_at: str, client_id: str) -> str:
    return (
        "New contact form submission from CampusCam:\n"
        "\n"
        f"Name: {submission.name}\n"
        f"Email: {submission.email}\n"
        f"Message: {submission.message}\n"
        "\n"
        f"Submitted at: {submitted_at}\n"
        f"IP Address: {client_id}"
    )


def _html_body(submission: ContactSubmission, submitted_at: str, client_id: str) -> str:
    message_html = html.escape(submission.message).replace("\n", "<br>")
    return (
        f"<h2>{html.escape(CONTACT_EMAIL_SUBJECT)}</h2>\n"
        f"<p><strong>Name:</strong> {html.escape(submission.name)}</p>\n"
        f"<p><strong>Email:</strong> {html.escape(submission.email)}</p>\n"
        "<p><strong>Message:</strong></p>\n"
        '<div style="background-color: #f5f5f5; padding: 15px; '
        'border-left: 4px solid #D53840; margin: 10px 0;">\n'
        f"  {message_html}\n"
        "</div>\n"
        "<hr>\n"
        f"<p><small>Submitted at: {submitted_at}</small></p>\n"
        f"<p><small>IP Address: {html.escape(client_id)}</small></p>"
    )


def compose_contact_email(
    submission: ContactSubmission,
    *,
    sender: str,
    recipient: str,
    submitted_at: datetime,
    client_id: Optional[str] = None,
) -> OutboundMessage:
    """
    Build the email sent to the operator for one submission.

    The plain-text body lists Name, Email and Message, then the submission
    timestamp and the client identifier, in that order. Replies go straight
    to the submitter.
    """
    timestamp = format_timestamp(submitted_at)
    client = client_id or _UNKNOWN_CLIENT

    return OutboundMessage(
        sender=sender,
        recipient=recipient,
        subject=CONTACT_EMAIL_SUBJECT,
        text_body=_text_body(submission, timestamp, client),
        html_body=_html_body(submission, timestamp, client),
        reply_to=submission.email,
    )
