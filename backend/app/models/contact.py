"""
Pydantic models for the contact submission pipeline.

Models:
  ContactSubmission      : trimmed, validated name/email/message triple
  OutboundMessage        : email composed from a submission
  DeliveryReceipt        : what a provider returns after a successful send
  ContactSuccessResponse : 200 body for POST /api/contact
  ContactErrorResponse   : 4xx/5xx body for POST /api/contact
"""

from typing import Literal, Optional
from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Pipeline values
# ---------------------------------------------------------------------------

class ContactSubmission(BaseModel):
    """
    A submission that passed every validation rule.

    Only app.services.validator constructs these; all three fields are
    already trimmed and within their length limits.
    """
    model_config = {"frozen": True}

    name: str
    email: str
    message: str


class OutboundMessage(BaseModel):
    """Provider-agnostic email built from a ContactSubmission."""
    model_config = {"frozen": True}

    sender: str
    recipient: str
    subject: str
    text_body: str
    html_body: Optional[str] = None
    reply_to: Optional[str] = None


class DeliveryReceipt(BaseModel):
    """Returned by a provider once the relay accepted the message."""

    message_id: str
    provider: str


# ---------------------------------------------------------------------------
# Response bodies
# ---------------------------------------------------------------------------

class ContactSuccessResponse(BaseModel):
    success: Literal[True] = True
    message: str


class ContactErrorResponse(BaseModel):
    """
    Uniform failure body.

    error is always a human-readable, non-technical sentence; provider
    details stay in the server log.
    """
    success: Literal[False] = False
    error: str
