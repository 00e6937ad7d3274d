"""
Contact submission pipeline.

ContactSubmissionHandler.handle() runs one request through:

  RECEIVED -> RATE_CHECKED -> VALIDATED -> COMPOSED -> DISPATCHED -> SUCCEEDED
                   |              |                        |
                   +--------------+------------------------+---> FAILED

Each stage either stops the run with a terminal failure or passes a refined
value forward. There are no retries: a call makes at most one dispatch
attempt. Admission is never refunded, so a run cancelled after the rate
check still counts against the client.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Union

from app.models.contact import ContactErrorResponse, ContactSuccessResponse
from app.services.email_provider import DeliveryError, DeliveryErrorKind, EmailDispatcher
from app.services.message_composer import compose_contact_email
from app.services.rate_limiter import RateLimiter
from app.services.validator import SubmissionValidationError, validate_submission

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Your message has been sent successfully. We will get back to you soon!"
RATE_LIMITED_MESSAGE = "Too many requests. Please try again later."
SERVICE_UNAVAILABLE_MESSAGE = "Email service is currently unavailable. Please try again later."
DELIVERY_FAILED_MESSAGE = "An error occurred while sending your message. Please try again later."


class SubmissionState(str, Enum):
    """Terminal states. Intermediate stages are never returned to callers."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    INVALID_INPUT = "invalid_input"
    SERVICE_UNAVAILABLE = "service_unavailable"
    DELIVERY_FAILED = "delivery_failed"


_FAILURE_STATUS = {
    FailureKind.INVALID_INPUT: 400,
    FailureKind.RATE_LIMITED: 429,
    FailureKind.SERVICE_UNAVAILABLE: 500,
    FailureKind.DELIVERY_FAILED: 500,
}


@dataclass
class SubmissionResult:
    """Terminal outcome of one pipeline run, ready to be sent as HTTP."""

    state: SubmissionState
    status_code: int
    body: Union[ContactSuccessResponse, ContactErrorResponse]
    failure: Optional[FailureKind] = None
    headers: dict[str, str] = field(default_factory=dict)
    message_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is SubmissionState.SUCCEEDED


def failure_result(
    kind: FailureKind, error: str, headers: Optional[dict[str, str]] = None
) -> SubmissionResult:
    return SubmissionResult(
        state=SubmissionState.FAILED,
        status_code=_FAILURE_STATUS[kind],
        body=ContactErrorResponse(error=error),
        failure=kind,
        headers=headers or {},
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContactSubmissionHandler:
    """
    Orchestrates rate limiting, validation, composition and dispatch.

    Args:
        rate_limiter: Shared per-client limiter.
        dispatcher:   Wraps the provider chosen at startup (may have none).
        admin_email:  Operator recipient. Defaults to the provider's sender.
        clock:        Wall-clock source for the submission timestamp.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        dispatcher: EmailDispatcher,
        admin_email: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.rate_limiter = rate_limiter
        self.dispatcher = dispatcher
        self.admin_email = admin_email
        self._clock = clock

    @property
    def recipient(self) -> Optional[str]:
        return self.admin_email or self.dispatcher.sender_address

    async def handle(self, raw: Any, client_key: Optional[str]) -> SubmissionResult:
        """
        Run one submission through the pipeline and return its terminal result.

        raw is the decoded JSON body (None when the body could not be
        decoded). client_key identifies the caller for rate limiting.
        """
        key = client_key or "unknown"

        decision = self.rate_limiter.admit(key)
        if not decision.admitted:
            logger.warning(f"Rate limit exceeded for client {key!r}")
            return failure_result(
                FailureKind.RATE_LIMITED,
                RATE_LIMITED_MESSAGE,
                headers={"Retry-After": str(decision.retry_after_seconds)},
            )

        try:
            submission = validate_submission(raw)
        except SubmissionValidationError as exc:
            logger.info(f"Rejected contact submission from {key!r}: {exc.code.value}")
            return failure_result(FailureKind.INVALID_INPUT, exc.message)

        if not self.dispatcher.is_available:
            logger.error("Email service not configured")
            return failure_result(FailureKind.SERVICE_UNAVAILABLE, SERVICE_UNAVAILABLE_MESSAGE)

        message = compose_contact_email(
            submission,
            sender=self.dispatcher.sender_address,
            recipient=self.recipient,
            submitted_at=self._clock(),
            client_id=client_key,
        )

        try:
            receipt = await self.dispatcher.dispatch(message)
        except DeliveryError as exc:
            if exc.kind is DeliveryErrorKind.UNAVAILABLE:
                logger.error("Email service not configured")
                return failure_result(
                    FailureKind.SERVICE_UNAVAILABLE, SERVICE_UNAVAILABLE_MESSAGE
                )
            cause = exc.__cause__
            logger.error(
                f"Contact email delivery failed: {exc.kind.value} "
                f"({type(cause).__name__ if cause else 'no cause'}: {cause})"
            )
            return failure_result(FailureKind.DELIVERY_FAILED, DELIVERY_FAILED_MESSAGE)

        logger.info(
            f"Contact email {receipt.message_id} sent via {receipt.provider} "
            f"for client {key!r}"
        )
        return SubmissionResult(
            state=SubmissionState.SUCCEEDED,
            status_code=200,
            body=ContactSuccessResponse(message=SUCCESS_MESSAGE),
            message_id=receipt.message_id,
        )
