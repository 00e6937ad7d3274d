"""
Contact form router.

Endpoints:
  POST    /api/contact  : submit {name, email, message}
  OPTIONS /api/contact  : CORS preflight (204)

Every POST response is JSON shaped either {success: true, message} or
{success: false, error}. Status codes:
  200  sent
  400  malformed body or a validation rule failed
  429  too many requests from this client
  500  email service unavailable or delivery failed
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from app.models.contact import ContactErrorResponse
from app.services.contact_handler import (
    DELIVERY_FAILED_MESSAGE,
    ContactSubmissionHandler,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_submission_handler(request: Request) -> ContactSubmissionHandler:
    """Return the handler built by create_app() for this application."""
    return request.app.state.submission_handler


def get_client_key(request: Request) -> Optional[str]:
    """
    Identify the caller for rate limiting.

    Uses the socket peer address, or the first X-Forwarded-For hop when the
    app runs behind a trusted proxy (TRUST_PROXY_HEADERS=true).
    """
    if request.app.state.settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else None


async def _read_json_body(request: Request) -> Any:
    """Decode the request body as JSON, returning None when it is not JSON."""
    try:
        return await request.json()
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    responses={
        200: {"description": "Message sent to the site operator"},
        400: {"model": ContactErrorResponse, "description": "Invalid submission"},
        429: {"model": ContactErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ContactErrorResponse, "description": "Email service unavailable or failed"},
    },
)
async def submit_contact(
    request: Request,
    handler: ContactSubmissionHandler = Depends(get_submission_handler),
    client_key: Optional[str] = Depends(get_client_key),
) -> JSONResponse:
    """
    Accept a contact form submission and email it to the operator.

    Extra JSON keys are ignored. Exactly one send is attempted per call.
    """
    raw = await _read_json_body(request)

    try:
        result = await handler.handle(raw, client_key)
    except Exception as exc:
        logger.exception(f"Unexpected error handling contact submission: {type(exc).__name__}")
        return JSONResponse(
            status_code=500,
            content=ContactErrorResponse(error=DELIVERY_FAILED_MESSAGE).model_dump(),
        )

    return JSONResponse(
        status_code=result.status_code,
        content=result.body.model_dump(),
        headers=result.headers or None,
    )


@router.options("")
async def contact_preflight() -> Response:
    """
    Answer a bare OPTIONS request. CORS headers are added by the middleware;
    full preflights (with Access-Control-Request-Method) are answered by the
    middleware directly.
    """
    return Response(status_code=204)
