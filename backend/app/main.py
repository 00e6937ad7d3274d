"""
CampusCam Contact API
FastAPI application for contact form intake and email delivery.
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers
from starlette.responses import Response

from app.config import ContactSettings, load_settings
from app.routers import contact
from app.services.contact_handler import ContactSubmissionHandler
from app.services.email_provider import EmailDispatcher
from app.services.rate_limiter import RateLimiter

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


class PreflightCORSMiddleware(CORSMiddleware):
    """
    CORSMiddleware that answers preflight requests with 204 No Content.

    A preflight from an origin outside allow_origins still gets 204, just
    without Access-Control-Allow-Origin; the browser then blocks the call.
    """

    def preflight_response(self, request_headers: Headers) -> Response:
        if not self.is_allowed_origin(origin=request_headers["origin"]):
            headers = {
                key: value
                for key, value in self.preflight_headers.items()
                if key != "Access-Control-Allow-Origin"
            }
            return Response(status_code=204, headers=headers)

        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


def build_submission_handler(settings: ContactSettings) -> ContactSubmissionHandler:
    """Wire the rate limiter and email dispatcher described by settings."""
    rate_limiter = RateLimiter(
        window_seconds=settings.rate_limit_window_ms / 1000,
        max_requests=settings.rate_limit_max_requests,
        max_entries=settings.rate_limit_max_entries,
    )
    dispatcher = EmailDispatcher.from_settings(settings)
    return ContactSubmissionHandler(
        rate_limiter=rate_limiter,
        dispatcher=dispatcher,
        admin_email=settings.admin_email,
    )


def create_app(settings: Optional[ContactSettings] = None) -> FastAPI:
    """
    Build the application for one configuration snapshot.

    settings defaults to load_settings() (environment + .env). The email
    provider is chosen here, once; requests never re-read configuration.
    """
    if settings is None:
        settings = load_settings()

    application = FastAPI(
        title="CampusCam Contact API",
        description="Contact form intake with rate limiting and email delivery",
        version="0.1.0",
    )
    application.state.settings = settings
    application.state.submission_handler = build_submission_handler(settings)

    # Origins are fixed for the lifetime of this settings snapshot
    application.add_middleware(
        PreflightCORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(contact.router, prefix="/api/contact", tags=["contact"])

    @application.on_event("startup")
    async def log_startup_configuration() -> None:
        """Log the active email provider and the limits in force."""
        handler: ContactSubmissionHandler = application.state.submission_handler
        logger.info(
            "CampusCam Contact API starting (%s):\n"
            "  Email provider: %s\n"
            "  Rate limit:     %d requests / %d ms per client\n"
            "  CORS origins:   %s",
            settings.environment,
            handler.dispatcher.provider_name or "(none; submissions will fail)",
            settings.rate_limit_max_requests,
            settings.rate_limit_window_ms,
            ", ".join(settings.cors_origins) or "(none)",
        )

    @application.get("/")
    async def root():
        return {"message": "CampusCam Contact API", "version": "0.1.0"}

    @application.get("/health")
    async def health():
        return {"status": "ok"}

    @application.get("/health/email")
    async def health_email():
        """
        Report which email provider is active.

        Returns 503 when no provider is configured. Does not open a
        connection to the provider.
        """
        handler: ContactSubmissionHandler = application.state.submission_handler
        if not handler.dispatcher.is_available:
            raise HTTPException(
                status_code=503,
                detail="Email service unavailable: no email provider is configured",
            )
        return {"status": "ok", "provider": handler.dispatcher.provider_name}

    return application


app = create_app()
