"""
Runtime configuration for the contact API.

The environment (plus an optional .env file) is read exactly once, by
load_settings(), into an immutable ContactSettings value that is handed to
create_app(). Nothing downstream reads os.environ at request time.

Environment variables
---------------------
GMAIL_USER / GMAIL_APP_PASSWORD       Gmail provider (highest priority).
SMTP_HOST / SMTP_PORT / SMTP_SECURE   Generic SMTP provider (second priority).
SMTP_USER / SMTP_PASS                 SMTP_PORT defaults to 587; SMTP_SECURE
                                      "true" means implicit TLS.
OUTLOOK_USER / OUTLOOK_PASS           Outlook provider (lowest priority).
ADMIN_EMAIL                           Where submissions are delivered. Falls
                                      back to the active provider's user.
RATE_LIMIT_WINDOW_MS                  Fixed window length (default: 900000).
RATE_LIMIT_MAX_REQUESTS               Requests per window (default: 5).
RATE_LIMIT_MAX_ENTRIES                Tracked clients before eviction
                                      (default: 10000).
EMAIL_SEND_TIMEOUT_SECONDS            Dispatch deadline (default: 10).
APP_ENV                               "production" or anything else for
                                      development. NODE_ENV is a fallback.
CORS_ORIGINS                          Comma-separated extra allowed origins.
TRUST_PROXY_HEADERS                   "true" to key clients on X-Forwarded-For.
"""

import os
from typing import List, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, SecretStr

load_dotenv()

DEFAULT_RATE_LIMIT_WINDOW_MS = 900_000
DEFAULT_RATE_LIMIT_MAX_REQUESTS = 5
DEFAULT_RATE_LIMIT_MAX_ENTRIES = 10_000
DEFAULT_EMAIL_SEND_TIMEOUT_SECONDS = 10.0
DEFAULT_SMTP_PORT = 587

_DEVELOPMENT_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


# ---------------------------------------------------------------------------
# Provider configuration variants
# ---------------------------------------------------------------------------

class GmailConfig(BaseModel):
    """Gmail account authenticated with an app password."""
    model_config = {"frozen": True}

    user: str
    app_password: SecretStr


class SmtpConfig(BaseModel):
    """Any SMTP relay reachable with username/password auth."""
    model_config = {"frozen": True}

    host: str
    port: int = DEFAULT_SMTP_PORT
    secure: bool = False
    user: str
    password: SecretStr


class OutlookConfig(BaseModel):
    """Outlook / Microsoft 365 mailbox."""
    model_config = {"frozen": True}

    user: str
    password: SecretStr


class ContactSettings(BaseModel):
    """Validated configuration snapshot for one running process."""
    model_config = {"frozen": True}

    gmail: Optional[GmailConfig] = None
    smtp: Optional[SmtpConfig] = None
    outlook: Optional[OutlookConfig] = None

    admin_email: Optional[str] = None

    rate_limit_window_ms: int = DEFAULT_RATE_LIMIT_WINDOW_MS
    rate_limit_max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS
    rate_limit_max_entries: int = DEFAULT_RATE_LIMIT_MAX_ENTRIES
    email_send_timeout_seconds: float = DEFAULT_EMAIL_SEND_TIMEOUT_SECONDS

    environment: str = "development"
    cors_origins: List[str] = list(_DEVELOPMENT_ORIGINS)
    trust_proxy_headers: bool = False

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


# ---------------------------------------------------------------------------
# Environment parsing helpers
# ---------------------------------------------------------------------------

def _clean(environ: Mapping[str, str], key: str) -> str:
    return (environ.get(key) or "").strip()


def _positive_int(raw: str, default: int) -> int:
    """Parse a positive integer, falling back to default on anything else."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _positive_float(raw: str, default: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _flag(raw: str) -> bool:
    return raw.lower() == "true"


def _read_gmail(environ: Mapping[str, str]) -> Optional[GmailConfig]:
    user = _clean(environ, "GMAIL_USER")
    password = _clean(environ, "GMAIL_APP_PASSWORD")
    if not (user and password):
        return None
    return GmailConfig(user=user, app_password=password)


def _read_smtp(environ: Mapping[str, str]) -> Optional[SmtpConfig]:
    host = _clean(environ, "SMTP_HOST")
    user = _clean(environ, "SMTP_USER")
    password = _clean(environ, "SMTP_PASS")
    if not (host and user and password):
        return None
    return SmtpConfig(
        host=host,
        port=_positive_int(_clean(environ, "SMTP_PORT"), DEFAULT_SMTP_PORT),
        secure=_flag(_clean(environ, "SMTP_SECURE")),
        user=user,
        password=password,
    )


def _read_outlook(environ: Mapping[str, str]) -> Optional[OutlookConfig]:
    user = _clean(environ, "OUTLOOK_USER")
    password = _clean(environ, "OUTLOOK_PASS")
    if not (user and password):
        return None
    return OutlookConfig(user=user, password=password)


def build_cors_origins(environment: str, extra: str = "") -> List[str]:
    """
    Build the list of allowed CORS origins.

    Development always allows the local Next.js dev server on both
    localhost and 127.0.0.1. Production allows only what CORS_ORIGINS lists.

    Duplicates are removed while preserving order.
    """
    always_included = [] if environment == "production" else list(_DEVELOPMENT_ORIGINS)
    extra_origins = [o.strip() for o in extra.split(",") if o.strip()]

    seen: set = set()
    origins: List[str] = []
    for origin in always_included + extra_origins:
        if origin not in seen:
            seen.add(origin)
            origins.append(origin)
    return origins


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ContactSettings:
    """
    Read configuration from environ (default: os.environ) into ContactSettings.

    A provider variant is only populated when every required field for it is
    non-empty; a half-configured variant is treated as absent.
    """
    if environ is None:
        environ = os.environ

    environment = (
        _clean(environ, "APP_ENV") or _clean(environ, "NODE_ENV") or "development"
    ).lower()

    return ContactSettings(
        gmail=_read_gmail(environ),
        smtp=_read_smtp(environ),
        outlook=_read_outlook(environ),
        admin_email=_clean(environ, "ADMIN_EMAIL") or None,
        rate_limit_window_ms=_positive_int(
            _clean(environ, "RATE_LIMIT_WINDOW_MS"), DEFAULT_RATE_LIMIT_WINDOW_MS
        ),
        rate_limit_max_requests=_positive_int(
            _clean(environ, "RATE_LIMIT_MAX_REQUESTS"), DEFAULT_RATE_LIMIT_MAX_REQUESTS
        ),
        rate_limit_max_entries=_positive_int(
            _clean(environ, "RATE_LIMIT_MAX_ENTRIES"), DEFAULT_RATE_LIMIT_MAX_ENTRIES
        ),
        email_send_timeout_seconds=_positive_float(
            _clean(environ, "EMAIL_SEND_TIMEOUT_SECONDS"),
            DEFAULT_EMAIL_SEND_TIMEOUT_SECONDS,
        ),
        environment=environment,
        cors_origins=build_cors_origins(environment, _clean(environ, "CORS_ORIGINS")),
        trust_proxy_headers=_flag(_clean(environ, "TRUST_PROXY_HEADERS")),
    )
