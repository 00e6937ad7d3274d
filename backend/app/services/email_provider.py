"""
Outbound email providers and the dispatcher that wraps the active one.

Supported providers, in selection priority order:
  - gmail    GMAIL_USER + GMAIL_APP_PASSWORD          smtp.gmail.com:465 (TLS)
  - smtp     SMTP_HOST + SMTP_USER + SMTP_PASS         host:port, TLS or STARTTLS
  - outlook  OUTLOOK_USER + OUTLOOK_PASS               smtp-mail.outlook.com:587

select_provider() walks that list once at startup and activates the first
provider whose configuration is complete. When none is, the dispatcher is
created without a provider and every dispatch fails fast with
DeliveryErrorKind.UNAVAILABLE, without opening a connection.

Adding a provider:
  1. Write a _build_<provider>(settings) -> Optional[EmailProvider] function.
  2. Register it in _PROVIDER_BUILDERS at the right priority.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from enum import Enum
from typing import Callable, Optional

import aiosmtplib
from pydantic import SecretStr

from app.config import ContactSettings
from app.models.contact import DeliveryReceipt, OutboundMessage

logger = logging.getLogger(__name__)

GMAIL_HOST = "smtp.gmail.com"
GMAIL_PORT = 465
OUTLOOK_HOST = "smtp-mail.outlook.com"
OUTLOOK_PORT = 587


class DeliveryErrorKind(str, Enum):
    AUTH_FAILURE = "auth_failure"
    TRANSPORT_FAILURE = "transport_failure"
    UNAVAILABLE = "unavailable"


class DeliveryError(Exception):
    """
    Raised when a message could not be handed to the provider.

    The message names only the failure kind. The provider's own exception is
    chained as __cause__ for server-side logging.
    """

    def __init__(self, kind: DeliveryErrorKind):
        self.kind = kind
        super().__init__(f"Email delivery failed ({kind.value})")


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EmailProvider:
    """
    One authenticated SMTP relay.

    use_tls opens the connection over implicit TLS. Otherwise start_tls=True
    requires STARTTLS and start_tls=None upgrades only when the server offers
    it.
    """

    name: str
    hostname: str
    port: int
    username: str
    password: SecretStr = field(repr=False)
    use_tls: bool = False
    start_tls: Optional[bool] = None
    timeout_seconds: float = 10.0

    @property
    def sender_address(self) -> str:
        return self.username

    def build_email(self, message: OutboundMessage) -> EmailMessage:
        """Convert an OutboundMessage into a MIME message with a fresh Message-ID."""
        email = EmailMessage()
        email["From"] = message.sender
        email["To"] = message.recipient
        email["Subject"] = message.subject
        email["Date"] = formatdate(localtime=False, usegmt=True)
        if message.reply_to:
            email["Reply-To"] = message.reply_to

        domain = message.sender.rpartition("@")[2] or None
        email["Message-ID"] = make_msgid(domain=domain)

        email.set_content(message.text_body)
        if message.html_body:
            email.add_alternative(message.html_body, subtype="html")
        return email

    async def send(self, message: OutboundMessage) -> DeliveryReceipt:
        """
        Send message through this relay within timeout_seconds.

        Raises:
            DeliveryError: AUTH_FAILURE when the relay rejects the login,
                TRANSPORT_FAILURE for any network, protocol or timeout error.
        """
        email = self.build_email(message)
        try:
            await asyncio.wait_for(
                aiosmtplib.send(
                    email,
                    hostname=self.hostname,
                    port=self.port,
                    username=self.username,
                    password=self.password.get_secret_value(),
                    use_tls=self.use_tls,
                    start_tls=self.start_tls,
                    timeout=self.timeout_seconds,
                ),
                timeout=self.timeout_seconds,
            )
        except aiosmtplib.SMTPAuthenticationError as exc:
            raise DeliveryError(DeliveryErrorKind.AUTH_FAILURE) from exc
        except (asyncio.TimeoutError, aiosmtplib.SMTPException, OSError) as exc:
            raise DeliveryError(DeliveryErrorKind.TRANSPORT_FAILURE) from exc

        return DeliveryReceipt(message_id=email["Message-ID"], provider=self.name)


# ---------------------------------------------------------------------------
# Provider builders (one per configuration variant)
# ---------------------------------------------------------------------------

def _build_gmail(settings: ContactSettings) -> Optional[EmailProvider]:
    if settings.gmail is None:
        return None
    return EmailProvider(
        name="gmail",
        hostname=GMAIL_HOST,
        port=GMAIL_PORT,
        username=settings.gmail.user,
        password=settings.gmail.app_password,
        use_tls=True,
        start_tls=False,
        timeout_seconds=settings.email_send_timeout_seconds,
    )


def _build_smtp(settings: ContactSettings) -> Optional[EmailProvider]:
    if settings.smtp is None:
        return None
    return EmailProvider(
        name="smtp",
        hostname=settings.smtp.host,
        port=settings.smtp.port,
        username=settings.smtp.user,
        password=settings.smtp.password,
        use_tls=settings.smtp.secure,
        start_tls=False if settings.smtp.secure else None,
        timeout_seconds=settings.email_send_timeout_seconds,
    )


def _build_outlook(settings: ContactSettings) -> Optional[EmailProvider]:
    if settings.outlook is None:
        return None
    return EmailProvider(
        name="outlook",
        hostname=OUTLOOK_HOST,
        port=OUTLOOK_PORT,
        username=settings.outlook.user,
        password=settings.outlook.password,
        use_tls=False,
        start_tls=True,
        timeout_seconds=settings.email_send_timeout_seconds,
    )


_PROVIDER_BUILDERS: list[tuple[str, Callable[[ContactSettings], Optional[EmailProvider]]]] = [
    ("Gmail", _build_gmail),
    ("custom SMTP", _build_smtp),
    ("Outlook", _build_outlook),
]


def select_provider(settings: ContactSettings) -> Optional[EmailProvider]:
    """
    Return the highest-priority fully configured provider, or None.

    Logs which configuration was chosen, or how to enable one when none is.
    """
    for label, builder in _PROVIDER_BUILDERS:
        provider = builder(settings)
        if provider is not None:
            logger.info(f"Using {label} SMTP configuration ({provider.hostname}:{provider.port})")
            return provider

    logger.warning(
        "No email credentials configured. Email functionality will be disabled. "
        "Configure one of: GMAIL_USER + GMAIL_APP_PASSWORD; "
        "SMTP_HOST + SMTP_USER + SMTP_PASS; OUTLOOK_USER + OUTLOOK_PASS"
    )
    return None


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class EmailDispatcher:
    """Owns the provider selected at startup for the life of the process."""

    def __init__(self, provider: Optional[EmailProvider]):
        self._provider = provider

    @classmethod
    def from_settings(cls, settings: ContactSettings) -> "EmailDispatcher":
        return cls(select_provider(settings))

    @property
    def is_available(self) -> bool:
        return self._provider is not None

    @property
    def provider_name(self) -> Optional[str]:
        return self._provider.name if self._provider else None

    @property
    def sender_address(self) -> Optional[str]:
        return self._provider.sender_address if self._provider else None

    async def dispatch(self, message: OutboundMessage) -> DeliveryReceipt:
        """
        Hand message to the active provider. Exactly one send attempt.

        Raises:
            DeliveryError: UNAVAILABLE when no provider is configured,
                otherwise whatever the provider raised.
        """
        if self._provider is None:
            raise DeliveryError(DeliveryErrorKind.UNAVAILABLE)
        return await self._provider.send(message)
