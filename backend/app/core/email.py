"""Email sending via the Resend HTTP API.

send_email(to, subject, html_body) either returns or raises:
- EmailConfigurationError: no API key configured
- EmailDeliveryError: transport failure or provider rejection

Callers decide whether a failure is surfaced (forgot-password) or only
logged (registration).
"""

from typing import Protocol

import httpx
import structlog

from app.core.config import Settings, settings
from app.core.logging import sanitize_for_log

logger = structlog.get_logger()


class EmailError(Exception):
    """Base class for email sending failures."""


class EmailConfigurationError(EmailError):
    """Email provider is not configured (missing API key)."""


class EmailDeliveryError(EmailError):
    """Provider unreachable or rejected the message.

    Infrastructure condition: safe to report as "service unavailable".
    """


class EmailSender(Protocol):
    """Email dispatch collaborator."""

    async def send_email(self, to: str, subject: str, html_body: str) -> None: ...


class ResendEmailSender:
    """Sends HTML email through Resend.

    A new AsyncClient is opened per message; volume is a handful of
    transactional emails.
    """

    def __init__(
        self,
        *,
        api_key: str,
        api_url: str,
        sender: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.api_url = api_url
        self.sender = sender
        self.timeout = timeout
        self._transport = transport

    async def send_email(self, to: str, subject: str, html_body: str) -> None:
        """Send one message.

        Args:
            to: Recipient address.
            subject: Subject line.
            html_body: HTML message body.

        Raises:
            EmailConfigurationError: If no API key is configured.
            EmailDeliveryError: On network errors or non-2xx responses.
        """
        recipient = sanitize_for_log(to)
        if not self._api_key:
            logger.error("Email provider not configured", recipient=recipient)
            msg = "RESEND_API_KEY is not configured"
            raise EmailConfigurationError(msg)

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json={
                        "from": self.sender,
                        "to": to,
                        "subject": subject,
                        "html": html_body,
                    },
                    timeout=self.timeout,
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Email provider rejected message",
                recipient=recipient,
                status_code=exc.response.status_code,
            )
            msg = f"Email provider returned HTTP {exc.response.status_code}"
            raise EmailDeliveryError(msg) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "Email provider unreachable",
                recipient=recipient,
                error_type=type(exc).__name__,
            )
            msg = "Email provider unreachable"
            raise EmailDeliveryError(msg) from exc

        logger.info("Email sent", recipient=recipient, subject=subject)


class LoggingEmailSender:
    """Development sender: logs the message instead of delivering it."""

    async def send_email(self, to: str, subject: str, html_body: str) -> None:
        logger.info(
            "Email delivery disabled; message logged only",
            recipient=sanitize_for_log(to),
            subject=subject,
            body=html_body,
        )


_email_sender: EmailSender | None = None


def get_email_sender(config: Settings | None = None) -> EmailSender:
    """Get or create the email sender singleton.

    Uses Resend when RESEND_API_KEY is set, otherwise logs messages
    (production settings refuse to load without a key).

    Args:
        config: Optional settings. Defaults to the application settings.

    Returns:
        EmailSender instance.
    """
    global _email_sender

    if _email_sender is None:
        config = config or settings
        api_key = config.resend_api_key.get_secret_value()
        if api_key:
            _email_sender = ResendEmailSender(
                api_key=api_key,
                api_url=config.resend_api_url,
                sender=f"{config.email_from_name} <{config.email_from}>",
                timeout=config.email_timeout_seconds,
            )
        else:
            _email_sender = LoggingEmailSender()

    return _email_sender


def reset_email_sender() -> None:
    """Reset the email sender singleton.

    Used in tests to ensure isolation between test cases.
    """
    global _email_sender
    _email_sender = None
