"""Email delivery via the Resend API.

The auth core depends only on the Mailer protocol. ResendMailer is the
production implementation: a plain HTTP POST with a plain-text body.
Delivery failures raise EmailDeliveryError so the issuing use case fails
instead of silently leaving the user without a link.
"""

import logging
from typing import Protocol
from urllib.parse import quote, urlencode

import httpx

from fintrack.core.config import settings
from fintrack.core.errors import EmailDeliveryError

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


class Mailer(Protocol):
    """Outbound mail transport."""

    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver one plain-text message or raise EmailDeliveryError."""
        ...


class ResendMailer:
    """Mailer backed by the Resend HTTP API.

    Args:
        api_key: Resend API key. Defaults to settings.resend_api_key.
        sender: From address. Defaults to settings.email_from.
        client: Optional shared httpx client (a short-lived one is used
            per message otherwise).
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        sender: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = (
            api_key
            if api_key is not None
            else settings.resend_api_key.get_secret_value()
        )
        self._sender = sender or settings.email_from
        self._client = client

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> None:
        resp = await client.post(
            _RESEND_API_URL,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json=payload,
            timeout=_RESEND_TIMEOUT,
        )
        resp.raise_for_status()

    async def send(self, to: str, subject: str, body: str) -> None:
        payload = {
            "from": self._sender,
            "to": to,
            "subject": subject,
            "text": body,
        }
        try:
            if self._client is not None:
                await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient() as client:
                    await self._post(client, payload)
        except httpx.HTTPError as exc:
            logger.warning("Failed to send email", exc_info=True)
            raise EmailDeliveryError() from exc


def _link(path: str, token: str) -> str:
    params = urlencode({"token": token}, quote_via=quote)
    return f"{settings.app_base_url.rstrip('/')}{path}?{params}"


def build_verification_email(token: str) -> tuple[str, str]:
    """Subject and body for the email verification message."""
    url = _link("/auth/verify-email", token)
    hours = settings.verification_token_ttl_seconds // 3600
    return (
        "Fintrack - Verify your email",
        (
            f"Click this link to verify your email address:\n\n{url}\n\n"
            f"This link expires in {hours} hours. "
            "If you didn't create an account, you can safely ignore this email."
        ),
    )


def build_password_reset_email(token: str) -> tuple[str, str]:
    """Subject and body for the password reset message."""
    url = _link("/auth/reset-password", token)
    minutes = settings.password_reset_token_ttl_seconds // 60
    return (
        "Fintrack - Reset your password",
        (
            f"Click this link to reset your password:\n\n{url}\n\n"
            f"This link expires in {minutes} minutes. "
            "If you didn't request this, you can safely ignore this email."
        ),
    )
