"""Transactional email through the Resend HTTP API."""

from __future__ import annotations

import json
import logging

import httpx

logger = logging.getLogger(__name__)


class MailerError(Exception):
    """Raised when an email could not be handed to the provider."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.cause = cause
        super().__init__(message)


class ResendMailer:
    """Sends one HTML email per call. Stateless; safe to share across requests."""

    def __init__(
        self,
        api_key: str,
        default_sender: str,
        base_url: str = "https://api.resend.com",
        timeout: float = 15.0,
    ) -> None:
        self._api_key = api_key
        self.default_sender = default_sender
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        sender: str | None = None,
    ) -> str | None:
        """Send an email and return the provider's message id (if any)."""
        payload = {
            "from": sender or self.default_sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                resp = await client.post(
                    f"{self.base_url}/emails",
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
        except httpx.TimeoutException as e:
            raise MailerError("Email provider request timed out.", cause=e) from e
        except httpx.HTTPError as e:
            raise MailerError("Email provider is unreachable.", cause=e) from e

        if resp.status_code >= 400:
            try:
                detail = str(resp.json().get("message") or resp.text)[:500]
            except (json.JSONDecodeError, ValueError, AttributeError):
                detail = resp.text[:500] if resp.text else "Unknown error"
            raise MailerError(
                f"Email provider returned {resp.status_code}: {detail}",
                status_code=resp.status_code,
            )

        try:
            message_id = resp.json().get("id")
        except (json.JSONDecodeError, ValueError, AttributeError):
            message_id = None
        logger.info("Email sent", extra={"email_subject": subject[:100], "message_id": message_id})
        return message_id
