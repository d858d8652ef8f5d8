"""Mail transports - deliver EmailMessages over an HTTP email API or to the log."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from unireg.logging import mask_email, sanitize_for_log
from unireg.notifier.exceptions import DeliveryError
from unireg.notifier.models import EmailMessage

if TYPE_CHECKING:
    from unireg.config import Settings

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    """Interface for an email transport."""

    def send(self, message: EmailMessage) -> str | None:
        """Deliver a message, returning the provider's message ID if any."""
        ...

    def close(self) -> None:
        """Release transport resources."""
        ...


class LogMailer:
    """Mailer that only logs messages (development and tests)."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> str | None:
        recipients = ", ".join(mask_email(a) for a in message.to)
        logger.info("Email to %s: %s", recipients, message.subject)
        self.sent.append(message)
        return None

    def close(self) -> None:
        pass


class HttpMailer:
    """Mailer for a Resend-compatible HTTP email API.

    Sends ``POST {base_url}/emails`` with a JSON body of
    ``from``, ``to``, ``subject``, ``text`` and ``html``.
    """

    def __init__(
        self,
        api_key: str,
        sender: str,
        base_url: str = "https://api.resend.com",
        timeout: float = 10.0,
    ) -> None:
        """Initialize the HTTP mailer.

        Args:
            api_key: Bearer key for the email API
            sender: Address placed in the "from" field
            base_url: API base URL (for testing/self-hosted relays)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.sender = sender
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client for the email API."""
        if self._client is None:
            self._client = httpx.Client(
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def send(self, message: EmailMessage) -> str | None:
        """Send one message.

        Args:
            message: The message to deliver

        Returns:
            Provider message ID, when the API returns one

        Raises:
            DeliveryError: If the request fails or the API rejects the message
        """
        if not message.to:
            raise DeliveryError("Message has no recipients")

        payload: dict[str, Any] = {
            "from": self.sender,
            "to": message.to,
            "subject": message.subject,
            "text": message.text,
            "html": message.html,
        }

        try:
            response = self.client.post(f"{self.base_url}/emails", json=payload)
        except httpx.HTTPError as e:
            raise DeliveryError(f"Email API request failed: {e}") from e

        if response.status_code >= 300:
            raise DeliveryError(
                f"Email API rejected message: {response.status_code} - "
                f"{sanitize_for_log(response.text)}"
            )

        # Accepted either way; a body we cannot read only loses the provider ID
        try:
            data = response.json() if response.content else {}
        except ValueError:
            logger.warning("Email API accepted message but returned a non-JSON body")
            data = {}
        message_id = data.get("id") if isinstance(data, dict) else None
        logger.debug("Email API accepted message %s", message_id)
        return message_id


def create_mailer(settings: Settings) -> Mailer:
    """Build the mailer selected by ``settings.mail_transport``."""
    if settings.mail_transport == "http":
        return HttpMailer(
            api_key=settings.mail_api_key,
            sender=settings.mail_from,
            base_url=settings.mail_api_url,
        )
    return LogMailer()
