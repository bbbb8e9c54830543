"""Transactional email via Resend."""

import logging
from typing import Optional

import resend

from podcast_api.config import Config

logger = logging.getLogger(__name__)


def _redact_email(email: str) -> str:
    """Redact an email address for logging, keeping only the domain ("***@example.com")."""
    if "@" not in email:
        return "<invalid-email>"
    _, domain = email.split("@", 1)
    return f"***@{domain}"


class EmailService:
    """Sends emails through Resend.

    The Resend API key is module-level state in the resend package, so one
    configuration per process is assumed.
    """

    def __init__(self, config: Config):
        self.config = config

        if self.config.RESEND_API_KEY:
            resend.api_key = self.config.RESEND_API_KEY

    def is_configured(self) -> bool:
        """True if a Resend API key is set."""
        return bool(self.config.RESEND_API_KEY)

    @property
    def from_address(self) -> str:
        return f"{self.config.RESEND_FROM_NAME} <{self.config.RESEND_FROM_EMAIL}>"

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> bool:
        """Send an email.

        Args:
            to_email: Recipient email address.
            subject: Email subject line.
            html_content: HTML body content.
            text_content: Optional plain text fallback.

        Returns:
            True if the email was accepted by Resend, False otherwise.
        """
        if not self.is_configured():
            logger.warning("Resend API key not configured, skipping email send")
            return False

        params: resend.Emails.SendParams = {
            "from": self.from_address,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            params["text"] = text_content

        try:
            sent = resend.Emails.send(params)
        except Exception:
            logger.exception("Failed to send email to %s", _redact_email(to_email))
            return False

        logger.info(
            "Email sent to %s (ID: %s)", _redact_email(to_email), sent.get("id", "unknown")
        )
        return True
