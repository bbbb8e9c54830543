"""Reset password email."""

import html
import logging
import secrets
from datetime import timedelta
from typing import Optional, Tuple

from podcast_api.config import Config
from podcast_api.db.models import utcnow
from podcast_api.db.repository import PodcastRepositoryInterface
from podcast_api.errors import EmailDeliveryError, NotFoundError
from podcast_api.services.email_service import EmailService, _redact_email

logger = logging.getLogger(__name__)

RESET_PASSWORD_SUBJECT = "Reset your password"
BUTTON_COLOR = "#2968B1"

SECONDS_PER_DAY = 86400


def convert_seconds_to_days_text(seconds: int) -> str:
    """Describe a duration in whole days, e.g. 86400 -> "1 day", 259200 -> "3 days".

    Durations under a day round up to "1 day".
    """
    days = max(int(seconds) // SECONDS_PER_DAY, 1)
    return f"{days} day" if days == 1 else f"{days} days"


def build_reset_password_link(config: Config, token: str) -> str:
    return f"{config.WEB_BASE_URL}{config.RESET_PASSWORD_PAGE_PATH}{token}"


def render_reset_password_email(
    config: Config, name: Optional[str], token: str
) -> Tuple[str, str]:
    """
    Render the reset password email.

    Returns:
        tuple: (html body, plain text body)
    """
    link = build_reset_password_link(config, token)
    expires_in = convert_seconds_to_days_text(config.RESET_PASSWORD_TOKEN_EXPIRATION)
    greeting = f"Hi {name}," if name else "Hello podcast fan,"
    top_message = "Please click the button below to reset your password."
    bottom_message = f"This link will expire in {expires_in}."
    closing = "Have a nice day :)"

    html_body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{RESET_PASSWORD_SUBJECT}</title></head>
<body style="font-family: Arial, sans-serif; color: #333333;">
  <p>{html.escape(greeting)}</p>
  <p>{top_message}</p>
  <p>
    <a href="{html.escape(link, quote=True)}"
       style="background-color: {BUTTON_COLOR}; color: #ffffff; padding: 12px 24px; border-radius: 4px; text-decoration: none; display: inline-block;">
      Reset Password
    </a>
  </p>
  <p>{bottom_message}</p>
  <p>{closing}</p>
</body>
</html>
"""

    text_body = "\n\n".join(
        [greeting, top_message, f"Reset Password: {link}", bottom_message, closing]
    )
    return html_body, text_body


def send_reset_password_email(
    email_service: EmailService,
    config: Config,
    email: str,
    name: Optional[str],
    token: str,
) -> None:
    """
    Send the reset password email for `token` to `email`.

    Raises:
        EmailDeliveryError: If the email could not be sent.
    """
    html_body, text_body = render_reset_password_email(config, name, token)
    sent = email_service.send_email(
        to_email=email,
        subject=RESET_PASSWORD_SUBJECT,
        html_content=html_body,
        text_content=text_body,
    )
    if not sent:
        raise EmailDeliveryError(
            f"Failed to send reset password email to {_redact_email(email)}"
        )
    logger.info(f"Reset password email sent to {_redact_email(email)}")


def request_password_reset(
    repository: PodcastRepositoryInterface,
    email_service: EmailService,
    config: Config,
    email: str,
) -> None:
    """
    Issue a new reset password token for the user with `email` and email it to them.

    Raises:
        NotFoundError: If no user has this email.
        EmailDeliveryError: If the email could not be sent.
    """
    user = repository.get_user_by_email(email)
    if not user:
        raise NotFoundError("User", email)

    token = secrets.token_urlsafe(32)
    expires_at = utcnow() + timedelta(seconds=config.RESET_PASSWORD_TOKEN_EXPIRATION)
    repository.update_user(
        user.id,
        reset_password_token=token,
        reset_password_token_expiration=expires_at,
    )

    send_reset_password_email(email_service, config, user.email, user.name, token)
