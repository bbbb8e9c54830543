"""
Password reset routes.

- /auth/send-reset-password - Email a reset password link to a user
"""

import asyncio
import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from podcast_api.services.password_reset import request_password_reset

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["authentication"])


class SendResetPasswordRequest(BaseModel):
    """Request body for sending a reset password email."""

    email: str = Field(..., min_length=3, max_length=256)


@router.post("/send-reset-password")
async def send_reset_password(request: Request, body: SendResetPasswordRequest):
    """
    Send a reset password email.

    Returns 404 when no user has the email and 500 when delivery fails.
    """
    await asyncio.to_thread(
        request_password_reset,
        request.app.state.repository,
        request.app.state.email_service,
        request.app.state.config,
        body.email.strip(),
    )
    return {"message": "Reset password email sent"}
