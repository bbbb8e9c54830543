"""User routes."""

import asyncio
import logging

from fastapi import APIRouter, Request

from podcast_api.db.repository import PodcastRepositoryInterface
from podcast_api.errors import NotFoundError
from podcast_api.web.models import UserResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(request: Request, user_id: str):
    """Get a user by id."""
    repository: PodcastRepositoryInterface = request.app.state.repository

    user = await asyncio.to_thread(repository.get_user, user_id)
    if not user:
        raise NotFoundError("User", user_id)

    return UserResponse.model_validate(user)


@router.delete("/{user_id}")
async def delete_user(request: Request, user_id: str):
    """Delete a user. Their clips stay, without an owner."""
    repository: PodcastRepositoryInterface = request.app.state.repository

    deleted = await asyncio.to_thread(repository.delete_user, user_id)
    if not deleted:
        raise NotFoundError("User", user_id)

    logger.info(f"Deleted user {user_id}")
    return {"status": "deleted", "id": user_id}
