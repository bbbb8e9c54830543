"""Clip routes.

Public clips and chapters of an episode, looked up by the episode's media URL,
served as a Podcasting 2.0 chapters file.
"""

import asyncio
import logging

from fastapi import APIRouter, Query, Request

from podcast_api.db.repository import PodcastRepositoryInterface
from podcast_api.web.models import ChaptersFile, chapters_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clips", tags=["clips"])


@router.get("", response_model=ChaptersFile, response_model_exclude_none=True)
async def get_clips_by_media_url(
    request: Request,
    media_url: str = Query(..., alias="mediaUrl", min_length=1),
):
    """Chapters file of the public media references for episodes with this media URL."""
    repository: PodcastRepositoryInterface = request.app.state.repository
    media_refs = await asyncio.to_thread(
        repository.list_public_media_refs_by_episode_media_url, media_url
    )
    logger.debug(f"Found {len(media_refs)} public media refs for {media_url}")
    return chapters_file(media_refs)
