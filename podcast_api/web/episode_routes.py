"""Episode routes: listings, single episode lookup and official chapters."""

import asyncio
import logging
from datetime import timedelta
from typing import Any, List, Optional

from fastapi import APIRouter, Query, Request

from podcast_api.episodes.chapters import ChaptersFetcher, ChapterSynchronizer
from podcast_api.episodes.listing import EpisodeListingService, EpisodeListQuery
from podcast_api.episodes.query_plan import DEFAULT_SORT
from podcast_api.web.models import ChapterResponse, EpisodeDetail, episode_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/episodes", tags=["episodes"])


def get_listing_service(request: Request) -> EpisodeListingService:
    config = request.app.state.config
    return EpisodeListingService(
        request.app.state.repository,
        description_max_length=config.EPISODE_DESCRIPTION_MAX_LENGTH,
        max_take=config.EPISODE_QUERY_MAX_TAKE,
    )


def get_chapter_synchronizer(request: Request) -> ChapterSynchronizer:
    config = request.app.state.config
    fetcher = ChaptersFetcher(
        timeout=config.CHAPTERS_FETCH_TIMEOUT,
        user_agent=config.CHAPTERS_USER_AGENT,
    )
    return ChapterSynchronizer(
        request.app.state.repository,
        super_user_id=config.SUPER_USER_ID,
        fetcher=fetcher,
        refresh_interval=timedelta(hours=config.CHAPTERS_REFRESH_HOURS),
    )


@router.get("")
async def list_episodes(
    request: Request,
    include_podcast: bool = Query(False, alias="includePodcast"),
    search_all_fields_text: str = Query("", alias="searchAllFieldsText", max_length=500),
    skip: int = Query(0, ge=0),
    take: int = Query(20, ge=0),
    sort: str = Query(DEFAULT_SORT),
    categories: Optional[str] = Query(None),
    podcast_id: Optional[str] = Query(None, alias="podcastId"),
) -> List[Any]:
    """
    List public episodes.

    Filters by `podcastId` when given, otherwise by `categories`, otherwise
    lists across all podcasts. Both filters take comma-separated ids.

    Returns:
        `[episodes, totalCount]`
    """
    query = EpisodeListQuery(
        include_podcast=include_podcast,
        search_all_fields_text=search_all_fields_text,
        skip=skip,
        take=take,
        sort=sort,
        categories=categories,
        podcast_id=podcast_id,
    )
    service = get_listing_service(request)
    episodes, total = await asyncio.to_thread(service.list_for_query, query)

    items = [
        episode_summary(episode, include_podcast).model_dump(mode="json", by_alias=True)
        for episode in episodes
    ]
    return [items, total]


@router.get("/{episode_id}", response_model=EpisodeDetail)
async def get_episode(request: Request, episode_id: str):
    """Get one episode, preferring a public copy of a non-public episode."""
    service = get_listing_service(request)
    episode = await asyncio.to_thread(service.get_episode, episode_id)
    return EpisodeDetail.model_validate(episode)


@router.get("/{episode_id}/retrieve-latest-chapters")
async def retrieve_latest_chapters(request: Request, episode_id: str) -> List[Any]:
    """
    Get the episode's official chapters, refreshing them from its chapters URL when stale.

    Returns:
        `[chapters, count]`
    """
    synchronizer = get_chapter_synchronizer(request)
    chapters, count = await asyncio.to_thread(
        synchronizer.retrieve_latest_chapters, episode_id
    )
    items = [
        ChapterResponse.model_validate(chapter).model_dump(mode="json", by_alias=True)
        for chapter in chapters
    ]
    return [items, count]
