"""
Pydantic models for web API responses.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from podcast_api.db.models import Episode, MediaRef


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class CategorySummary(ApiModel):
    id: str
    title: str


class PodcastSummary(ApiModel):
    """Podcast fields embedded in episode responses."""
    id: str
    title: str
    image_url: Optional[str] = None
    feed_url: Optional[str] = None
    is_public: bool = True


class PodcastDetail(PodcastSummary):
    categories: List[CategorySummary] = Field(default_factory=list)


class EpisodeSummary(ApiModel):
    """Episode as returned by list endpoints (the list projection only)."""
    id: str
    podcast_id: str
    title: Optional[str] = None
    description: str = ""
    duration: int = 0
    episode_type: Optional[str] = None
    funding: Optional[List[Any]] = None
    guid: Optional[str] = None
    image_url: Optional[str] = None
    is_explicit: bool = False
    is_public: bool = False
    link_url: Optional[str] = None
    media_filesize: int = 0
    media_type: Optional[str] = None
    media_url: str
    past_hour_total_unique_pageviews: int = 0
    past_day_total_unique_pageviews: int = 0
    past_week_total_unique_pageviews: int = 0
    past_month_total_unique_pageviews: int = 0
    past_year_total_unique_pageviews: int = 0
    past_all_time_total_unique_pageviews: int = 0
    pub_date: Optional[datetime] = None
    podcast: Optional[PodcastSummary] = None


class EpisodeDetail(EpisodeSummary):
    """Single episode with its podcast and chapters source."""
    description: Optional[str] = None
    chapters_url: Optional[str] = None
    chapters_url_last_parsed: Optional[datetime] = None
    podcast: Optional[PodcastDetail] = None


class ChapterResponse(ApiModel):
    """An official chapter (media reference) of an episode."""
    id: str
    episode_id: str
    owner_id: Optional[str] = None
    start_time: int
    end_time: Optional[int] = None
    title: Optional[str] = None
    image_url: Optional[str] = None
    link_url: Optional[str] = None
    is_official_chapter: bool = True
    is_public: bool = True


class ChaptersFileChapter(BaseModel):
    """One entry of a Podcasting 2.0 chapters file."""
    model_config = ConfigDict(populate_by_name=True)

    start_time: int = Field(..., alias="startTime")
    end_time: Optional[int] = Field(default=None, alias="endTime")
    title: Optional[str] = None
    img: Optional[str] = None
    url: Optional[str] = None


class ChaptersFile(BaseModel):
    """Podcasting 2.0 JSON chapters file."""
    version: str = "1.2.0"
    chapters: List[ChaptersFileChapter] = Field(default_factory=list)


class UserResponse(ApiModel):
    id: str
    email: str
    name: Optional[str] = None
    is_public: bool = False
    created_at: Optional[datetime] = None


def episode_summary(episode: Episode, include_podcast: bool = False) -> EpisodeSummary:
    """
    Build a list item from an episode loaded with the list projection.

    The podcast relationship is only read when it was loaded with the query.
    """
    fields = {}
    for column in EpisodeSummary.model_fields:
        value = None if column == "podcast" else getattr(episode, column)
        if value is not None:
            fields[column] = value
    summary = EpisodeSummary.model_validate(fields)
    if include_podcast and episode.podcast is not None:
        summary.podcast = PodcastSummary.model_validate(episode.podcast)
    return summary


def chapters_file(media_refs: List[MediaRef]) -> ChaptersFile:
    """Convert media references to a chapters file, ordered by start time."""
    chapters = [
        ChaptersFileChapter(
            start_time=ref.start_time,
            end_time=ref.end_time,
            title=ref.title,
            img=ref.image_url,
            url=ref.link_url,
        )
        for ref in sorted(media_refs, key=lambda ref: ref.start_time)
    ]
    return ChaptersFile(chapters=chapters)
