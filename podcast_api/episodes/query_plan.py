"""Immutable query plans for episode listings.

A plan is built once per request, extended with pure functions that each
return a new plan, and compiled to SQLAlchemy statements only when it is
executed. Every user-supplied or computed value ends up as a bound
parameter; nothing is interpolated into SQL text.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable, NamedTuple, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.orm import contains_eager, load_only

from podcast_api.db.models import Category, Episode, Podcast
from podcast_api.episodes.sorting import (
    MOST_RECENT_SORT,
    RANDOM_SORT,
    resolve_sort_column,
)

DEFAULT_SORT = "top-past-week"

# Only consider episodes published within this window for limited most-recent queries
RECENT_CUTOFF = timedelta(days=1)

POPULARITY_WINDOW_COLUMNS = {
    "top-past-hour": "past_hour_total_unique_pageviews",
    "top-past-day": "past_day_total_unique_pageviews",
    "top-past-week": "past_week_total_unique_pageviews",
    "top-past-month": "past_month_total_unique_pageviews",
    "top-past-year": "past_year_total_unique_pageviews",
    "top-all-time": "past_all_time_total_unique_pageviews",
}

# Fields needed by list views
LIST_FIELDS = (
    Episode.id,
    Episode.podcast_id,
    Episode.description,
    Episode.duration,
    Episode.episode_type,
    Episode.funding,
    Episode.guid,
    Episode.image_url,
    Episode.is_explicit,
    Episode.is_public,
    Episode.link_url,
    Episode.media_filesize,
    Episode.media_type,
    Episode.media_url,
    Episode.past_hour_total_unique_pageviews,
    Episode.past_day_total_unique_pageviews,
    Episode.past_week_total_unique_pageviews,
    Episode.past_month_total_unique_pageviews,
    Episode.past_year_total_unique_pageviews,
    Episode.past_all_time_total_unique_pageviews,
    Episode.pub_date,
    Episode.title,
)


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters for use in SQL LIKE patterns.

    The escape order matters: backslashes must be escaped first since
    they are used as the escape character.

    Args:
        value: The raw string to escape

    Returns:
        str: Escaped string safe for use in LIKE patterns
    """
    escaped = value.replace("\\", "\\\\")
    escaped = escaped.replace("%", "\\%")
    escaped = escaped.replace("_", "\\_")
    return escaped


@dataclass(frozen=True)
class EpisodeQueryPlan:
    """Description of one episode listing query.

    Id filters use None for "no filter"; an empty tuple matches nothing.
    """

    include_podcast: bool = False
    search_text: str = ""
    sort: str = DEFAULT_SORT
    public_only: bool = False
    popularity_sort: Optional[str] = None
    recent_cutoff: Optional[datetime] = None
    category_ids: Optional[tuple[str, ...]] = None
    podcast_ids: Optional[tuple[str, ...]] = None
    episode_ids: Optional[tuple[str, ...]] = None
    skip: Optional[int] = None
    take: Optional[int] = None

    @property
    def is_limited(self) -> bool:
        """Whether a popularity-window guard has been applied."""
        return self.popularity_sort is not None or self.recent_cutoff is not None


class CompiledEpisodeQuery(NamedTuple):
    """Executable statements for a plan: the page and its total count."""

    statement: Select
    count_statement: Select


def build_episode_query(
    include_podcast: bool = False,
    search_text: Optional[str] = "",
    sort: Optional[str] = None,
) -> EpisodeQueryPlan:
    """Start a plan selecting list fields, optionally filtered by title text."""
    return EpisodeQueryPlan(
        include_podcast=bool(include_podcast),
        search_text=(search_text or "").strip(),
        sort=sort or DEFAULT_SORT,
    )


def limit_query_size(
    plan: EpisodeQueryPlan, should_limit: bool, now: datetime
) -> EpisodeQueryPlan:
    """
    Restrict candidates to the popularity window matching the plan's sort.

    Keeps very large listings cheap: "top" sorts only consider episodes with
    pageviews in that window and "most-recent" only considers episodes
    published in the last day. Other sorts are left unchanged.

    Args:
        plan: Plan to extend.
        should_limit: When False the plan is returned unchanged.
        now: Reference time for the most-recent cutoff.
    """
    if not should_limit:
        return plan
    if plan.sort in POPULARITY_WINDOW_COLUMNS:
        return replace(plan, popularity_sort=plan.sort)
    if plan.sort == MOST_RECENT_SORT:
        return replace(plan, recent_cutoff=now - RECENT_CUTOFF)
    return plan


def with_public_only(plan: EpisodeQueryPlan) -> EpisodeQueryPlan:
    return replace(plan, public_only=True)


def _as_ids(ids: Iterable[str]) -> tuple[str, ...]:
    return tuple(str(x) for x in ids)


def with_category_ids(plan: EpisodeQueryPlan, category_ids: Iterable[str]) -> EpisodeQueryPlan:
    """Keep episodes whose podcast belongs to any of the categories."""
    return replace(plan, category_ids=_as_ids(category_ids))


def with_podcast_ids(plan: EpisodeQueryPlan, podcast_ids: Iterable[str]) -> EpisodeQueryPlan:
    return replace(plan, podcast_ids=_as_ids(podcast_ids))


def with_episode_ids(plan: EpisodeQueryPlan, episode_ids: Iterable[str]) -> EpisodeQueryPlan:
    """Narrow the plan to exactly these episodes, dropping pagination."""
    return replace(plan, episode_ids=_as_ids(episode_ids), skip=None, take=None)


def paginate(plan: EpisodeQueryPlan, skip: int, take: int) -> EpisodeQueryPlan:
    return replace(plan, skip=max(skip, 0), take=max(take, 0))


def _conditions(plan: EpisodeQueryPlan) -> list:
    conditions = []

    if plan.search_text:
        pattern = f"%{escape_like_pattern(plan.search_text.lower())}%"
        conditions.append(func.lower(Episode.title).like(pattern, escape="\\"))
    if plan.public_only:
        conditions.append(Episode.is_public.is_(True))
    if plan.popularity_sort:
        column = getattr(Episode, POPULARITY_WINDOW_COLUMNS[plan.popularity_sort])
        conditions.append(column > 0)
    if plan.recent_cutoff is not None:
        conditions.append(Episode.pub_date > plan.recent_cutoff)
    if plan.category_ids is not None:
        conditions.append(Podcast.categories.any(Category.id.in_(plan.category_ids)))
    if plan.podcast_ids is not None:
        conditions.append(Episode.podcast_id.in_(plan.podcast_ids))
    if plan.episode_ids is not None:
        conditions.append(Episode.id.in_(plan.episode_ids))

    return conditions


def compile_episode_query(plan: EpisodeQueryPlan) -> CompiledEpisodeQuery:
    """
    Compile a plan into a page statement and a matching count statement.

    The page statement selects Episode rows limited to list fields, inner
    joined to their podcast (and loading it when `include_podcast` is set),
    ordered by the plan's sort and paginated by `skip`/`take`.
    """
    conditions = _conditions(plan)

    stmt = select(Episode).join(Episode.podcast).where(*conditions)
    if plan.include_podcast:
        stmt = stmt.options(load_only(*LIST_FIELDS), contains_eager(Episode.podcast))
    else:
        stmt = stmt.options(load_only(*LIST_FIELDS))

    if plan.sort == RANDOM_SORT:
        stmt = stmt.order_by(func.random())
    else:
        column, direction = resolve_sort_column(Episode, plan.sort, "pub_date")
        stmt = stmt.order_by(column.desc() if direction == "DESC" else column.asc(), Episode.id)

    if plan.skip:
        stmt = stmt.offset(plan.skip)
    if plan.take is not None:
        stmt = stmt.limit(plan.take)

    count_stmt = (
        select(func.count(Episode.id))
        .select_from(Episode)
        .join(Episode.podcast)
        .where(*conditions)
    )

    return CompiledEpisodeQuery(stmt, count_stmt)
