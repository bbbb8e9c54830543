"""Episode listing service.

Builds paginated, filterable episode listings. Listings scoped to many
categories or podcasts sorted by "most-recent" are served from the recent
episode projections instead of sorting the full episode table.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from podcast_api.db.models import Episode, utcnow
from podcast_api.db.repository import PodcastRepositoryInterface, RecencyDimension
from podcast_api.episodes.query_plan import (
    DEFAULT_SORT,
    EpisodeQueryPlan,
    build_episode_query,
    limit_query_size,
    paginate,
    with_category_ids,
    with_episode_ids,
    with_podcast_ids,
    with_public_only,
)
from podcast_api.episodes.sorting import MOST_RECENT_SORT
from podcast_api.errors import NotFoundError

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LENGTH = 2500

# Merging fewer podcasts than this is cheap enough without popularity limiting
LIMIT_PODCAST_THRESHOLD = 10

EpisodeListResult = Tuple[List[Episode], int]


def parse_id_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated id list, dropping blanks and duplicates."""
    if not value:
        return []
    ids = (part.strip() for part in value.split(","))
    return list(dict.fromkeys(x for x in ids if x))


@dataclass
class EpisodeListQuery:
    """Parameters shared by every listing entry point."""

    include_podcast: bool = False
    search_all_fields_text: str = ""
    skip: int = 0
    take: int = 20
    sort: str = DEFAULT_SORT
    categories: Optional[str] = None
    podcast_id: Optional[str] = None


class EpisodeListingService:
    """Entry points for episode listings and single-episode lookup.

    Example:
        service = EpisodeListingService(repository)
        episodes, total = service.list_episodes(EpisodeListQuery(sort="most-recent"))
    """

    def __init__(
        self,
        repository: PodcastRepositoryInterface,
        description_max_length: int = DESCRIPTION_MAX_LENGTH,
        max_take: int = 50,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Create a listing service backed by the given repository.

        Parameters:
            description_max_length (int): Descriptions in results are cut to this many characters.
            max_take (int): Upper bound for a page size.
            clock: Returns the current naive UTC time; used for the most-recent cutoff.
        """
        self.repository = repository
        self.description_max_length = description_max_length
        self.max_take = max_take
        self.clock = clock

    # --- Helpers ---

    def _page(self, query: EpisodeListQuery) -> Tuple[int, int]:
        skip = max(int(query.skip or 0), 0)
        take = min(max(int(query.take or 0), 0), self.max_take)
        return skip, take

    def _base_plan(self, query: EpisodeListQuery) -> EpisodeQueryPlan:
        return build_episode_query(
            include_podcast=query.include_podcast,
            search_text=query.search_all_fields_text,
            sort=query.sort,
        )

    def clean_episodes(self, episodes: Sequence[Episode]) -> List[Episode]:
        """Cut descriptions down for list views; a missing description becomes ""."""
        for episode in episodes:
            description = episode.description
            episode.description = description[: self.description_max_length] if description else ""
        return list(episodes)

    def _run(self, plan: EpisodeQueryPlan, query: EpisodeListQuery) -> EpisodeListResult:
        skip, take = self._page(query)
        episodes, total = self.repository.query_episodes(paginate(plan, skip, take))
        return self.clean_episodes(episodes), total

    def _run_most_recent(
        self,
        plan: EpisodeQueryPlan,
        dimension: RecencyDimension,
        ids: List[str],
        query: EpisodeListQuery,
    ) -> EpisodeListResult:
        """
        Serve a most-recent listing from the recent episode projection.

        The projection yields the page of episode ids and the total count; only
        that page is then loaded from the episode table. The order of the loaded
        episodes is whatever the episode query returns.
        """
        skip, take = self._page(query)
        episode_ids, total = self.repository.query_recent_episode_ids(
            dimension, ids, skip=skip, take=take
        )
        if not total:
            return [], 0
        if not episode_ids:
            return [], total

        episodes, _ = self.repository.query_episodes(with_episode_ids(plan, episode_ids))
        return self.clean_episodes(episodes), total

    # --- Entry Points ---

    def list_episodes(self, query: EpisodeListQuery) -> EpisodeListResult:
        """List public episodes across all podcasts, always popularity-limited."""
        plan = self._base_plan(query)
        plan = limit_query_size(plan, True, self.clock())
        plan = with_public_only(plan)
        return self._run(plan, query)

    def list_episodes_by_category_ids(self, query: EpisodeListQuery) -> EpisodeListResult:
        """List public episodes of podcasts in any of `query.categories`."""
        category_ids = parse_id_list(query.categories)
        plan = self._base_plan(query)

        if query.sort == MOST_RECENT_SORT:
            return self._run_most_recent(plan, "category", category_ids, query)

        plan = with_category_ids(plan, category_ids)
        plan = limit_query_size(plan, True, self.clock())
        plan = with_public_only(plan)
        return self._run(plan, query)

    def list_episodes_by_podcast_ids(self, query: EpisodeListQuery) -> EpisodeListResult:
        """
        List public episodes of the podcasts in `query.podcast_id`.

        A single podcast is always a plain scoped query. Several podcasts sorted
        by most-recent use the projection; otherwise popularity limiting only
        kicks in above LIMIT_PODCAST_THRESHOLD podcasts.
        """
        podcast_ids = parse_id_list(query.podcast_id)
        plan = self._base_plan(query)

        if len(podcast_ids) == 1:
            plan = with_public_only(with_podcast_ids(plan, podcast_ids))
            return self._run(plan, query)

        if query.sort == MOST_RECENT_SORT:
            return self._run_most_recent(plan, "podcast", podcast_ids, query)

        plan = with_podcast_ids(plan, podcast_ids)
        should_limit = len(podcast_ids) > LIMIT_PODCAST_THRESHOLD
        plan = limit_query_size(plan, should_limit, self.clock())
        plan = with_public_only(plan)
        return self._run(plan, query)

    def list_for_query(self, query: EpisodeListQuery) -> EpisodeListResult:
        """Dispatch to the podcast, category or global listing based on which filter is set."""
        if query.podcast_id:
            return self.list_episodes_by_podcast_ids(query)
        if query.categories:
            return self.list_episodes_by_category_ids(query)
        return self.list_episodes(query)

    def get_episode(self, episode_id: str) -> Episode:
        """
        Fetch a single episode.

        If the episode is not public, a public episode of the same podcast with
        the same title is returned instead when one exists, since the non-public
        copy is more likely to carry a dead media URL.

        Raises:
            NotFoundError: If no episode has this id.
        """
        episode = self.repository.get_episode(episode_id)
        if not episode:
            raise NotFoundError("Episode", episode_id)

        if not episode.is_public and episode.title:
            public_episode = self.repository.find_public_episode(
                episode.podcast_id, episode.title
            )
            if public_episode:
                logger.debug(
                    f"Episode {episode_id} is not public, using public version {public_episode.id}"
                )
                return public_episode

        return episode
