"""Tests for the episode listing service."""

from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

from podcast_api.db.models import Episode
from podcast_api.episodes.listing import (
    EpisodeListingService,
    EpisodeListQuery,
    parse_id_list,
)
from podcast_api.errors import NotFoundError

NOW = datetime(2026, 5, 10, 12, 0, 0)


@pytest.fixture
def mock_repository():
    repo = Mock()
    repo.query_episodes.return_value = ([], 0)
    repo.query_recent_episode_ids.return_value = ([], 0)
    return repo


@pytest.fixture
def mock_service(mock_repository):
    return EpisodeListingService(mock_repository, clock=lambda: NOW)


def executed_plan(mock_repository):
    """The plan passed to the last query_episodes call."""
    return mock_repository.query_episodes.call_args.args[0]


class TestParseIdList:
    """Tests for parse_id_list."""

    def test_splits_and_strips(self):
        """Test comma-separated ids are split and stripped."""
        assert parse_id_list(" a, b ,c") == ["a", "b", "c"]

    def test_drops_blanks_and_duplicates(self):
        """Test blanks and repeated ids are removed, order kept."""
        assert parse_id_list("a,,b,a,") == ["a", "b"]

    def test_empty(self):
        """Test None and empty strings give no ids."""
        assert parse_id_list(None) == []
        assert parse_id_list("") == []


class TestListEpisodes:
    """Tests for listing across all podcasts."""

    def test_always_public_and_limited(self, mock_service, mock_repository):
        """Test the global listing is public-only and popularity-limited."""
        mock_service.list_episodes(EpisodeListQuery(sort="top-past-day"))

        plan = executed_plan(mock_repository)
        assert plan.public_only is True
        assert plan.popularity_sort == "top-past-day"

    def test_most_recent_uses_last_day(self, mock_service, mock_repository):
        """Test most-recent globally only considers the last day and skips the projection."""
        mock_service.list_episodes(EpisodeListQuery(sort="most-recent"))

        plan = executed_plan(mock_repository)
        assert plan.recent_cutoff == NOW - timedelta(days=1)
        mock_repository.query_recent_episode_ids.assert_not_called()

    def test_take_is_capped(self, mock_service, mock_repository):
        """Test page size is capped at the configured maximum."""
        mock_service.list_episodes(EpisodeListQuery(skip=-3, take=500))

        plan = executed_plan(mock_repository)
        assert (plan.skip, plan.take) == (0, 50)


class TestListByCategory:
    """Tests for listing by category ids."""

    def test_direct_path(self, mock_service, mock_repository):
        """Test non-recent sorts filter by category, public-only and limited."""
        mock_service.list_episodes_by_category_ids(
            EpisodeListQuery(categories="c1,c2", sort="top-past-week")
        )

        plan = executed_plan(mock_repository)
        assert plan.category_ids == ("c1", "c2")
        assert plan.public_only is True
        assert plan.is_limited is True

    def test_most_recent_empty_projection(self, mock_service, mock_repository):
        """Test an empty projection returns ([], 0) without querying episodes."""
        result = mock_service.list_episodes_by_category_ids(
            EpisodeListQuery(categories="c1", sort="most-recent")
        )

        assert result == ([], 0)
        mock_repository.query_recent_episode_ids.assert_called_once_with(
            "category", ["c1"], skip=0, take=20
        )
        mock_repository.query_episodes.assert_not_called()

    def test_most_recent_uses_projection_page(self, mock_service, mock_repository):
        """Test the projection page is loaded and the projection total returned."""
        episode = Episode(id="e1", podcast_id="p1", media_url="m", description="x" * 10)
        mock_repository.query_recent_episode_ids.return_value = (["e1"], 42)
        mock_repository.query_episodes.return_value = ([episode], 1)

        episodes, total = mock_service.list_episodes_by_category_ids(
            EpisodeListQuery(categories="c1", sort="most-recent", skip=20, take=1)
        )

        assert total == 42
        assert episodes == [episode]
        plan = executed_plan(mock_repository)
        assert plan.episode_ids == ("e1",)
        assert plan.take is None

    def test_most_recent_page_past_end(self, mock_service, mock_repository):
        """Test an offset past the end returns the total with no episodes."""
        mock_repository.query_recent_episode_ids.return_value = ([], 7)

        assert mock_service.list_episodes_by_category_ids(
            EpisodeListQuery(categories="c1", sort="most-recent", skip=100)
        ) == ([], 7)
        mock_repository.query_episodes.assert_not_called()


class TestListByPodcast:
    """Tests for listing by podcast ids."""

    @pytest.mark.parametrize("sort", ["most-recent", "top-past-hour", "top-all-time", "random"])
    def test_single_podcast_is_never_limited(self, mock_service, mock_repository, sort):
        """Test a single podcast bypasses limiting and the projection for any sort."""
        mock_service.list_episodes_by_podcast_ids(EpisodeListQuery(podcast_id="p1", sort=sort))

        plan = executed_plan(mock_repository)
        assert plan.podcast_ids == ("p1",)
        assert plan.public_only is True
        assert plan.is_limited is False
        mock_repository.query_recent_episode_ids.assert_not_called()

    def test_several_podcasts_most_recent_uses_projection(self, mock_service, mock_repository):
        """Test several podcasts sorted by most-recent go through the projection."""
        mock_service.list_episodes_by_podcast_ids(
            EpisodeListQuery(podcast_id="p1,p2", sort="most-recent")
        )

        mock_repository.query_recent_episode_ids.assert_called_once_with(
            "podcast", ["p1", "p2"], skip=0, take=20
        )

    def test_ten_podcasts_not_limited(self, mock_service, mock_repository):
        """Test up to ten podcasts are not popularity-limited."""
        ids = ",".join(f"p{i}" for i in range(10))
        mock_service.list_episodes_by_podcast_ids(EpisodeListQuery(podcast_id=ids))

        assert executed_plan(mock_repository).is_limited is False

    def test_eleven_podcasts_limited(self, mock_service, mock_repository):
        """Test more than ten podcasts are popularity-limited."""
        ids = ",".join(f"p{i}" for i in range(11))
        mock_service.list_episodes_by_podcast_ids(EpisodeListQuery(podcast_id=ids))

        assert executed_plan(mock_repository).is_limited is True


class TestListForQuery:
    """Tests for dispatching on the query's filters."""

    def test_podcast_filter_wins(self, mock_service, mock_repository):
        """Test podcast ids take precedence over categories."""
        mock_service.list_for_query(EpisodeListQuery(podcast_id="p1", categories="c1"))

        plan = executed_plan(mock_repository)
        assert plan.podcast_ids == ("p1",)
        assert plan.category_ids is None

    def test_category_filter(self, mock_service, mock_repository):
        """Test categories are used when no podcast ids are given."""
        mock_service.list_for_query(EpisodeListQuery(categories="c1"))

        assert executed_plan(mock_repository).category_ids == ("c1",)

    def test_no_filter(self, mock_service, mock_repository):
        """Test the global listing is used without filters."""
        mock_service.list_for_query(EpisodeListQuery())

        plan = executed_plan(mock_repository)
        assert plan.podcast_ids is None
        assert plan.category_ids is None


class TestDescriptionTruncation:
    """Tests for description truncation."""

    def test_long_descriptions_truncated(self, mock_service, mock_repository):
        """Test descriptions are cut to 2500 characters and missing ones become empty."""
        long_episode = Episode(id="e1", description="y" * 10000)
        empty_episode = Episode(id="e2", description=None)
        mock_repository.query_episodes.return_value = ([long_episode, empty_episode], 2)

        episodes, total = mock_service.list_episodes(EpisodeListQuery())

        assert total == 2
        assert len(episodes[0].description) == 2500
        assert episodes[1].description == ""


class TestListingAgainstDatabase:
    """End-to-end listing against SQLite."""

    def test_page_bounds(self, repository, podcast):
        """Test totals are non-negative and pages never exceed take."""
        for i in range(7):
            repository.create_episode(
                podcast.id,
                f"https://example.com/{i}.mp3",
                title=f"Episode {i}",
                is_public=True,
                pub_date=NOW - timedelta(days=i),
                description="z" * 3000,
            )
        service = EpisodeListingService(repository, clock=lambda: NOW)

        for take in (0, 3, 20):
            episodes, total = service.list_episodes_by_podcast_ids(
                EpisodeListQuery(podcast_id=podcast.id, sort="most-recent", take=take)
            )
            assert total == 7
            assert len(episodes) <= take
            assert all(len(e.description) <= 2500 for e in episodes)

    def test_most_recent_by_category_via_projection(self, repository, podcast):
        """Test category most-recent listings read the rebuilt projection."""
        category = repository.create_category("Science")
        repository.add_podcast_to_category(podcast.id, category.id)
        repository.create_episode(
            podcast.id, "https://example.com/1.mp3", is_public=True, pub_date=NOW
        )
        repository.rebuild_recent_episode_projections(window_days=30, now=NOW)
        service = EpisodeListingService(repository, clock=lambda: NOW)

        episodes, total = service.list_episodes_by_category_ids(
            EpisodeListQuery(categories=category.id, sort="most-recent", include_podcast=True)
        )

        assert total == 1
        assert episodes[0].podcast.title == "Test Podcast"


class TestGetEpisode:
    """Tests for single episode lookup."""

    def test_missing_episode(self, mock_service, mock_repository):
        """Test an unknown id raises NotFoundError."""
        mock_repository.get_episode.return_value = None

        with pytest.raises(NotFoundError):
            mock_service.get_episode("missing")

    def test_public_episode_returned_as_is(self, mock_service, mock_repository):
        """Test public episodes are returned without a fallback lookup."""
        episode = Episode(id="e1", podcast_id="p1", title="T", is_public=True)
        mock_repository.get_episode.return_value = episode

        assert mock_service.get_episode("e1") is episode
        mock_repository.find_public_episode.assert_not_called()

    def test_non_public_falls_back_to_public_copy(self, repository, podcast):
        """Test a non-public episode resolves to the public one with the same title."""
        hidden = repository.create_episode(podcast.id, "https://old.example.com/1.mp3", title="Same")
        public = repository.create_episode(
            podcast.id, "https://new.example.com/1.mp3", title="Same", is_public=True
        )
        service = EpisodeListingService(repository)

        assert service.get_episode(hidden.id).id == public.id

    def test_non_public_without_copy(self, repository, podcast):
        """Test a non-public episode with no public copy is returned itself."""
        hidden = repository.create_episode(podcast.id, "https://old.example.com/1.mp3", title="Only")
        service = EpisodeListingService(repository)

        assert service.get_episode(hidden.id).id == hidden.id
