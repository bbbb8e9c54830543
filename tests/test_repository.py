"""Tests for the podcast repository."""

from datetime import datetime, timedelta

import pytest

from podcast_api.db.factory import create_repository
from podcast_api.db.repository import SQLAlchemyPodcastRepository
from podcast_api.episodes.query_plan import (
    build_episode_query,
    paginate,
    with_category_ids,
    with_public_only,
)


class TestFactory:
    """Tests for repository creation."""

    def test_create_sqlite_repository(self, tmp_path):
        """Test creating a SQLite repository with tables."""
        repo = create_repository(f"sqlite:///{tmp_path / 'x.db'}", create_tables=True)
        try:
            assert isinstance(repo, SQLAlchemyPodcastRepository)
            assert repo.get_episode("missing") is None
        finally:
            repo.close()

    def test_database_url_from_environment(self, tmp_path, monkeypatch):
        """Test the DATABASE_URL environment variable is used when no URL is given."""
        url = f"sqlite:///{tmp_path / 'env.db'}"
        monkeypatch.setenv("DATABASE_URL", url)
        repo = create_repository(create_tables=True)
        try:
            assert repo.database_url == url
        finally:
            repo.close()


class TestPodcastOperations:
    """Tests for podcast and category operations."""

    def test_create_podcast(self, repository):
        """Test creating a podcast."""
        podcast = repository.create_podcast(title="Show", feed_url="https://example.com/a.xml")

        assert podcast.id is not None
        assert podcast.title == "Show"
        assert podcast.is_public is True

    def test_add_podcast_to_category(self, repository, podcast):
        """Test attaching a category to a podcast."""
        category = repository.create_category("Technology")

        assert repository.add_podcast_to_category(podcast.id, category.id) is True
        # Adding twice is harmless
        assert repository.add_podcast_to_category(podcast.id, category.id) is True

        retrieved = repository.get_podcast(podcast.id)
        assert [c.id for c in retrieved.categories] == [category.id]

    def test_add_podcast_to_missing_category(self, repository, podcast):
        """Test attaching an unknown category fails."""
        assert repository.add_podcast_to_category(podcast.id, "nope") is False


class TestEpisodeOperations:
    """Tests for episode CRUD operations."""

    def test_create_and_get_episode(self, repository, podcast):
        """Test episodes are returned with their podcast loaded."""
        episode = repository.create_episode(
            podcast.id, "https://example.com/1.mp3", title="One", is_public=True
        )

        retrieved = repository.get_episode(episode.id)

        assert retrieved.title == "One"
        assert retrieved.podcast.title == "Test Podcast"
        assert retrieved.podcast.categories == []

    def test_update_episode(self, repository, podcast):
        """Test updating episode fields."""
        episode = repository.create_episode(podcast.id, "https://example.com/1.mp3")
        parsed_at = datetime(2026, 1, 1, 12, 0, 0)

        updated = repository.update_episode(episode.id, chapters_url_last_parsed=parsed_at)

        assert updated.chapters_url_last_parsed == parsed_at
        assert repository.get_episode(episode.id).chapters_url_last_parsed == parsed_at

    def test_update_missing_episode(self, repository):
        """Test updating an unknown episode returns None."""
        assert repository.update_episode("missing", title="x") is None

    def test_delete_episode(self, repository, podcast):
        """Test deleting an episode, then deleting it again."""
        episode = repository.create_episode(podcast.id, "https://example.com/1.mp3")

        assert repository.delete_episode(episode.id) is True
        assert repository.get_episode(episode.id) is None
        assert repository.delete_episode(episode.id) is False

    def test_find_public_episode(self, repository, podcast):
        """Test finding the public copy of an episode by title."""
        repository.create_episode(podcast.id, "https://old.example.com/1.mp3", title="Same")
        public = repository.create_episode(
            podcast.id, "https://new.example.com/1.mp3", title="Same", is_public=True
        )

        found = repository.find_public_episode(podcast.id, "Same")

        assert found.id == public.id
        assert repository.find_public_episode(podcast.id, "Other") is None


class TestQueryEpisodes:
    """Tests for executing episode query plans."""

    def test_public_only_with_total(self, repository, podcast):
        """Test the total ignores pagination and non-public episodes are excluded."""
        for i in range(5):
            repository.create_episode(
                podcast.id, f"https://example.com/{i}.mp3", title=f"Episode {i}", is_public=True
            )
        repository.create_episode(podcast.id, "https://example.com/hidden.mp3", title="Hidden")

        plan = paginate(with_public_only(build_episode_query(sort="alphabetical")), 1, 2)
        episodes, total = repository.query_episodes(plan)

        assert total == 5
        assert [e.title for e in episodes] == ["Episode 1", "Episode 2"]

    def test_search_text_is_case_insensitive(self, repository, podcast):
        """Test the title search matches regardless of case."""
        repository.create_episode(podcast.id, "https://example.com/1.mp3", title="Python Tips")
        repository.create_episode(podcast.id, "https://example.com/2.mp3", title="Rust Tips")

        episodes, total = repository.query_episodes(build_episode_query(search_text="PYTHON"))

        assert total == 1
        assert episodes[0].title == "Python Tips"

    def test_search_text_wildcards_are_literal(self, repository, podcast):
        """Test % and _ in the search text match literally."""
        repository.create_episode(podcast.id, "https://example.com/1.mp3", title="100% Pure")
        repository.create_episode(podcast.id, "https://example.com/2.mp3", title="1000 Pure")

        episodes, total = repository.query_episodes(build_episode_query(search_text="100%"))

        assert total == 1
        assert episodes[0].title == "100% Pure"

    def test_category_filter_has_no_duplicates(self, repository, podcast):
        """Test a podcast in two requested categories yields each episode once."""
        tech = repository.create_category("Technology")
        news = repository.create_category("News")
        repository.add_podcast_to_category(podcast.id, tech.id)
        repository.add_podcast_to_category(podcast.id, news.id)
        repository.create_episode(podcast.id, "https://example.com/1.mp3", title="One")

        plan = with_category_ids(build_episode_query(), [tech.id, news.id])
        episodes, total = repository.query_episodes(plan)

        assert total == 1
        assert len(episodes) == 1

    def test_include_podcast_loads_podcast(self, repository, podcast):
        """Test the podcast is available on results when requested."""
        repository.create_episode(podcast.id, "https://example.com/1.mp3", title="One")

        episodes, _ = repository.query_episodes(build_episode_query(include_podcast=True))

        assert episodes[0].podcast.title == "Test Podcast"


class TestDeadEpisodes:
    """Tests for dead episode queries."""

    def test_dead_episodes(self, repository, podcast):
        """Test only non-public episodes without media refs are dead."""
        dead = repository.create_episode(podcast.id, "https://example.com/dead.mp3")
        clipped = repository.create_episode(podcast.id, "https://example.com/clipped.mp3")
        repository.create_media_ref(clipped.id, 30, title="Clip")
        repository.create_episode(podcast.id, "https://example.com/live.mp3", is_public=True)

        assert [e.id for e in repository.get_dead_episodes()] == [dead.id]
        assert repository.count_dead_episodes() == 1

    def test_dead_episodes_limit(self, repository, podcast):
        """Test the limit caps the number of dead episodes returned."""
        for i in range(3):
            repository.create_episode(podcast.id, f"https://example.com/{i}.mp3")

        assert len(repository.get_dead_episodes(limit=2)) == 2
        assert repository.count_dead_episodes() == 3


class TestRecentEpisodeProjections:
    """Tests for the recent episode projections."""

    @pytest.fixture
    def now(self):
        return datetime(2026, 6, 1, 12, 0, 0)

    def test_rebuild_and_query_by_podcast(self, repository, podcast, now):
        """Test rebuilt projections page newest first with a total."""
        ids = []
        for days_ago in (3, 1, 2):
            episode = repository.create_episode(
                podcast.id,
                f"https://example.com/{days_ago}.mp3",
                is_public=True,
                pub_date=now - timedelta(days=days_ago),
            )
            ids.append((days_ago, episode.id))
        # Too old and non-public episodes are not indexed
        repository.create_episode(
            podcast.id, "https://example.com/old.mp3", is_public=True, pub_date=now - timedelta(days=90)
        )
        repository.create_episode(
            podcast.id, "https://example.com/hidden.mp3", pub_date=now - timedelta(days=1)
        )

        counts = repository.rebuild_recent_episode_projections(window_days=30, now=now)
        page, total = repository.query_recent_episode_ids("podcast", [podcast.id], skip=0, take=2)

        newest_first = [episode_id for _, episode_id in sorted(ids)]
        assert counts == {"by_category": 0, "by_podcast": 3}
        assert total == 3
        assert page == newest_first[:2]

    def test_query_by_category(self, repository, podcast, now):
        """Test the category projection follows podcast categories."""
        category = repository.create_category("Comedy")
        repository.add_podcast_to_category(podcast.id, category.id)
        episode = repository.create_episode(
            podcast.id, "https://example.com/1.mp3", is_public=True, pub_date=now
        )

        repository.rebuild_recent_episode_projections(window_days=30, now=now)
        page, total = repository.query_recent_episode_ids("category", [category.id])

        assert (page, total) == ([episode.id], 1)

    def test_query_empty(self, repository):
        """Test an empty projection returns no ids and a zero total."""
        assert repository.query_recent_episode_ids("category", ["nothing"]) == ([], 0)

    def test_unknown_dimension(self, repository):
        """Test an unknown dimension is rejected."""
        with pytest.raises(ValueError):
            repository.query_recent_episode_ids("author", ["x"])


class TestMediaRefOperations:
    """Tests for media references."""

    def test_list_official_chapters_ordered(self, repository, podcast):
        """Test official chapters are ordered by start time and clips are excluded."""
        episode = repository.create_episode(podcast.id, "https://example.com/1.mp3")
        repository.create_media_ref(episode.id, 60, title="Second", is_official_chapter=True)
        repository.create_media_ref(episode.id, 0, title="First", is_official_chapter=True)
        repository.create_media_ref(episode.id, 30, title="User clip")

        chapters, count = repository.list_official_chapters(episode.id)

        assert count == 2
        assert [c.title for c in chapters] == ["First", "Second"]

    def test_public_media_refs_by_media_url(self, repository, podcast):
        """Test only public refs of episodes with the media URL are returned."""
        episode = repository.create_episode(podcast.id, "https://example.com/1.mp3")
        other = repository.create_episode(podcast.id, "https://example.com/2.mp3")
        repository.create_media_ref(episode.id, 10, title="Public", is_public=True)
        repository.create_media_ref(episode.id, 20, title="Private")
        repository.create_media_ref(other.id, 30, title="Elsewhere", is_public=True)

        refs = repository.list_public_media_refs_by_episode_media_url("https://example.com/1.mp3")

        assert [r.title for r in refs] == ["Public"]

    def test_update_media_ref(self, repository, podcast):
        """Test updating a media reference."""
        episode = repository.create_episode(podcast.id, "https://example.com/1.mp3")
        ref = repository.create_media_ref(episode.id, 10, is_public=True)

        repository.update_media_ref(ref.id, is_public=False)

        assert repository.get_media_ref(ref.id).is_public is False


class TestUserOperations:
    """Tests for user operations."""

    def test_create_and_lookup_user(self, repository):
        """Test creating a user and finding them by id and email."""
        user = repository.create_user("fan@example.com", name="Fan")

        assert repository.get_user(user.id).name == "Fan"
        assert repository.get_user_by_email("fan@example.com").id == user.id
        assert repository.get_user_by_email("nobody@example.com") is None

    def test_list_users(self, repository):
        """Test listing users ordered by email."""
        repository.create_user("b@example.com")
        repository.create_user("a@example.com")

        users = repository.list_users()

        assert [u.email for u in users] == ["a@example.com", "b@example.com"]
        assert len(repository.list_users(limit=1)) == 1

    def test_delete_user_keeps_clips(self, repository, podcast):
        """Test deleting a user keeps their clips without an owner."""
        user = repository.create_user("fan@example.com")
        episode = repository.create_episode(podcast.id, "https://example.com/1.mp3")
        ref = repository.create_media_ref(episode.id, 10, owner_id=user.id)

        assert repository.delete_user(user.id) is True
        assert repository.delete_user(user.id) is False
        assert repository.get_media_ref(ref.id).owner_id is None
