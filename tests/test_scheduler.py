"""Tests for the batch job scheduler."""

from unittest.mock import Mock

import pytest

from podcast_api.scheduler import build_scheduler, run_reaper, run_recent_episodes_refresh


@pytest.fixture
def config():
    config = Mock()
    config.DEAD_EPISODE_BATCH_SIZE = 2
    config.DEAD_EPISODE_THROTTLE_SECONDS = 0
    config.DEAD_EPISODE_INTERVAL_MINUTES = 60
    config.RECENT_EPISODES_REFRESH_MINUTES = 15
    config.RECENT_EPISODES_WINDOW_DAYS = 30
    return config


class TestRunReaper:
    """Tests for run_reaper."""

    def test_runs_until_partial_pass(self, config):
        """Test passes repeat until one is partial."""
        repository = Mock()
        repository.get_dead_episodes.side_effect = [[Mock(id="a"), Mock(id="b")], [Mock(id="c")]]
        repository.delete_episode.return_value = True

        assert run_reaper(config, repository) == 2

        assert repository.delete_episode.call_count == 3

    def test_dry_run(self, config):
        """Test a dry run only counts dead episodes."""
        repository = Mock()
        repository.count_dead_episodes.return_value = 5

        assert run_reaper(config, repository, dry_run=True) == 0
        repository.delete_episode.assert_not_called()


class TestRunRecentEpisodesRefresh:
    """Tests for run_recent_episodes_refresh."""

    def test_rebuilds_projections(self, config):
        """Test the projections are rebuilt with the configured window."""
        repository = Mock()
        repository.rebuild_recent_episode_projections.return_value = {"by_category": 1, "by_podcast": 1}

        run_recent_episodes_refresh(config, repository)

        repository.rebuild_recent_episode_projections.assert_called_once_with(window_days=30)


class TestBuildScheduler:
    """Tests for build_scheduler."""

    def test_jobs(self, config):
        """Test each job has an immediate run and an interval run."""
        scheduler = build_scheduler(config, Mock())

        jobs = scheduler.get_jobs()
        assert len(jobs) == 4
        funcs = [job.func for job in jobs]
        assert funcs.count(run_reaper) == 2
        assert funcs.count(run_recent_episodes_refresh) == 2
