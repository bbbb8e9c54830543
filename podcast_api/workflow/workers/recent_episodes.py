"""Worker that rebuilds the recent-episode projections.

Most-recent listings scoped to categories or podcasts page through these
projections instead of sorting the episode table.
"""

from podcast_api.db.repository import PodcastRepositoryInterface
from podcast_api.workflow.workers.base import BatchJob, PassResult


class RecentEpisodesWorker(BatchJob):
    """Rebuilds both recent-episode projections from public episodes."""

    def __init__(self, repository: PodcastRepositoryInterface, window_days: int = 30):
        self.repository = repository
        self.window_days = window_days

    @property
    def name(self) -> str:
        return "RecentEpisodes"

    def get_pending_count(self) -> int:
        # A rebuild always covers everything
        return 1

    def process_batch(self, limit: int) -> PassResult:
        """Rebuild the projections. `limit` is ignored."""
        counts = self.repository.rebuild_recent_episode_projections(
            window_days=self.window_days
        )
        return PassResult(changed=counts["by_category"] + counts["by_podcast"])
