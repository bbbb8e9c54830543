"""Dead episode reaper.

A dead episode is a non-public episode that no media reference (clip or
chapter) points at. The reaper deletes them in fixed-size passes; a full
pass tells the caller there may be more to remove.
"""

import logging
import time
from typing import Callable, Optional

from podcast_api.db.repository import PodcastRepositoryInterface
from podcast_api.workflow.workers.base import BatchJob, PassResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
DEFAULT_THROTTLE_SECONDS = 1.0


class DeadEpisodeReaper(BatchJob):
    """Worker that removes dead episodes.

    Storage errors are not caught: a failed delete aborts the pass and the
    caller decides whether to retry.
    """

    def __init__(
        self,
        repository: PodcastRepositoryInterface,
        batch_size: int = DEFAULT_BATCH_SIZE,
        throttle_seconds: float = DEFAULT_THROTTLE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the reaper.

        Args:
            repository: Database repository for episode operations.
            batch_size: Maximum number of episodes removed per pass.
            throttle_seconds: Pause after each pass to spread write load.
            sleep: Sleep function, replaceable in tests.
        """
        self.repository = repository
        self.batch_size = batch_size
        self.throttle_seconds = throttle_seconds
        self.sleep = sleep

    @property
    def name(self) -> str:
        """Human-readable name for this worker."""
        return "DeadEpisodeReaper"

    def get_pending_count(self) -> int:
        """Number of dead episodes currently in the database."""
        return self.repository.count_dead_episodes()

    def process_batch(self, limit: int) -> PassResult:
        """Delete up to `limit` dead episodes.

        Episodes deleted concurrently by someone else count as skipped.

        Args:
            limit: Maximum number of episodes to delete.

        Returns:
            PassResult with removed and skipped counts.
        """
        result = PassResult()

        episodes = self.repository.get_dead_episodes(limit=limit)
        if not episodes:
            return result

        logger.info(f"Removing {len(episodes)} dead episodes")
        for episode in episodes:
            if self.repository.delete_episode(episode.id):
                result.changed += 1
            else:
                logger.debug(f"Dead episode {episode.id} already removed")
                result.skipped += 1

        return result

    def remove_dead_episodes(self) -> bool:
        """Run one throttled pass.

        Returns:
            True if the pass was full and another pass should follow.
        """
        result = self.process_batch(self.batch_size)
        self.log_result(result)
        self.sleep(self.throttle_seconds)
        return result.filled(self.batch_size)

    def run_until_exhausted(self, max_passes: Optional[int] = None) -> int:
        """Run passes until one comes back partial or empty.

        Args:
            max_passes: Stop after this many passes even if the last one was full.

        Returns:
            Number of passes run.
        """
        passes = 0
        while max_passes is None or passes < max_passes:
            passes += 1
            if not self.remove_dead_episodes():
                break

        logger.info(f"[{self.name}] Finished after {passes} pass(es)")
        return passes
