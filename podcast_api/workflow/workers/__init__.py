"""Batch workers.

- DeadEpisodeReaper: Removes non-public episodes that no media reference points at
- RecentEpisodesWorker: Rebuilds the recent-episode projections used for most-recent listings
"""

from podcast_api.workflow.workers.base import BatchJob, PassResult

__all__ = [
    "BatchJob",
    "PassResult",
]
