"""Batch jobs that keep the episode catalog tidy.

Jobs run outside the request path, driven by ``podcast_api.scheduler``:
dead episode removal and the recent-episode projection refresh.
"""

from podcast_api.workflow.workers.base import BatchJob, PassResult

__all__ = [
    "BatchJob",
    "PassResult",
]
