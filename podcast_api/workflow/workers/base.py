"""Shared pieces of the scheduled batch jobs.

A job runs in passes. Each pass selects up to a batch of rows and either
changes them or finds they are already gone.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class PassResult:
    """Row counts from one pass of a batch job.

    Attributes:
        changed: Rows this pass deleted or wrote.
        skipped: Rows selected but already removed by someone else.
    """

    changed: int = 0
    skipped: int = 0

    @property
    def selected(self) -> int:
        return self.changed + self.skipped

    def filled(self, batch_size: int) -> bool:
        """Whether the pass selected a whole batch, so more rows may be waiting."""
        return self.selected >= batch_size


class BatchJob(ABC):
    """A job the scheduler can run in passes."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def get_pending_count(self) -> int:
        """Rows currently waiting for this job."""
        pass

    @abstractmethod
    def process_batch(self, limit: int) -> PassResult:
        """Run one pass over at most `limit` rows."""
        pass

    def log_result(self, result: PassResult) -> None:
        if result.selected == 0:
            logger.info(f"[{self.name}] Nothing to do")
            return
        logger.info(f"[{self.name}] Changed {result.changed} rows, skipped {result.skipped}")
