"""
Batch accumulator - decides when a commit is due.
"""

import logging

from ..core.models import BatchWindowState


logger = logging.getLogger(__name__)


class BatchAccumulator:
    """
    Tracks rows and elapsed time since the last successful commit.

    A commit is due when either threshold is reached:
    - ``now - last_commit_time >= max_commit_interval_seconds``
    - ``records_since_commit >= max_records_per_commit``
    """

    def __init__(
        self,
        max_commit_interval_seconds: float,
        max_records_per_commit: int,
        now: float = 0.0,
    ):
        self.max_commit_interval_seconds = max_commit_interval_seconds
        self.max_records_per_commit = max_records_per_commit
        self.state = BatchWindowState(last_commit_time=now)

    @property
    def records_since_commit(self) -> int:
        return self.state.records_since_commit

    @property
    def has_pending(self) -> bool:
        return self.state.records_since_commit > 0

    def should_commit(
        self,
        now: float,
        records_since_commit: int,
        last_commit_time: float,
    ) -> bool:
        """Return True if either the time or the count threshold is reached."""
        return (
            now - last_commit_time >= self.max_commit_interval_seconds
            or records_since_commit >= self.max_records_per_commit
        )

    def is_due(self, now: float) -> bool:
        """Evaluate ``should_commit`` against the current window."""
        return self.should_commit(
            now, self.state.records_since_commit, self.state.last_commit_time
        )

    def record_written(self) -> int:
        self.state.records_since_commit += 1
        return self.state.records_since_commit

    def reset(self, now: float) -> None:
        """Start a new window after a successful commit."""
        self.state.records_since_commit = 0
        self.state.last_commit_time = now
        self.state.consecutive_commit_failures = 0
