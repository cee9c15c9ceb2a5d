"""
Commit coordinator - owns the table writer handle and the commit retry policy.
"""

import logging
from typing import Any, Callable, Dict, Optional

from ..core.exceptions import CommitFailedError, WriterCreationError
from ..core.models import BatchWindowState, SinkStats
from ..core.writer import TableWriter


logger = logging.getLogger(__name__)


WriterFactory = Callable[[Any], TableWriter]


class CommitCoordinator:
    """
    Owns the single open table writer and counts failed commits.

    Retry policy: every failed flush increments the consecutive failure
    counter in the batch window. Once the counter exceeds
    ``max_commit_failed_times`` a CommitFailedError is raised. A successful
    flush resets the counter.

    Example:
        >>> coordinator = CommitCoordinator(factory, max_commit_failed_times=5, window=state)
        >>> coordinator.get_or_create_writer(schema)
        >>> coordinator.write(row)
        >>> coordinator.flush()
        True
    """

    def __init__(
        self,
        writer_factory: WriterFactory,
        max_commit_failed_times: int,
        window: Optional[BatchWindowState] = None,
        stats: Optional[SinkStats] = None,
    ):
        self.writer_factory = writer_factory
        self.max_commit_failed_times = max_commit_failed_times
        self.window = window if window is not None else BatchWindowState()
        self.stats = stats if stats is not None else SinkStats()
        self.writer: Optional[TableWriter] = None
        self.writers_created = 0

    @property
    def consecutive_failures(self) -> int:
        return self.window.consecutive_commit_failures

    def get_or_create_writer(self, schema: Any) -> TableWriter:
        """
        Return the open writer, creating one bound to ``schema`` if needed.

        Raises:
            WriterCreationError: If the factory fails
        """
        if self.writer is not None:
            return self.writer

        try:
            writer = self.writer_factory(schema)
        except Exception as e:
            raise WriterCreationError(f"Failed to create table writer: {e}") from e

        self.writer = writer
        self.writers_created += 1
        logger.info(f"Opened table writer {writer.get_name()} (#{self.writers_created})")
        return writer

    def write(self, row: Dict[str, Any]) -> None:
        """Append a row to the open writer. Errors propagate to the caller."""
        if self.writer is None:
            raise WriterCreationError("No table writer is open")
        self.writer.write(row)

    def flush(self) -> bool:
        """
        Commit pending rows and apply the retry policy.

        Returns:
            True if the commit succeeded, False if it failed but the failure
            ceiling has not been exceeded

        Raises:
            CommitFailedError: If consecutive failures exceed the maximum
        """
        if self.writer is None:
            raise WriterCreationError("No table writer is open")

        if self.writer.flush():
            if self.window.consecutive_commit_failures:
                logger.info(
                    f"Commit succeeded after {self.window.consecutive_commit_failures} failed attempts"
                )
            self.window.consecutive_commit_failures = 0
            self.stats.commits += 1
            return True

        self.window.consecutive_commit_failures += 1
        self.stats.commit_failures += 1
        failures = self.window.consecutive_commit_failures
        logger.warning(f"Commit records failed {failures} times")

        if failures > self.max_commit_failed_times:
            message = (
                "Exceeded the max commit failed times, the allowed max failure times is "
                f"{self.max_commit_failed_times}"
            )
            logger.error(message)
            raise CommitFailedError(
                message, failures=failures, max_failures=self.max_commit_failed_times
            )
        return False

    def update_schema(self, schema: Any, pending_rows: int = 0) -> bool:
        """
        Tell the writer about a new active schema, replacing it if required.

        Rows still pending under the old writer are flushed before it is
        closed, so replacement never discards uncommitted rows. Failed
        attempts are retried and count towards the failure ceiling.

        Args:
            schema: The new parsed schema
            pending_rows: Rows written since the last successful commit

        Returns:
            True if the writer was replaced

        Raises:
            CommitFailedError: If the pending rows could not be committed
                within the failure ceiling
            WriterCreationError: If the replacement writer cannot be created
        """
        if self.writer is None:
            self.get_or_create_writer(schema)
            return False

        if not self.writer.update_schema(schema):
            return False

        logger.info(f"Schema change requires a new table writer ({pending_rows} rows pending)")
        if pending_rows > 0:
            # flush() raises once the failure ceiling is exceeded
            while not self.flush():
                pass

        self.close()
        self.get_or_create_writer(schema)
        return True

    def close(self) -> None:
        """Close and release the open writer, if any."""
        writer, self.writer = self.writer, None
        if writer is not None:
            logger.info(f"Closing table writer {writer.get_name()}")
            writer.close()
