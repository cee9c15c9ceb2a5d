"""
Sink writer - the control loop that moves records from the queue into the table.

Each iteration:
1. Poll the queue with a bounded wait
2. On an idle poll with rows pending, commit if due
3. On a record, track schema changes (replacing the writer if required)
4. Decode the record; undecodable records are dropped
5. Write the row and commit if due; acknowledge after a successful commit

Any exception escaping an iteration stops the loop. A stopped loop is
terminal and must be recreated by its owner.
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, Optional

from ..config.config_loader import SinkConfig
from ..core.exceptions import SchemaParseError
from ..core.logging import SinkLogContext, log_with_context
from ..core.models import EncodingKind, SinkRecord, SinkStats, SinkWriterState
from ..decode.row_decoder import RowDecoder
from ..schema.tracker import SchemaTracker
from ..storage import create_writer
from .batch import BatchAccumulator
from .commit import CommitCoordinator, WriterFactory


logger = logging.getLogger(__name__)


class SinkWriter:
    """
    Single-consumer writer loop for one sink.

    Only the thread running ``run`` mutates schema, batch and writer state.
    ``close`` may be called from any thread; it waits for the iteration in
    progress to finish.

    Example:
        >>> records = queue.Queue(maxsize=config.queue_size)
        >>> writer = SinkWriter(config, records)
        >>> threading.Thread(target=writer.run, daemon=True).start()
        >>> ...
        >>> writer.close()
    """

    def __init__(
        self,
        config: SinkConfig,
        records: "queue.Queue[SinkRecord]",
        writer_factory: Optional[WriterFactory] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the writer loop.

        Args:
            config: Sink configuration
            records: Queue the loop consumes from
            writer_factory: Builds a table writer for a schema (defaults to
                the storage configured in ``config``)
            clock: Monotonic time source in seconds
        """
        self.config = config
        self.records = records
        self.clock = clock

        self.tracker = SchemaTracker()
        self.decoder = RowDecoder(config.override_field_name)
        self.batch = BatchAccumulator(
            max_commit_interval_seconds=config.max_commit_interval_seconds,
            max_records_per_commit=config.max_records_per_commit,
            now=clock(),
        )
        if writer_factory is None:
            writer_factory = lambda schema: create_writer(config, schema)  # noqa: E731
        self.stats = SinkStats()
        self.coordinator = CommitCoordinator(
            writer_factory,
            max_commit_failed_times=config.max_commit_failed_times,
            window=self.batch.state,
            stats=self.stats,
        )

        self.last_record: Optional[SinkRecord] = None
        self.last_error: Optional[BaseException] = None
        self._bound_schema: Optional[Any] = None

        self._state = SinkWriterState.RUNNING
        self._stop_event = threading.Event()
        self._iteration_lock = threading.Lock()
        self._closed = False

    @property
    def state(self) -> SinkWriterState:
        return self._state

    def is_running(self) -> bool:
        return self._state == SinkWriterState.RUNNING

    def run(self) -> None:
        """Process records until closed or a fatal error occurs."""
        logger.info(f"Sink writer {self.config.sink_name} started")
        with SinkLogContext(sink_name=self.config.sink_name, table=self.config.storage.get("table")):
            while self.is_running():
                self.process_next()
        logger.info(f"Sink writer {self.config.sink_name} stopped")

    def process_next(self, timeout: Optional[float] = None) -> bool:
        """
        Run one loop iteration.

        Args:
            timeout: Poll wait in seconds (defaults to the configured poll timeout)

        Returns:
            True if a record was taken from the queue
        """
        if timeout is None:
            timeout = self.config.poll_timeout_seconds
        with self._iteration_lock:
            if not self.is_running():
                return False
            try:
                return self._iterate(timeout)
            except Exception as e:
                log_with_context(
                    logger, logging.ERROR, f"Process record failed, stopping sink writer: {e}",
                    exc_info=True,
                )
                self.last_error = e
                self._stop()
                return False

    def _iterate(self, timeout: float) -> bool:
        try:
            record = self.records.get(timeout=timeout)
        except queue.Empty:
            if self.batch.has_pending:
                self._commit_if_needed()
            return False

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Handling message: {record.message_id}")

        descriptor = record.schema
        if descriptor is None or not descriptor.strip():
            log_with_context(
                logger, logging.ERROR, "Failed to get schema from record, skip the record",
                message_id=record.message_id,
            )
            self.stats.records_skipped += 1
            return True

        if self.tracker.is_changed(descriptor):
            try:
                self.tracker.observe(descriptor)
            except SchemaParseError as e:
                log_with_context(
                    logger, logging.ERROR, f"Failed to parse schema, skip the record: {e}",
                    message_id=record.message_id,
                )
                self.stats.records_skipped += 1
                return True
            self.stats.schema_changes += 1

        storage_schema = self._storage_schema(record)
        if storage_schema is not self._bound_schema:
            replaced = self.coordinator.update_schema(storage_schema, self.batch.records_since_commit)
            self._bound_schema = storage_schema
            if replaced:
                self._reset()

        row = self.decoder.decode(record, storage_schema, self.tracker.projection)
        if row is None:
            self.stats.records_dropped += 1
            return True

        self.coordinator.get_or_create_writer(storage_schema)
        self.coordinator.write(row)
        self.last_record = record
        self.batch.record_written()
        self.stats.records_written += 1
        self._commit_if_needed()
        return True

    def _storage_schema(self, record: SinkRecord) -> Any:
        """Schema the writer is bound to for ``record``."""
        if record.encoding == EncodingKind.PRIMITIVE:
            return self.tracker.wrapped_schema(self.decoder.field_name)
        return self.tracker.schema

    def _commit_if_needed(self) -> None:
        if not self.batch.has_pending or not self.batch.is_due(self.clock()):
            return

        logger.debug(f"Committing {self.batch.records_since_commit} records")
        if self.coordinator.flush():
            self._reset()

    def _reset(self) -> None:
        """Start a new batch window and acknowledge the last written record."""
        if self.last_record is not None:
            self.last_record.ack()
        self.batch.reset(self.clock())

    def _stop(self) -> None:
        self._stop_event.set()
        self._state = SinkWriterState.STOPPED

    def close(self) -> None:
        """
        Stop the loop, release the writer and acknowledge the last record.

        Blocks until the iteration in progress (including any flush) has
        finished. Safe to call more than once.
        """
        self._stop()
        with self._iteration_lock:
            if self._closed:
                return
            self._closed = True
            try:
                self.coordinator.close()
            finally:
                if self.last_record is not None:
                    self.last_record.ack()
        logger.info(f"Sink writer {self.config.sink_name} closed")

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop has stopped; returns False on timeout."""
        return self._stop_event.wait(timeout)

    def snapshot(self) -> dict:
        """Counters for monitoring and tests."""
        return {
            "state": self._state.value,
            "records_since_commit": self.batch.records_since_commit,
            "consecutive_commit_failures": self.coordinator.consecutive_failures,
            "records_written": self.stats.records_written,
            "records_dropped": self.stats.records_dropped,
            "records_skipped": self.stats.records_skipped,
            "commits": self.stats.commits,
            "commit_failures": self.stats.commit_failures,
            "schema_changes": self.stats.schema_changes,
            "writers_created": self.coordinator.writers_created,
        }
