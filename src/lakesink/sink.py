"""
Lakehouse sink - connector lifecycle around the writer loop.

Producers call ``write`` to enqueue records; a dedicated worker thread runs
the SinkWriter loop that batches them into the table.
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, Optional

from .config.config_loader import SinkConfig
from .core.exceptions import SinkClosedError
from .core.models import SinkRecord
from .runner.commit import WriterFactory
from .runner.sink_writer import SinkWriter


logger = logging.getLogger(__name__)


class LakehouseSink:
    """
    Owns the bounded record queue and the writer thread for one sink.

    Example:
        >>> with LakehouseSink() as sink:
        ...     sink.open(config)
        ...     sink.write(record)
    """

    def __init__(
        self,
        writer_factory: Optional[WriterFactory] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.writer_factory = writer_factory
        self.clock = clock
        self.config: Optional[SinkConfig] = None
        self.records: Optional[queue.Queue] = None
        self.sink_writer: Optional[SinkWriter] = None
        self._thread: Optional[threading.Thread] = None

    def open(self, config: SinkConfig) -> None:
        """
        Validate the configuration and start the writer thread.

        Raises:
            SinkConfigError: If the configuration is invalid
        """
        config.validate()
        self.config = config
        self.records = queue.Queue(maxsize=config.queue_size)

        kwargs: dict = {"writer_factory": self.writer_factory}
        if self.clock is not None:
            kwargs["clock"] = self.clock
        self.sink_writer = SinkWriter(config, self.records, **kwargs)

        self._thread = threading.Thread(
            target=self.sink_writer.run,
            name=f"sink-writer-{config.sink_name}",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Opened sink {config.sink_name} (queue_size={config.queue_size})")

    def is_running(self) -> bool:
        return self.sink_writer is not None and self.sink_writer.is_running()

    def write(
        self,
        record: SinkRecord,
        timeout: Optional[float] = None,
        retry_interval: float = 0.1,
    ) -> None:
        """
        Enqueue a record, blocking while the queue is full.

        While blocked the writer loop is re-checked every ``retry_interval``
        seconds, so a producer never waits on a loop that has stopped.

        Raises:
            SinkClosedError: If the writer loop is not running
            queue.Full: If ``timeout`` elapses with the queue still full
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            self._ensure_running()
            wait = retry_interval
            if deadline is not None:
                wait = min(wait, max(deadline - time.monotonic(), 0.0))
            try:
                self.records.put(record, timeout=wait)
                return
            except queue.Full:
                if deadline is not None and time.monotonic() >= deadline:
                    raise

    def _ensure_running(self) -> None:
        if self.is_running():
            return
        error = self.sink_writer.last_error if self.sink_writer else None
        message = "Sink writer is not running"
        if error is not None:
            message = f"{message}: {error}"
        raise SinkClosedError(message)

    def drain(self, timeout: float = 10.0, poll_interval: float = 0.05) -> bool:
        """
        Wait until every queued record has been taken or the writer stops.

        Returns:
            True if the queue drained while the writer was running
        """
        if self.records is None:
            return True
        waited = 0.0
        while waited < timeout:
            if not self.is_running():
                return False
            if self.records.empty():
                return True
            time.sleep(poll_interval)
            waited += poll_interval
        return False

    def close(self, join_timeout: Optional[float] = 5.0) -> None:
        """Stop the writer loop, release the table writer and join the thread."""
        if self.sink_writer is not None:
            self.sink_writer.close()
        if self._thread is not None:
            self._thread.join(join_timeout)
            self._thread = None
        logger.info(f"Closed sink {self.config.sink_name if self.config else ''}")

    def __enter__(self) -> "LakehouseSink":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
