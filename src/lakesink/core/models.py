"""
Core data models for the lakehouse sink.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


class EncodingKind(str, Enum):
    """
    Encoding of a record's native payload.

    - BINARY: self-describing binary; the payload already is the row
    - JSON: textual JSON to be decoded against the active schema
    - PRIMITIVE: a scalar or map value wrapped into a single-field row
    """
    BINARY = "binary"
    JSON = "json"
    PRIMITIVE = "primitive"


class SinkWriterState(str, Enum):
    """Lifecycle state of the writer loop."""
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class SinkRecord:
    """
    One envelope record pulled from the input queue.

    Attributes:
        schema: Schema descriptor (Avro schema JSON text), possibly empty
        encoding: How the payload is encoded
        payload: Native payload (row dict, JSON text, or primitive value)
        ack_callback: Called once when the record is acknowledged
        message_id: Optional upstream identifier, used for logging
    """
    schema: str
    encoding: EncodingKind
    payload: Any
    ack_callback: Optional[Callable[[], None]] = None
    message_id: Optional[str] = None
    _acked: bool = field(default=False, init=False, repr=False)
    _ack_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def ack(self) -> None:
        """Acknowledge the record. Repeated calls are no-ops."""
        with self._ack_lock:
            if self._acked:
                return
            self._acked = True
        if self.ack_callback is not None:
            self.ack_callback()

    @property
    def acked(self) -> bool:
        return self._acked


@dataclass
class BatchWindowState:
    """
    Counters for the batch currently being accumulated.

    Attributes:
        records_since_commit: Rows written since the last successful commit
        last_commit_time: Monotonic time of the last successful commit
        consecutive_commit_failures: Failed flushes since the last success
    """
    records_since_commit: int = 0
    last_commit_time: float = 0.0
    consecutive_commit_failures: int = 0


@dataclass
class SinkStats:
    """Running totals for one writer loop."""
    records_written: int = 0
    records_dropped: int = 0
    records_skipped: int = 0
    commits: int = 0
    commit_failures: int = 0
    schema_changes: int = 0
