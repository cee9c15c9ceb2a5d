"""
Core abstractions for the lakehouse sink.

Contains record models, exceptions, the table writer interface and
logging utilities.
"""

from .models import (
    EncodingKind,
    SinkRecord,
    SinkWriterState,
    BatchWindowState,
    SinkStats,
)
from .exceptions import (
    SinkError,
    SchemaParseError,
    RowDecodeError,
    UnsupportedPrimitiveError,
    WriterCreationError,
    CommitFailedError,
    SinkConfigError,
    SinkClosedError,
)
from .writer import TableWriter

__all__ = [
    # Models
    "EncodingKind",
    "SinkRecord",
    "SinkWriterState",
    "BatchWindowState",
    "SinkStats",
    # Exceptions
    "SinkError",
    "SchemaParseError",
    "RowDecodeError",
    "UnsupportedPrimitiveError",
    "WriterCreationError",
    "CommitFailedError",
    "SinkConfigError",
    "SinkClosedError",
    # Interfaces
    "TableWriter",
]
