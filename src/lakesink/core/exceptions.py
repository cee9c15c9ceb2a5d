"""
Custom exceptions for the lakehouse sink.
"""


class SinkError(Exception):
    """Base exception for all sink errors."""
    pass


class SchemaParseError(SinkError):
    """
    Error parsing a record's schema descriptor.

    Raised when:
    - Descriptor is empty or whitespace
    - Descriptor is not valid JSON
    - Descriptor is not a valid Avro schema

    Local to the record being processed; the writer loop skips the record.
    """

    def __init__(self, message: str, descriptor: str = None):
        super().__init__(message)
        self.descriptor = descriptor


class RowDecodeError(SinkError):
    """
    Error decoding a record payload into a row.

    Raised when:
    - JSON payload is missing a required field
    - JSON payload value does not match the field type
    - Payload is not valid JSON
    """

    def __init__(self, message: str, encoding: str = None):
        super().__init__(message)
        self.encoding = encoding


class UnsupportedPrimitiveError(RowDecodeError):
    """Native value type cannot be wrapped into a primitive row."""
    pass


class WriterCreationError(SinkError):
    """
    Error constructing a table writer.

    Fatal: stops the writer loop.
    """
    pass


class CommitFailedError(SinkError):
    """
    Consecutive commit failures exceeded the allowed maximum.

    Fatal: stops the writer loop.
    """

    def __init__(self, message: str, failures: int = 0, max_failures: int = 0):
        super().__init__(message)
        self.failures = failures
        self.max_failures = max_failures


class SinkConfigError(SinkError):
    """
    Error in sink configuration.

    Raised when:
    - Configuration file is invalid
    - Thresholds are zero or negative
    - Storage type is unknown
    """
    pass


class SinkClosedError(SinkError):
    """Record offered to a sink whose writer loop is no longer running."""
    pass
