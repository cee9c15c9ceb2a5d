"""
Schema tracker for the writer loop.

Remembers the active input schema and its null-stripped projection, and
detects schema changes between consecutive records.
"""

import logging
from typing import Any, Dict, Optional

from ..decode.primitives import wrapping_schema
from .converter import is_record_schema, load_descriptor, parse_avro_schema, strip_nulls


logger = logging.getLogger(__name__)


class SchemaTracker:
    """
    Tracks the active schema by its descriptor text.

    Changes are detected by exact string comparison: a descriptor that only
    differs cosmetically (whitespace, key order) still counts as a change.

    Example:
        >>> tracker = SchemaTracker()
        >>> tracker.observe('{"type": "record", "name": "A", "fields": []}')
        True
        >>> tracker.observe('{"type": "record", "name": "A", "fields": []}')
        False
    """

    def __init__(self):
        self.descriptor: Optional[str] = None
        self.schema: Optional[Any] = None
        self.projection: Optional[Any] = None
        self.version = 0
        self._node: Any = None
        self._wrapped: Dict[str, Any] = {}

    @property
    def has_schema(self) -> bool:
        return self.descriptor is not None

    def is_changed(self, descriptor: str) -> bool:
        return self.descriptor is None or self.descriptor != descriptor

    def observe(self, descriptor: str) -> bool:
        """
        Compare ``descriptor`` to the active one and switch to it if different.

        Args:
            descriptor: Schema descriptor from the incoming record

        Returns:
            True if the active schema was replaced

        Raises:
            SchemaParseError: If the descriptor is malformed; the active
                schema is left unchanged
        """
        if not self.is_changed(descriptor):
            return False

        node = load_descriptor(descriptor)
        schema = parse_avro_schema(node, descriptor=descriptor)
        projection = parse_avro_schema(strip_nulls(node), descriptor=descriptor)

        self.descriptor = descriptor
        self.schema = schema
        self.projection = projection
        self.version += 1
        self._node = node
        self._wrapped = {}

        logger.debug(f"New active schema (version {self.version}): {descriptor}")
        return True

    def wrapped_schema(self, field_name: str) -> Any:
        """
        Return the record schema primitive rows are stored with.

        A record schema is used as is. A bare type is wrapped into a
        one-field record named ``field_name``. The result is cached per
        active schema, so it stays the same object until the schema changes.
        """
        if is_record_schema(self.schema):
            return self.schema
        if field_name not in self._wrapped:
            self._wrapped[field_name] = parse_avro_schema(
                wrapping_schema(self._node, field_name), descriptor=self.descriptor
            )
        return self._wrapped[field_name]
