"""
Schema tracking and conversion.
"""

from .converter import (
    is_record_schema,
    load_descriptor,
    parse_avro_schema,
    strip_nulls,
    to_null_stripped_schema,
)
from .tracker import SchemaTracker

__all__ = [
    "SchemaTracker",
    "is_record_schema",
    "load_descriptor",
    "parse_avro_schema",
    "strip_nulls",
    "to_null_stripped_schema",
]
