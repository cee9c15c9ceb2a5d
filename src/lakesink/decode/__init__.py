"""
Record payload decoding.
"""

from .primitives import (
    DEFAULT_FIELD_NAME,
    primitive_descriptor,
    primitive_schema,
    wrap_primitive,
    wrapping_schema,
)
from .row_decoder import RowDecoder

__all__ = [
    "DEFAULT_FIELD_NAME",
    "RowDecoder",
    "primitive_descriptor",
    "primitive_schema",
    "wrap_primitive",
    "wrapping_schema",
]
