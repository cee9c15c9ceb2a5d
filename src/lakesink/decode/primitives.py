"""
Wrapping of primitive native values into single-field rows.

Records whose payload is a plain value (text, number, boolean, bytes,
date/time or a flat map) are stored as a one-field record. The field is
named ``message`` unless overridden in configuration.
"""

import json
import re
from datetime import date, datetime, time
from typing import Any, Dict, Optional, Tuple

from ..core.exceptions import SinkConfigError, UnsupportedPrimitiveError


DEFAULT_FIELD_NAME = "message"
RECORD_NAME = "PrimitiveRecord"

_AVRO_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def resolve_field_name(override_field_name: Optional[str]) -> str:
    """
    Return the field name to wrap primitive values under.

    Raises:
        SinkConfigError: If the override is not a valid Avro field name
    """
    if not override_field_name:
        return DEFAULT_FIELD_NAME
    if not _AVRO_NAME.match(override_field_name):
        raise SinkConfigError(f"Invalid override field name: {override_field_name!r}")
    return override_field_name


def _scalar_type(value: Any) -> Tuple[Any, Any]:
    """Return the Avro type for a scalar value and the value to store."""
    # bool before int, datetime before date: both are subclasses
    if isinstance(value, bool):
        return "boolean", value
    if isinstance(value, int):
        return "long", value
    if isinstance(value, float):
        return "double", value
    if isinstance(value, str):
        return "string", value
    if isinstance(value, (bytes, bytearray)):
        return "bytes", bytes(value)
    if isinstance(value, datetime):
        return {"type": "long", "logicalType": "timestamp-millis"}, value
    if isinstance(value, date):
        return {"type": "int", "logicalType": "date"}, value
    if isinstance(value, time):
        return {"type": "int", "logicalType": "time-millis"}, value
    raise UnsupportedPrimitiveError(
        f"Unsupported primitive value type: {type(value).__name__}",
        encoding="primitive",
    )


def _value_type(value: Any) -> Tuple[Any, Any]:
    if isinstance(value, dict):
        if not all(isinstance(k, str) for k in value):
            raise UnsupportedPrimitiveError("Map keys must be strings", encoding="primitive")
        if not value:
            return {"type": "map", "values": "string"}, {}

        converted = {}
        value_types = []
        for key, item in value.items():
            item_type, converted[key] = _scalar_type(item)
            if item_type not in value_types:
                value_types.append(item_type)
        if len(value_types) > 1:
            raise UnsupportedPrimitiveError(
                "Map values must share one type", encoding="primitive"
            )
        return {"type": "map", "values": value_types[0]}, converted

    return _scalar_type(value)


def primitive_schema(value: Any, field_name: str = DEFAULT_FIELD_NAME) -> Dict[str, Any]:
    """
    Build the Avro record schema that wraps ``value``.

    Example:
        >>> primitive_schema("hello")["fields"]
        [{'name': 'message', 'type': 'string'}]
    """
    value_type, _ = _value_type(value)
    return wrapping_schema(value_type, field_name)


def wrapping_schema(value_type: Any, field_name: str = DEFAULT_FIELD_NAME) -> Dict[str, Any]:
    """
    Build the one-field record schema that holds values of ``value_type``.

    Used when a primitive record declares a bare type (``"string"``,
    ``{"type": "map", ...}``) rather than the record it is stored as.
    """
    return {
        "type": "record",
        "name": RECORD_NAME,
        "fields": [{"name": field_name, "type": value_type}],
    }


def primitive_descriptor(value: Any, field_name: str = DEFAULT_FIELD_NAME) -> str:
    """Schema descriptor text for a primitive record carrying ``value``."""
    return json.dumps(primitive_schema(value, field_name))


def wrap_primitive(value: Any, field_name: str = DEFAULT_FIELD_NAME) -> Dict[str, Any]:
    """
    Wrap a native value into a single-field row.

    Raises:
        UnsupportedPrimitiveError: If the value type cannot be stored
    """
    if value is None:
        raise UnsupportedPrimitiveError("Primitive value is None", encoding="primitive")
    _, stored = _value_type(value)
    return {field_name: stored}
