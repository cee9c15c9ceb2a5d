"""
Schema conversion helpers.

Turns a wire-format schema descriptor (Avro schema JSON text) into parsed
schemas, and derives the null-stripped projection used to drive decoding.
"""

import copy
import json
import logging
from typing import Any, Dict, List, Union

from fastavro import parse_schema
from fastavro.schema import SchemaParseException, UnknownType

from ..core.exceptions import SchemaParseError


logger = logging.getLogger(__name__)


SchemaNode = Union[str, Dict[str, Any], List[Any]]


def load_descriptor(descriptor: str) -> SchemaNode:
    """
    Decode a schema descriptor into its JSON structure.

    A bare primitive type name such as ``"string"`` is accepted without
    surrounding quotes.

    Raises:
        SchemaParseError: If the descriptor is blank or not JSON
    """
    if descriptor is None or not descriptor.strip():
        raise SchemaParseError("Schema descriptor is empty", descriptor=descriptor)

    text = descriptor.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        if text.isidentifier():
            return text
        raise SchemaParseError(
            f"Schema descriptor is not valid JSON: {e}", descriptor=descriptor
        ) from e


def parse_avro_schema(node: SchemaNode, descriptor: str = None) -> SchemaNode:
    """
    Validate and parse a schema structure with fastavro.

    Raises:
        SchemaParseError: If the structure is not a valid Avro schema
    """
    try:
        return parse_schema(copy.deepcopy(node))
    except (SchemaParseException, UnknownType, KeyError, TypeError, ValueError) as e:
        raise SchemaParseError(f"Invalid Avro schema: {e}", descriptor=descriptor) from e


def is_record_schema(schema: SchemaNode) -> bool:
    return isinstance(schema, dict) and schema.get("type") in ("record", "error")


def _is_null(branch: SchemaNode) -> bool:
    return branch == "null" or (isinstance(branch, dict) and branch.get("type") == "null")


def strip_nulls(node: SchemaNode) -> SchemaNode:
    """
    Return a copy of ``node`` with nullable unions collapsed.

    Every union containing ``null`` keeps only its non-null branches; a union
    left with one branch becomes that branch. A ``null`` default on a field
    whose type is no longer nullable is dropped.

    Example:
        >>> strip_nulls(["null", "string"])
        'string'
    """
    if isinstance(node, list):
        branches = [strip_nulls(b) for b in node if not _is_null(b)]
        if not branches:
            return "null"
        if len(branches) == 1:
            return branches[0]
        return branches

    if not isinstance(node, dict):
        return node

    stripped = dict(node)
    node_type = node.get("type")

    if node_type == "record" or node_type == "error":
        new_fields = []
        for schema_field in node.get("fields", []):
            new_field = dict(schema_field)
            new_field["type"] = strip_nulls(schema_field["type"])
            if "default" in new_field and new_field["default"] is None and not _is_null(new_field["type"]):
                del new_field["default"]
            new_fields.append(new_field)
        stripped["fields"] = new_fields
    elif node_type == "array":
        stripped["items"] = strip_nulls(node["items"])
    elif node_type == "map":
        stripped["values"] = strip_nulls(node["values"])
    elif isinstance(node_type, (list, dict)):
        stripped["type"] = strip_nulls(node_type)

    return stripped


def to_null_stripped_schema(descriptor: str) -> SchemaNode:
    """Parse ``descriptor`` and return its parsed null-stripped projection."""
    node = load_descriptor(descriptor)
    return parse_avro_schema(strip_nulls(node), descriptor=descriptor)
