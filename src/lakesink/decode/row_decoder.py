"""
Row decoder - converts envelope records into canonical rows.

Three payload encodings are supported:
- BINARY: the payload already is the row and is passed through unchanged
  once it conforms to the active schema
- JSON: the payload text is decoded against the null-stripped projection
- PRIMITIVE: the native value is wrapped into a single-field row and checked
  against the wrapping schema

Decoding never raises. Failures are logged and reported as None so the
writer loop can drop the record and continue.
"""

import io
import json
import logging
from typing import Any, Dict, Optional

from fastavro import json_reader
from fastavro.validation import validate

from ..core.exceptions import RowDecodeError
from ..core.models import EncodingKind, SinkRecord
from .primitives import resolve_field_name, wrap_primitive


logger = logging.getLogger(__name__)


class RowDecoder:
    """
    Decodes one record at a time given the active schema.

    Example:
        >>> decoder = RowDecoder(override_field_name="value")
        >>> row = decoder.decode(record, tracker.schema, tracker.projection)
    """

    def __init__(self, override_field_name: Optional[str] = None):
        self.field_name = resolve_field_name(override_field_name)

    def decode(
        self,
        record: SinkRecord,
        schema: Any,
        projection: Any,
    ) -> Optional[Dict[str, Any]]:
        """
        Decode a record into a row.

        Args:
            record: The envelope record
            schema: Parsed schema the row is stored with (for primitive
                records, the wrapping record schema)
            projection: Parsed null-stripped projection of the active schema

        Returns:
            The canonical row, or None if the record could not be decoded
        """
        try:
            if record.encoding == EncodingKind.BINARY:
                return self._conforming(record.payload, schema)
            if record.encoding == EncodingKind.JSON:
                return self.decode_json(record.payload, projection)
            return self._conforming(wrap_primitive(record.payload, self.field_name), schema)
        except Exception as e:
            logger.warning(
                f"Dropping record {record.message_id or '<unknown>'}: "
                f"failed to decode {record.encoding.value} payload: {e}",
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            return None

    def decode_json(self, payload: Any, projection: Any) -> Dict[str, Any]:
        """
        Decode a JSON payload against the null-stripped projection.

        Raises:
            RowDecodeError: On malformed JSON, missing required fields or
                type mismatches
        """
        if isinstance(payload, (bytes, bytearray)):
            payload = bytes(payload).decode("utf-8")
        if isinstance(payload, str):
            try:
                document = json.loads(payload)
            except json.JSONDecodeError as e:
                raise RowDecodeError(f"Payload is not valid JSON: {e}", encoding="json") from e
        else:
            document = payload

        # The JSON reader consumes one document per line
        line = json.dumps(document)
        try:
            rows = list(json_reader(io.StringIO(line), projection))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RowDecodeError(f"Payload does not match schema: {e!r}", encoding="json") from e

        if len(rows) != 1:
            raise RowDecodeError(f"Expected one JSON document, got {len(rows)}", encoding="json")

        row = rows[0]
        if not validate(row, projection, raise_errors=False):
            raise RowDecodeError("Payload does not match schema", encoding="json")
        return row

    def _conforming(self, row: Any, schema: Any) -> Any:
        """Return ``row`` if it matches ``schema``, else raise RowDecodeError."""
        if schema is not None and not validate(row, schema, raise_errors=False):
            raise RowDecodeError("Payload does not match schema")
        return row
