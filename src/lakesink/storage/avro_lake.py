"""
Avro lake writer - a versioned table stored as Avro files on the filesystem.

Directory structure:
    {base_dir}/{table}/
        ├── _manifest.json              # Committed versions, newest last
        └── data/
            ├── v00000001-<id>.avro     # Rows of commit 1
            └── v00000002-<id>.avro     # Rows of commit 2

A commit writes one immutable data file, then replaces the manifest. Rows
in a data file that the manifest does not list are not part of the table.
"""

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from fastavro import parse_schema, reader, writer
from fastavro.schema import fingerprint, to_parsing_canonical_form
from fastavro.validation import validate

from ..core.writer import TableWriter


logger = logging.getLogger(__name__)


MANIFEST_NAME = "_manifest.json"


def schema_fingerprint(schema: Any) -> str:
    """Stable fingerprint of a parsed schema's canonical form."""
    return fingerprint(to_parsing_canonical_form(schema), "CRC-64-AVRO")


class AvroLakeWriter(TableWriter):
    """
    Appends rows to a versioned Avro table.

    Rows are buffered in memory until ``flush``. A failed flush keeps the
    buffer so the next attempt commits the same rows.

    Example:
        >>> writer = AvroLakeWriter("lake/tables", "orders", schema)
        >>> writer.write({"id": 1})
        >>> writer.flush()
        True
    """

    def __init__(
        self,
        base_dir: Path,
        table: str,
        schema: Any,
        codec: str = "null",
    ):
        """
        Initialize the writer.

        Args:
            base_dir: Base directory holding table directories
            table: Table name
            schema: Parsed Avro schema rows are written with
            codec: Avro block codec ("null" or "deflate")
        """
        self.base_dir = Path(base_dir)
        self.table = table
        self.table_dir = self.base_dir / table
        self.data_dir = self.table_dir / "data"
        self.codec = codec
        self.schema = parse_schema(schema)
        self.fingerprint = schema_fingerprint(self.schema)
        self._buffer: List[Dict[str, Any]] = []
        self._closed = False

        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"AvroLakeWriter initialized: table_dir={self.table_dir}")

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def get_name(self) -> str:
        return f"avro_lake:{self.table}"

    def update_schema(self, schema: Any) -> bool:
        """Avro data files carry one schema, so any change needs a new writer."""
        return schema_fingerprint(parse_schema(schema)) != self.fingerprint

    def write(self, row: Dict[str, Any]) -> None:
        """
        Buffer a row for the next commit.

        Raises:
            ValidationError: If the row does not match the writer schema
            RuntimeError: If the writer is closed
        """
        if self._closed:
            raise RuntimeError(f"Writer {self.get_name()} is closed")
        validate(row, self.schema, raise_errors=True)
        self._buffer.append(row)

    def flush(self) -> bool:
        """
        Commit buffered rows as a new table version.

        Returns:
            True if committed (or nothing to commit), False on I/O failure
        """
        if not self._buffer:
            return True

        manifest = self.read_manifest()
        version = manifest["current_version"] + 1
        file_name = f"v{version:08d}-{uuid.uuid4().hex[:12]}.avro"
        file_path = self.data_dir / file_name
        tmp_path = self.data_dir / f".{file_name}.tmp"

        try:
            with open(tmp_path, "wb") as f:
                writer(f, self.schema, self._buffer, codec=self.codec)
            os.replace(tmp_path, file_path)

            manifest["current_version"] = version
            manifest["versions"].append({
                "version": version,
                "file": f"data/{file_name}",
                "rows": len(self._buffer),
                "schema_fingerprint": self.fingerprint,
                "committed_at": datetime.now(timezone.utc).isoformat(),
            })
            self._write_manifest(manifest)
        except OSError as e:
            logger.error(f"Failed to commit version {version} of {self.table}: {e}")
            for path in (tmp_path, file_path):
                if path.exists():
                    path.unlink()
            return False

        logger.info(f"Committed version {version} of {self.table} ({len(self._buffer)} rows)")
        self._buffer = []
        return True

    def close(self) -> None:
        """Commit any buffered rows and stop accepting writes."""
        if self._closed:
            return
        if self._buffer and not self.flush():
            logger.error(f"Discarding {len(self._buffer)} uncommitted rows of {self.table}")
            self._buffer = []
        self._closed = True

    def read_manifest(self) -> Dict[str, Any]:
        return read_manifest(self.table_dir, self.table)

    def _write_manifest(self, manifest: Dict[str, Any]) -> None:
        manifest_path = self.table_dir / MANIFEST_NAME
        tmp_path = self.table_dir / f".{MANIFEST_NAME}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)
        os.replace(tmp_path, manifest_path)


def read_manifest(table_dir: Path, table: Optional[str] = None) -> Dict[str, Any]:
    """Load a table manifest, or an empty one if the table has no commits."""
    manifest_path = Path(table_dir) / MANIFEST_NAME
    if not manifest_path.exists():
        return {"table": table or Path(table_dir).name, "current_version": 0, "versions": []}
    with open(manifest_path, "r", encoding="utf-8") as f:
        return json.load(f)


def read_table(base_dir: Path, table: str) -> Iterator[Dict[str, Any]]:
    """
    Yield every committed row of a table, oldest version first.

    Args:
        base_dir: Base directory holding table directories
        table: Table name
    """
    table_dir = Path(base_dir) / table
    manifest = read_manifest(table_dir, table)
    for entry in manifest["versions"]:
        with open(table_dir / entry["file"], "rb") as f:
            for row in reader(f):
                yield row
