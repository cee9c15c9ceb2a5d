#!/usr/bin/env python3
"""
CLI entry point for the lakehouse sink.

Feeds records from a JSON Lines file into a sink and commits them to the
configured table. Each input line is an object:

    {"schema": <Avro schema or its JSON text>,
     "encoding": "json" | "primitive" | "binary",
     "payload": <value>,
     "id": <optional message id>}

For primitive records the schema may be omitted; it is derived from the value.

Usage:
    python -m lakesink.sink_cli --config config/sink.yaml --input records.jsonl
    python -m lakesink.sink_cli --input records.jsonl --table orders --verbose
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from .config.config_loader import load_config
from .core.exceptions import SinkError
from .core.logging import configure_logging
from .core.models import EncodingKind, SinkRecord
from .decode.primitives import primitive_descriptor, resolve_field_name
from .sink import LakehouseSink
from .storage import read_manifest


logger = logging.getLogger(__name__)


def build_record(line_no: int, entry: Dict[str, Any], field_name: str) -> SinkRecord:
    """Turn one parsed input line into a SinkRecord."""
    try:
        encoding = EncodingKind(entry.get("encoding", "json"))
    except ValueError:
        raise ValueError(f"line {line_no}: unknown encoding {entry.get('encoding')!r}")

    schema = entry.get("schema")
    if schema is None and encoding == EncodingKind.PRIMITIVE:
        schema = primitive_descriptor(entry.get("payload"), field_name)
    elif schema is not None and not isinstance(schema, str):
        schema = json.dumps(schema)

    return SinkRecord(
        schema=schema or "",
        encoding=encoding,
        payload=entry.get("payload"),
        message_id=str(entry.get("id", line_no)),
    )


def read_records(path: Path, field_name: str) -> Iterator[SinkRecord]:
    """Yield records from a JSON Lines file, skipping blank and invalid lines."""
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield build_record(line_no, json.loads(line), field_name)
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping input line {line_no}: {e}")


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Lakehouse sink - batch JSON Lines records into a versioned table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to YAML config file")
    parser.add_argument("--input", type=Path, required=True, help="JSON Lines file of records")
    parser.add_argument("--table", type=str, default=None, help="Override storage table name")
    parser.add_argument("--base-dir", type=str, default=None, help="Override storage base directory")
    parser.add_argument(
        "--drain-timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for the queue to drain before closing (default: 30)",
    )
    parser.add_argument("--structured-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser.parse_args(argv)


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        structured=args.structured_logs,
    )

    try:
        config = load_config(args.config)
    except (SinkError, FileNotFoundError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    if args.table:
        config.storage["table"] = args.table
    if args.base_dir:
        config.storage["base_dir"] = args.base_dir

    field_name = resolve_field_name(config.override_field_name)
    sink = LakehouseSink()
    sink.open(config)

    offered = 0
    try:
        for record in read_records(args.input, field_name):
            sink.write(record)
            offered += 1
        drained = sink.drain(timeout=args.drain_timeout)
    except SinkError as e:
        logger.error(f"Sink stopped while writing: {e}")
        drained = False
    finally:
        sink.close()

    snapshot = sink.sink_writer.snapshot()
    table_dir = Path(config.storage["base_dir"]) / config.storage["table"]
    manifest = read_manifest(table_dir, config.storage["table"])

    print(f"Records offered:   {offered}")
    print(f"Records written:   {snapshot['records_written']}")
    print(f"Records dropped:   {snapshot['records_dropped']}")
    print(f"Records skipped:   {snapshot['records_skipped']}")
    print(f"Table version:     {manifest['current_version']}")
    if sink.sink_writer.last_error is not None:
        print(f"Stopped on error:  {sink.sink_writer.last_error}")

    return 0 if drained and sink.sink_writer.last_error is None else 1


if __name__ == "__main__":
    sys.exit(main())
