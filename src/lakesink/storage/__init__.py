"""
Table writer implementations and the writer factory.
"""

from typing import Any

from ..core.exceptions import SinkConfigError
from ..core.writer import TableWriter
from .avro_lake import AvroLakeWriter, read_manifest, read_table


def create_writer(config, schema: Any) -> TableWriter:
    """
    Build the table writer configured in ``config.storage`` for ``schema``.

    Args:
        config: SinkConfig
        schema: Parsed schema the writer is bound to

    Raises:
        SinkConfigError: If the storage type is unknown
    """
    storage = config.storage
    storage_type = storage.get("type")
    if storage_type == "avro_lake":
        return AvroLakeWriter(
            base_dir=storage.get("base_dir", "lake/tables"),
            table=storage.get("table", "default"),
            schema=schema,
            codec=storage.get("codec", "null"),
        )
    raise SinkConfigError(f"Unknown storage type: {storage_type}")


__all__ = ["AvroLakeWriter", "create_writer", "read_manifest", "read_table"]
