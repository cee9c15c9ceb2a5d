"""
Configuration loader for the lakehouse sink.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from ..core.exceptions import SinkConfigError


logger = logging.getLogger(__name__)


DEFAULT_STORAGE = {
    "type": "avro_lake",
    "base_dir": "lake/tables",
    "table": "default",
}


@dataclass
class SinkConfig:
    """
    Configuration for one sink instance.

    Attributes:
        max_commit_interval: Seconds between commits when rows are pending
        max_records_per_commit: Rows that force a commit regardless of time
        max_commit_failed_times: Consecutive failed commits tolerated before
            the writer loop stops
        override_field_name: Field name used when wrapping primitive values
            (empty = "message")
        queue_size: Capacity of the bounded input queue
        poll_timeout_ms: How long one queue poll waits for a record
        sink_name: Name used in log context
        storage: Table writer settings (type, base_dir, table)
    """
    max_commit_interval: int = 120
    max_records_per_commit: int = 10_000_000
    max_commit_failed_times: int = 5
    override_field_name: str = ""
    queue_size: int = 10_000
    poll_timeout_ms: int = 100
    sink_name: str = "lakesink"
    storage: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_STORAGE))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SinkConfig":
        """
        Build a config from a mapping, ignoring unknown keys.

        Args:
            data: Mapping of config keys (e.g. the ``sink`` YAML section)

        Returns:
            SinkConfig with defaults for anything not given
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown sink config keys: {sorted(unknown)}")

        values = {k: v for k, v in data.items() if k in known}
        storage = dict(DEFAULT_STORAGE)
        storage.update(values.pop("storage", None) or {})
        return cls(storage=storage, **values)

    @classmethod
    def from_env(cls, base: Optional["SinkConfig"] = None) -> "SinkConfig":
        """
        Create config from environment variables.

        Reads a ``.env`` file if one is present. Variables are prefixed with
        ``LAKESINK_``; anything unset keeps the value from ``base``.
        """
        load_dotenv()
        config = base or cls()

        int_vars = {
            "LAKESINK_MAX_COMMIT_INTERVAL": "max_commit_interval",
            "LAKESINK_MAX_RECORDS_PER_COMMIT": "max_records_per_commit",
            "LAKESINK_MAX_COMMIT_FAILED_TIMES": "max_commit_failed_times",
            "LAKESINK_QUEUE_SIZE": "queue_size",
            "LAKESINK_POLL_TIMEOUT_MS": "poll_timeout_ms",
        }
        for env_name, attr in int_vars.items():
            raw = os.environ.get(env_name)
            if raw is None:
                continue
            try:
                setattr(config, attr, int(raw))
            except ValueError:
                raise SinkConfigError(f"{env_name} must be an integer, got {raw!r}")

        if os.environ.get("LAKESINK_OVERRIDE_FIELD_NAME") is not None:
            config.override_field_name = os.environ["LAKESINK_OVERRIDE_FIELD_NAME"]
        if os.environ.get("LAKESINK_SINK_NAME"):
            config.sink_name = os.environ["LAKESINK_SINK_NAME"]
        if os.environ.get("LAKESINK_BASE_DIR"):
            config.storage["base_dir"] = os.environ["LAKESINK_BASE_DIR"]
        if os.environ.get("LAKESINK_TABLE"):
            config.storage["table"] = os.environ["LAKESINK_TABLE"]

        return config

    @property
    def max_commit_interval_seconds(self) -> float:
        return float(self.max_commit_interval)

    @property
    def poll_timeout_seconds(self) -> float:
        return self.poll_timeout_ms / 1000.0

    def validate(self) -> None:
        """
        Check thresholds and storage settings.

        Raises:
            SinkConfigError: If any value is out of range
        """
        if self.max_commit_interval <= 0:
            raise SinkConfigError("max_commit_interval must be positive")
        if self.max_records_per_commit <= 0:
            raise SinkConfigError("max_records_per_commit must be positive")
        if self.max_commit_failed_times < 0:
            raise SinkConfigError("max_commit_failed_times must not be negative")
        if self.queue_size <= 0:
            raise SinkConfigError("queue_size must be positive")
        if self.poll_timeout_ms <= 0:
            raise SinkConfigError("poll_timeout_ms must be positive")
        if not self.storage.get("type"):
            raise SinkConfigError("storage.type is required")


def load_config(config_path: Optional[Union[str, Path]] = None) -> SinkConfig:
    """
    Load sink configuration from YAML, then apply environment overrides.

    The YAML file holds the settings under a top-level ``sink`` key.

    Args:
        config_path: Path to YAML config file (optional)

    Returns:
        Validated SinkConfig
    """
    if config_path is None:
        config = SinkConfig()
    else:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        logger.info(f"Loading config from: {path}")

        with open(path, "r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise SinkConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(raw, dict):
            raise SinkConfigError(f"Config root must be a mapping: {path}")
        config = SinkConfig.from_dict(raw.get("sink") or {})

    config = SinkConfig.from_env(config)
    config.validate()
    return config
