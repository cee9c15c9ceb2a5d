"""
Shared test fixtures and configuration for pytest.
"""

import json
import logging
import queue
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from fastavro.schema import to_parsing_canonical_form

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lakesink.config.config_loader import SinkConfig  # noqa: E402
from lakesink.core.models import EncodingKind, SinkRecord  # noqa: E402
from lakesink.core.writer import TableWriter  # noqa: E402


logger = logging.getLogger(__name__)


USER_SCHEMA = {
    "type": "record",
    "name": "User",
    "fields": [
        {"name": "id", "type": "long"},
        {"name": "name", "type": "string"},
        {"name": "email", "type": ["null", "string"], "default": None},
    ],
}

USER_SCHEMA_V2 = {
    "type": "record",
    "name": "User",
    "fields": [
        {"name": "id", "type": "long"},
        {"name": "name", "type": "string"},
        {"name": "age", "type": "int"},
    ],
}


# ============================================================================
# Test doubles
# ============================================================================

class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTableWriter(TableWriter):
    """
    In-memory table writer.

    ``flush_results`` is consumed one value per flush; once empty every flush
    succeeds. ``replace_on_schema_change`` controls ``update_schema``.
    """

    def __init__(
        self,
        schema: Any,
        flush_results: Optional[List[bool]] = None,
        replace_on_schema_change: bool = True,
    ):
        self.schema = schema
        self.flush_results = list(flush_results or [])
        self.replace_on_schema_change = replace_on_schema_change
        self.pending: List[Dict[str, Any]] = []
        self.committed: List[List[Dict[str, Any]]] = []
        self.flush_calls = 0
        self.closed = False

    def update_schema(self, schema: Any) -> bool:
        if to_parsing_canonical_form(schema) == to_parsing_canonical_form(self.schema):
            return False
        if self.replace_on_schema_change:
            return True
        self.schema = schema
        return False

    def write(self, row: Dict[str, Any]) -> None:
        self.pending.append(row)

    def flush(self) -> bool:
        self.flush_calls += 1
        ok = self.flush_results.pop(0) if self.flush_results else True
        if ok and self.pending:
            self.committed.append(self.pending)
            self.pending = []
        return ok

    def get_name(self) -> str:
        return "fake"

    def close(self) -> None:
        self.closed = True


class WriterRecorder:
    """Writer factory that remembers every writer it builds."""

    def __init__(self, flush_results: Optional[List[bool]] = None, replace_on_schema_change: bool = True):
        self.flush_results = list(flush_results or [])
        self.replace_on_schema_change = replace_on_schema_change
        self.writers: List[FakeTableWriter] = []

    def __call__(self, schema: Any) -> FakeTableWriter:
        # Only the first writer sees the scripted flush results
        results = self.flush_results if not self.writers else []
        writer = FakeTableWriter(schema, results, self.replace_on_schema_change)
        self.writers.append(writer)
        return writer

    @property
    def current(self) -> FakeTableWriter:
        return self.writers[-1]


class AckCounter:
    """Counts acknowledgments by message id."""

    def __init__(self):
        self.acked: List[str] = []

    def callback_for(self, message_id: str):
        return lambda: self.acked.append(message_id)


def make_json_record(
    payload: Dict[str, Any],
    schema: Dict[str, Any] = None,
    message_id: str = None,
    acks: AckCounter = None,
) -> SinkRecord:
    """Build a JSON-encoded record with the given schema (USER_SCHEMA by default)."""
    return SinkRecord(
        schema=json.dumps(schema or USER_SCHEMA),
        encoding=EncodingKind.JSON,
        payload=json.dumps(payload),
        ack_callback=acks.callback_for(message_id) if acks else None,
        message_id=message_id,
    )


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def acks() -> AckCounter:
    return AckCounter()


@pytest.fixture
def records() -> queue.Queue:
    return queue.Queue()


@pytest.fixture
def sink_config(tmp_path) -> SinkConfig:
    """Config with small thresholds and storage under a temp directory."""
    return SinkConfig(
        max_commit_interval=5,
        max_records_per_commit=3,
        max_commit_failed_times=3,
        poll_timeout_ms=1,
        sink_name="test-sink",
        storage={"type": "avro_lake", "base_dir": str(tmp_path / "lake"), "table": "users"},
    )


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch, tmp_path):
    """Keep LAKESINK_* variables and .env files from leaking into tests."""
    import os

    for name in list(os.environ):
        if name.startswith("LAKESINK_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def user_schema() -> Dict[str, Any]:
    return json.loads(json.dumps(USER_SCHEMA))


@pytest.fixture
def user_schema_v2() -> Dict[str, Any]:
    return json.loads(json.dumps(USER_SCHEMA_V2))


@pytest.fixture
def make_record():
    """Factory for JSON-encoded user records."""
    return make_json_record


@pytest.fixture
def writer_recorder():
    """Factory for writer factories: ``writer_recorder(flush_results=[False])``."""
    return WriterRecorder
