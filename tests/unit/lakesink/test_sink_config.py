"""
Unit tests for sink configuration loading.
"""

import pytest

from lakesink.config.config_loader import SinkConfig, load_config
from lakesink.core.exceptions import SinkConfigError


class TestSinkConfig:
    """Tests for SinkConfig."""

    def test_defaults(self):
        """Test default thresholds."""
        config = SinkConfig()

        assert config.max_commit_interval == 120
        assert config.max_records_per_commit == 10_000_000
        assert config.max_commit_failed_times == 5
        assert config.override_field_name == ""
        assert config.storage["type"] == "avro_lake"
        assert config.max_commit_interval_seconds == 120.0
        assert config.poll_timeout_seconds == 0.1

    def test_from_dict_merges_storage(self):
        """Test that partial storage settings keep the defaults."""
        config = SinkConfig.from_dict({
            "max_records_per_commit": 500,
            "storage": {"table": "orders"},
            "not_a_setting": True,
        })

        assert config.max_records_per_commit == 500
        assert config.storage == {"type": "avro_lake", "base_dir": "lake/tables", "table": "orders"}

    def test_default_storage_is_not_shared(self):
        """Test that each config gets its own storage mapping."""
        first = SinkConfig()
        first.storage["table"] = "changed"

        assert SinkConfig().storage["table"] == "default"

    def test_from_env(self, monkeypatch):
        """Test environment overrides."""
        monkeypatch.setenv("LAKESINK_MAX_COMMIT_INTERVAL", "30")
        monkeypatch.setenv("LAKESINK_OVERRIDE_FIELD_NAME", "value")
        monkeypatch.setenv("LAKESINK_TABLE", "events")

        config = SinkConfig.from_env()

        assert config.max_commit_interval == 30
        assert config.override_field_name == "value"
        assert config.storage["table"] == "events"

    def test_from_env_rejects_bad_integer(self, monkeypatch):
        """Test that a non-numeric threshold is a config error."""
        monkeypatch.setenv("LAKESINK_QUEUE_SIZE", "lots")

        with pytest.raises(SinkConfigError):
            SinkConfig.from_env()

    @pytest.mark.parametrize("overrides", [
        {"max_commit_interval": 0},
        {"max_records_per_commit": -1},
        {"max_commit_failed_times": -1},
        {"queue_size": 0},
        {"poll_timeout_ms": 0},
        {"storage": {}},
    ])
    def test_validate_rejects(self, overrides):
        """Test out-of-range values."""
        with pytest.raises(SinkConfigError):
            SinkConfig(**overrides).validate()

    def test_zero_failed_times_is_valid(self):
        """Test that a zero ceiling (first failure is fatal) is allowed."""
        SinkConfig(max_commit_failed_times=0).validate()


class TestLoadConfig:
    """Tests for load_config."""

    def test_without_file(self):
        """Test that no path gives the defaults."""
        assert load_config().max_commit_failed_times == 5

    def test_yaml_file(self, tmp_path, monkeypatch):
        """Test loading the sink section, with the environment on top."""
        path = tmp_path / "sink.yaml"
        path.write_text(
            "sink:\n"
            "  max_commit_interval: 10\n"
            "  max_records_per_commit: 100\n"
            "  storage:\n"
            "    table: orders\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("LAKESINK_MAX_RECORDS_PER_COMMIT", "50")

        config = load_config(path)

        assert config.max_commit_interval == 10
        assert config.max_records_per_commit == 50
        assert config.storage["table"] == "orders"

    def test_missing_file(self, tmp_path):
        """Test that a missing file is reported."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test that malformed YAML is a config error."""
        path = tmp_path / "bad.yaml"
        path.write_text("sink: [unclosed\n", encoding="utf-8")

        with pytest.raises(SinkConfigError):
            load_config(path)

    def test_non_mapping_root(self, tmp_path):
        """Test that a list at the root is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(SinkConfigError):
            load_config(path)

    def test_invalid_values_rejected(self, tmp_path):
        """Test that loaded values are validated."""
        path = tmp_path / "sink.yaml"
        path.write_text("sink:\n  max_commit_interval: 0\n", encoding="utf-8")

        with pytest.raises(SinkConfigError):
            load_config(path)
