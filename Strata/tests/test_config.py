"""Tests for configuration loading and logging setup."""

import json
import logging
import sys

import pytest

from Strata.config.logging_config import JSONFormatter, setup_logging
from Strata.config.settings import StrataConfig, get_config


class TestStrataConfig:
    """Test configuration defaults, files and environment overrides."""

    def test_defaults(self):
        """Test default values."""
        config = StrataConfig()
        assert config.api.url == "http://localhost:8000/api/v1"
        assert config.ingest.break_pattern == "\n"
        assert config.ingest.max_archive_depth == 1
        assert config.cache.enabled is False

    def test_save_and_load(self, tmp_path):
        """Test a saved config loads back."""
        path = tmp_path / "strata.json"
        config = StrataConfig()
        config.api.host = "https://example.test"
        config.ingest.max_archive_depth = 3
        config.save(str(path))

        loaded = StrataConfig.load(str(path))
        assert loaded.api.host == "https://example.test"
        assert loaded.ingest.max_archive_depth == 3
        assert json.loads(path.read_text())["cache"]["directory"] == ".strata_cache"

    def test_load_missing_file(self, tmp_path):
        """Test a missing file falls back to defaults."""
        assert StrataConfig.load(str(tmp_path / "nope.json")).api.max_retries == 1

    def test_env_overrides(self, monkeypatch):
        """Test STRATA_* variables win over defaults."""
        monkeypatch.setenv("STRATA_API_HOST", "https://api.test")
        monkeypatch.setenv("STRATA_API_TIMEOUT", "5.5")
        monkeypatch.setenv("STRATA_INGEST_BREAK", "\\r\\n")
        monkeypatch.setenv("STRATA_INGEST_ARCHIVE_DEPTH", "2")
        monkeypatch.setenv("STRATA_CACHE_ENABLED", "yes")
        monkeypatch.setenv("STRATA_LOG_LEVEL", "DEBUG")

        config = StrataConfig.from_env()
        assert config.api.host == "https://api.test"
        assert config.api.timeout_s == 5.5
        assert config.ingest.break_pattern == "\r\n"
        assert config.ingest.max_archive_depth == 2
        assert config.cache.enabled is True
        assert config.logging.level == "DEBUG"

    def test_invalid_env_ignored(self, monkeypatch):
        """Test unparsable numbers keep the previous value."""
        monkeypatch.setenv("STRATA_API_MAX_RETRIES", "many")
        assert StrataConfig.from_env().api.max_retries == 1

    def test_get_config_file_then_env(self, tmp_path, monkeypatch):
        """Test environment variables override the config file."""
        path = tmp_path / "strata.json"
        path.write_text(json.dumps({"api": {"host": "https://file.test", "base": "/v2"}}))
        monkeypatch.setenv("STRATA_API_HOST", "https://env.test")
        monkeypatch.chdir(tmp_path)

        config = get_config(str(path))
        assert config.api.host == "https://env.test"
        assert config.api.base == "/v2"


class TestLogging:
    """Test logging setup."""

    def setup_method(self):
        root = logging.getLogger()
        self.saved_handlers = root.handlers[:]
        self.saved_level = root.level

    def teardown_method(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            if handler not in self.saved_handlers:
                handler.close()
        for handler in self.saved_handlers:
            root.addHandler(handler)
        root.setLevel(self.saved_level)
        logging.getLogger("Strata.ingestion").setLevel(logging.NOTSET)

    def test_json_file_logging(self, tmp_path):
        """Test JSON records written to the log file."""
        log_file = tmp_path / "strata.log"
        setup_logging(log_level="INFO", log_format="json", log_file=str(log_file))
        logging.getLogger("STRATA.Test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert lines[-1]["message"] == "hello"
        assert lines[-1]["logger"] == "STRATA.Test"

    def test_component_levels(self):
        """Test per-logger level overrides."""
        setup_logging(log_level="INFO", component_levels={"Strata.ingestion": "DEBUG"})
        assert logging.getLogger("Strata.ingestion").level == logging.DEBUG

    def test_json_formatter_exception(self):
        """Test exceptions are serialized."""
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "oops", None, sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert data["level"] == "ERROR"
        assert "ValueError: bad" in data["exception"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
