"""
Tests for configuration loading.
"""

import json

import pytest

from src.polygon_weather.core import Config, constants


@pytest.fixture
def config_dict():
    return {
        "api": {"base_url": "https://archive.example.com", "timeout": 10},
        "refresh": {"debounce_seconds": 0.25},
    }


@pytest.fixture
def write_config(tmp_path):
    def _write(data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CONFIG_FILE", "WEATHER_API_BASE_URL", "DASHBOARD_STATE_FILE", "LOG_LEVEL", "ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)


class TestConfig:
    """Test configuration loading and defaults."""

    def test_load(self, write_config, config_dict):
        """Test values read from the file."""
        config = Config(write_config(config_dict))

        assert config.api_base_url == "https://archive.example.com"
        assert config.api_timeout == 10
        assert config.debounce_seconds == 0.25

    def test_defaults(self, write_config, config_dict):
        """Test defaults for optional keys."""
        config = Config(write_config(config_dict))

        assert config.api_max_retries == 0
        assert config.api_verify_ssl is True
        assert config.discard_stale_responses is True
        assert config.storage_key == constants.DEFAULT_STORAGE_KEY
        assert config.storage_path == constants.DEFAULT_STORAGE_PATH
        assert config.log_level == "INFO"
        assert config.log_file is None

    def test_dot_notation(self, write_config, config_dict):
        """Test nested lookups and defaults for missing keys."""
        config = Config(write_config(config_dict))

        assert config.get("api.timeout") == 10
        assert config.get("api.missing", "x") == "x"
        assert config.get("api.timeout.deeper", "x") == "x"

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            Config(str(tmp_path / "nope.json"))

    def test_config_file_env(self, write_config, config_dict, monkeypatch):
        """Test that CONFIG_FILE selects the file."""
        monkeypatch.setenv("CONFIG_FILE", write_config(config_dict))

        assert Config().api_timeout == 10

    def test_env_overrides(self, write_config, config_dict, monkeypatch):
        """Test environment variable overrides."""
        monkeypatch.setenv("WEATHER_API_BASE_URL", "http://localhost:8080")
        monkeypatch.setenv("DASHBOARD_STATE_FILE", "/tmp/state.json")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("ENVIRONMENT", "test")

        config = Config(write_config(config_dict))

        assert config.api_base_url == "http://localhost:8080"
        assert config.storage_path == "/tmp/state.json"
        assert config.log_level == "DEBUG"
        assert "env=test" in repr(config)

    def test_missing_section(self, write_config, config_dict):
        """Test that a missing required section is reported."""
        del config_dict["refresh"]

        with pytest.raises(ValueError, match="refresh"):
            Config(write_config(config_dict))

    def test_missing_keys(self, write_config, config_dict):
        """Test that every missing required key is reported."""
        del config_dict["api"]["timeout"]
        del config_dict["refresh"]["debounce_seconds"]

        with pytest.raises(ValueError, match="api.timeout, refresh.debounce_seconds"):
            Config(write_config(config_dict))

    def test_negative_debounce(self, write_config, config_dict):
        """Test that a negative debounce delay is rejected."""
        config_dict["refresh"]["debounce_seconds"] = -1

        with pytest.raises(ValueError, match="debounce"):
            Config(write_config(config_dict))

    def test_shipped_config(self):
        """Test that the repository's config.json loads."""
        from pathlib import Path

        config = Config(str(Path(__file__).parent.parent / "config.json"))
        assert config.api_base_url == constants.DEFAULT_ARCHIVE_URL
        assert config.debounce_seconds == constants.DEBOUNCE_SECONDS
