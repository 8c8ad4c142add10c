"""
Configuration module for the polygon weather dashboard.

Loads configuration from JSON file and environment variables.
"""

import json
import os
from typing import Dict, Any, Optional
from pathlib import Path

from . import constants


class Config:
    """Configuration manager for the application."""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to configuration JSON file. If None, uses CONFIG_FILE env var
                        or defaults to 'config.json'
        """
        self.config_file = config_file or os.getenv("CONFIG_FILE", "config.json")
        self.config: Dict[str, Any] = {}
        self._load_config()
        self._override_from_env()
        self._validate_config()

    def _load_config(self) -> None:
        """Load configuration from JSON file."""
        config_path = Path(self.config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        with open(config_path, "r", encoding="utf-8") as f:
            self.config = json.load(f)

    def _override_from_env(self) -> None:
        """Override configuration with environment variables."""
        if os.getenv("WEATHER_API_BASE_URL"):
            self.config.setdefault("api", {})["base_url"] = os.getenv("WEATHER_API_BASE_URL")

        if os.getenv("DASHBOARD_STATE_FILE"):
            self.config.setdefault("storage", {})["path"] = os.getenv("DASHBOARD_STATE_FILE")

        if os.getenv("LOG_LEVEL"):
            self.config.setdefault("logging", {})["level"] = os.getenv("LOG_LEVEL")

        if os.getenv("ENVIRONMENT"):
            self.config["environment"] = os.getenv("ENVIRONMENT")

    def _validate_config(self) -> None:
        """Validate that required configuration keys are present."""
        required_config = {
            "api": ["base_url", "timeout"],
            "refresh": ["debounce_seconds"],
        }

        missing_sections = [
            section for section in required_config if section not in self.config
        ]
        if missing_sections:
            raise ValueError(
                f"Missing required configuration sections: {', '.join(missing_sections)}"
            )

        missing_keys = []
        for section, keys in required_config.items():
            for key in keys:
                if key not in self.config[section]:
                    missing_keys.append(f"{section}.{key}")

        if missing_keys:
            raise ValueError(
                f"Missing required configuration keys: {', '.join(missing_keys)}"
            )

        if self.debounce_seconds < 0:
            raise ValueError("refresh.debounce_seconds must not be negative")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key (supports dot notation).

        Args:
            key: Configuration key (e.g., 'api.base_url')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    @property
    def api_base_url(self) -> str:
        """Get weather archive base URL."""
        return self.get("api.base_url", constants.DEFAULT_ARCHIVE_URL)

    @property
    def api_timeout(self) -> int:
        """Get API timeout in seconds."""
        return self.get("api.timeout", 30)

    @property
    def api_max_retries(self) -> int:
        """Get maximum API retry attempts."""
        return self.get("api.max_retries", 0)

    @property
    def api_verify_ssl(self) -> bool:
        """Get API SSL verification setting."""
        return self.get("api.verify_ssl", True)

    @property
    def debounce_seconds(self) -> float:
        """Get debounce delay for time slider changes."""
        return float(self.get("refresh.debounce_seconds", constants.DEBOUNCE_SECONDS))

    @property
    def discard_stale_responses(self) -> bool:
        """Check if responses superseded by a newer request are dropped."""
        return self.get("refresh.discard_stale_responses", True)

    @property
    def storage_path(self) -> str:
        """Get path of the JSON state file."""
        return self.get("storage.path", constants.DEFAULT_STORAGE_PATH)

    @property
    def storage_key(self) -> str:
        """Get key the dashboard snapshot is stored under."""
        return self.get("storage.key", constants.DEFAULT_STORAGE_KEY)

    @property
    def log_level(self) -> str:
        """Get logging level."""
        return self.get("logging.level", "INFO")

    @property
    def log_file(self) -> Optional[str]:
        """Get log file path."""
        return self.get("logging.file")

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(file={self.config_file}, env={self.get('environment')})"
