"""
Local key-value storage for dashboard state.

Stores named JSON snapshots in a single file, one key per snapshot.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional


class StateStorage:
    """JSON file acting as a key-value store."""

    def __init__(self, path: str, logger: Optional[logging.Logger] = None):
        """
        Initialize state storage.

        Args:
            path: Path of the JSON file; created on first save
            logger: Logger instance
        """
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring state file {self.path}: top level is not an object")
            return {}
        return data

    def _write_all(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.path)

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Load a snapshot.

        Returns:
            Stored payload, or None if the key is missing or the file unreadable
        """
        payload = self._read_all().get(key)
        if payload is None:
            self.logger.debug(f"No stored state under '{key}'")
        return payload

    def save(self, key: str, payload: Dict[str, Any]) -> None:
        """Store a snapshot under a key, replacing any previous one."""
        data = self._read_all()
        data[key] = payload
        self._write_all(data)
        self.logger.debug(f"Saved state '{key}' to {self.path}")

    def remove(self, key: str) -> bool:
        """
        Delete a snapshot.

        Returns:
            True if the key existed
        """
        data = self._read_all()
        if key not in data:
            return False
        del data[key]
        self._write_all(data)
        return True
