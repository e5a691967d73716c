"""
Configuration

YAML-backed configuration addressed with dotted keys, e.g.
``config.get("reminders.notification_repeats", 3)``.

The file can be edited while the process runs (the web editor writes it in
place). Call ``reload_if_changed()`` at the start of each tick to pick up
the new values; a file that fails to parse mid-run is logged and the
previous values stay active.
"""

import copy
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from taskvoice.errors import ConfigError
from taskvoice.logger import configure_logging, get_logger


DEFAULT_NOTIFICATION_REPEATS = 3

DEFAULTS: Dict[str, Any] = {
    "events": {
        "path": "data/events",
    },
    "reminders": {
        "enabled": True,
        "interval_seconds": 30,
        "notification_repeats": DEFAULT_NOTIFICATION_REPEATS,
    },
    "sync": {
        "interval_seconds": 15,
    },
    "calendar": {
        "file": None,
    },
    "messages": {
        "announce_start": "",
        "check_start": "",
        "remind": "",
        "announce_end": "",
    },
    "tts": {
        "command": [],
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "console": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Dotted-key view over a YAML configuration file."""

    def __init__(self, path=None, data: Optional[Dict[str, Any]] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._mtime: Optional[float] = None
        self._data = _merge(DEFAULTS, data or {})

        if self.path is not None:
            self._data = _merge(DEFAULTS, self._read())
            self._mtime = self._current_mtime()

        self.logger = get_logger(__name__, self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Build an in-memory config (no backing file)."""
        return cls(data=data)

    def _current_mtime(self) -> Optional[float]:
        try:
            return os.path.getmtime(self.path)
        except OSError:
            return None

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path) as f:
                loaded = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"cannot read config file {self.path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in config file {self.path}: {e}") from e

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"config file {self.path} must contain a mapping")
        return loaded

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key. Returns default if any segment is missing."""
        with self._lock:
            node: Any = self._data
            for part in key.split("."):
                if not isinstance(node, dict) or part not in node:
                    return default
                node = node[part]
            return default if node is None else node

    def reload_if_changed(self) -> bool:
        """Re-read the backing file if it changed on disk.

        Returns True when new values were loaded.
        """
        if self.path is None:
            return False

        mtime = self._current_mtime()
        if mtime is None or mtime == self._mtime:
            return False

        try:
            data = _merge(DEFAULTS, self._read())
        except ConfigError as e:
            self.logger.error(f"Config reload failed, keeping previous values: {e}")
            # Remember the broken version so we don't log on every tick
            self._mtime = mtime
            return False

        with self._lock:
            self._data = data
            self._mtime = mtime
        configure_logging(self)
        self.logger.info(f"Configuration reloaded from {self.path}")
        return True
