"""Local key-value persistence for provider config, snapshots and settings."""

import json
import logging
import os
import tempfile
from threading import Lock
from typing import Dict, Optional

from .models import PollingSnapshot, ProviderConfig, Settings


DEFAULT_STATE_FILE = '.pr_pulse_state.json'

KEY_PROVIDER = 'provider'
KEY_PULL_REQUESTS = 'pull_requests'
KEY_SETTINGS = 'settings'


class Storage:
    """Stores state as one JSON document.

    Every write replaces the whole document (temp file + rename), and
    readers get freshly built immutable objects, so a reader sees either the
    old or the new snapshot, never a mix.
    """

    def __init__(self, state_file: Optional[str] = DEFAULT_STATE_FILE):
        """Initialize the store.

        Args:
            state_file: Path of the JSON file, or None to keep state in memory only
        """
        self.state_file = state_file
        self._lock = Lock()
        self._data: Dict = self._load()

    def _load(self) -> Dict:
        """Load state from file."""
        if not self.state_file or not os.path.exists(self.state_file):
            return {}

        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
                logging.info(f"Loaded state from {self.state_file}")
                return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, IOError) as e:
            logging.warning(f"Could not load state from {self.state_file}: {e}")
            return {}

    def _write(self, key: str, value) -> None:
        with self._lock:
            self._write_locked(key, value)

    def _write_locked(self, key: str, value) -> None:
        data = dict(self._data)
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
        self._flush(data)
        self._data = data

    def _flush(self, data: Dict) -> None:
        if not self.state_file:
            return

        directory = os.path.dirname(os.path.abspath(self.state_file))
        fd, tmp_path = tempfile.mkstemp(prefix='.pr_pulse_', suffix='.tmp', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.state_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logging.debug(f"Saved state to {self.state_file}")

    def _read(self, key: str):
        with self._lock:
            return self._data.get(key)

    # Provider configuration

    def get_provider_config(self) -> Optional[ProviderConfig]:
        data = self._read(KEY_PROVIDER)
        return ProviderConfig.from_dict(data) if data else None

    def set_provider_config(self, config: ProviderConfig) -> None:
        self._write(KEY_PROVIDER, config.to_dict())

    def clear_provider_config(self) -> None:
        self._write(KEY_PROVIDER, None)

    def is_authenticated(self) -> bool:
        """True when a token and the identity it belongs to are stored."""
        config = self.get_provider_config()
        return bool(config and config.token and config.user)

    # Pull request snapshot

    def get_snapshot(self) -> PollingSnapshot:
        return PollingSnapshot.from_dict(self._read(KEY_PULL_REQUESTS))

    def set_snapshot(self, snapshot: PollingSnapshot) -> None:
        self._write(KEY_PULL_REQUESTS, snapshot.to_dict())

    # Settings

    def get_settings(self) -> Settings:
        return Settings.from_dict(self._read(KEY_SETTINGS))

    def set_settings(self, **changes) -> Settings:
        """Merge changes into the stored settings and return the result."""
        with self._lock:
            settings = Settings.from_dict(self._data.get(KEY_SETTINGS)).updated(**changes)
            self._write_locked(KEY_SETTINGS, settings.to_dict())
        return settings

    def clear_all(self) -> None:
        with self._lock:
            self._flush({})
            self._data = {}
