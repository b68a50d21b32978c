"""
This module provides the key/value preference store for the FishingHit application.

Preferences hold small values that outlive a single run: the stored login,
the server-assigned client id, the one-time push id, the favorite fish list and
a few flags. They are kept in their own encrypted JSON file, separate from the
catch and spot records, and every change is written before the call returns.
The store is shared by every browser session, so each change holds the store's
lock from copying the values to replacing them.
"""
# fishinghit/preferences.py

from __future__ import annotations

import json
import os
import threading
from typing import Any, Callable, Optional

from cryptography.fernet import Fernet, InvalidToken

from fishinghit.errors import PersistenceError
from fishinghit.logging_config import get_logger

logger = get_logger(__name__)

# Preference keys
STORED_EMAIL = "stored_email"
STORED_PASSWORD = "stored_password"
CLIENT_ID = "client_id"
PUSH_ID = "push_id"
FAVORITE_FISH = "favorite_fish"
HAS_SEEN_ONBOARDING = "has_seen_onboarding"
AUTO_LOGIN_DISABLED = "auto_login_disabled"
ONBOARDING_REMINDER_AT = "onboarding_reminder_at"


class PreferenceStore:
    """Persists simple key/value pairs to an encrypted file."""

    def __init__(self, path: str, encryptor: Fernet) -> None:
        self._path = path
        self._encryptor = encryptor
        self._lock = threading.RLock()
        self._values = self._load()

    def _load(self) -> dict:
        try:
            with open(self._path, 'r') as f:
                encrypted_data = f.read()
            if not encrypted_data:
                return {}
            data = json.loads(self._encryptor.decrypt(encrypted_data.encode()).decode())
            if not isinstance(data, dict):
                raise ValueError("preferences file does not hold an object")
            return data
        except FileNotFoundError:
            return {}
        except (InvalidToken, ValueError) as e:
            logger.warning("Could not load preferences (%s). Starting with defaults.", e)
            return {}

    def _write(self, values: dict) -> None:
        try:
            directory = os.path.dirname(self._path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            encrypted_data = self._encryptor.encrypt(json.dumps(values).encode())
            with open(self._path, 'w') as f:
                f.write(encrypted_data.decode())
        except (OSError, TypeError) as e:
            logger.error("Failed to write preferences to %s: %s", self._path, e)
            raise PersistenceError() from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_string(self, key: str) -> Optional[str]:
        value = self._values.get(key)
        return value if isinstance(value, str) and value else None

    def get_bool(self, key: str) -> bool:
        return bool(self._values.get(key, False))

    def _replace(self, updated: dict) -> None:
        self._write(updated)
        self._values = updated

    def set(self, key: str, value: Any) -> None:
        """Stores `value` under `key`; the file is updated before returning."""
        with self._lock:
            updated = dict(self._values)
            updated[key] = value
            self._replace(updated)

    def update(self, values: dict) -> None:
        """Stores several values with a single write."""
        with self._lock:
            updated = dict(self._values)
            updated.update(values)
            self._replace(updated)

    def modify(self, key: str, change: Callable[[Any], Any], default: Any = None) -> Any:
        """Replaces the value under `key` with `change(current)` in one locked step.

        Args:
            key (str): The preference to change.
            change (callable): Receives the current value (or `default`) and returns the new one.
            default: Passed to `change` when the key is missing.

        Returns:
            The stored value.
        """
        with self._lock:
            value = change(self._values.get(key, default))
            updated = dict(self._values)
            updated[key] = value
            self._replace(updated)
            return value

    def remove(self, *keys: str) -> None:
        """Removes the given keys; missing keys are ignored."""
        with self._lock:
            if not any(key in self._values for key in keys):
                return
            updated = {k: v for k, v in self._values.items() if k not in keys}
            self._replace(updated)

    def __contains__(self, key: str) -> bool:
        return key in self._values
