"""
Local storage for notification preferences.

One JSON file holding the settings object under a fixed key.
Reads never fail: anything unreadable degrades to defaults.
"""

import json
import logging
import os
import threading
from dataclasses import replace
from pathlib import Path
from typing import Optional, Dict, Any

from .notification_settings import NotificationSettings


logger = logging.getLogger(__name__)

SETTINGS_FILE_VERSION = "1.0"
NOTIFICATION_SETTINGS_KEY = "notification_settings"


class SettingsStorage:
    """
    Preference store for NotificationSettings.

    Storage location: ./storage/notification_settings.json
    Keeps an in-memory copy so reads right after a save are consistent.
    """

    def __init__(self, settings_path: Optional[str] = None):
        """
        Initialize settings storage.

        Args:
            settings_path: Path to the settings file
                (default: storage/notification_settings.json)
        """
        if settings_path is None:
            settings_path = "storage/notification_settings.json"

        self.settings_path = Path(settings_path)
        # Read from disk on first use
        self._settings: Optional[NotificationSettings] = None
        self._lock = threading.Lock()

    @property
    def current(self) -> NotificationSettings:
        """Snapshot of the in-memory settings."""
        with self._lock:
            return replace(self._loaded())

    def load(self) -> NotificationSettings:
        """
        Load settings from disk, merged over defaults.

        Returns:
            A complete NotificationSettings (defaults if nothing usable is stored)
        """
        settings = NotificationSettings.from_dict(self._read_stored())
        with self._lock:
            self._settings = settings
            return replace(settings)

    def save(self, partial: Dict[str, Any]) -> bool:
        """
        Merge a partial update and persist the full record.

        Args:
            partial: Field name -> new value

        Returns:
            True if written; False if the write failed (in-memory state unchanged)

        Raises:
            ValueError: on an unknown key or an ill-typed value
        """
        with self._lock:
            updated = self._loaded().merged(partial)
            if not self._write(updated):
                return False
            self._settings = updated
            return True

    def reset(self) -> bool:
        """Overwrite stored settings with defaults."""
        with self._lock:
            defaults = NotificationSettings()
            if not self._write(defaults):
                return False
            self._settings = defaults
            return True

    def purge(self) -> bool:
        """Delete the settings file."""
        try:
            if self.settings_path.exists():
                self.settings_path.unlink()
            return True
        except OSError as e:
            logger.error("Failed to delete notification settings: %s", e)
            return False

    def _loaded(self) -> NotificationSettings:
        """In-memory settings, read from disk the first time. Caller holds the lock."""
        if self._settings is None:
            self._settings = NotificationSettings.from_dict(self._read_stored())
        return self._settings

    def _read_stored(self) -> Dict[str, Any]:
        if not self.settings_path.exists():
            return {}

        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.error("Failed to load notification settings, using defaults: %s", e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Notification settings file has unexpected shape, using defaults")
            return {}

        # Version check (future-proofing)
        if data.get("version") != SETTINGS_FILE_VERSION:
            logger.warning("Unknown notification settings file version: %s", data.get("version"))

        stored = data.get(NOTIFICATION_SETTINGS_KEY)
        if not isinstance(stored, dict):
            return {}
        return stored

    def _write(self, settings: NotificationSettings) -> bool:
        """Atomic write: temp file + os.replace()."""
        data = {
            "version": SETTINGS_FILE_VERSION,
            NOTIFICATION_SETTINGS_KEY: settings.to_dict()
        }

        temp_file = self.settings_path.with_suffix(".tmp")
        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(temp_file, self.settings_path)
            return True
        except (OSError, TypeError) as e:
            logger.error("Failed to save notification settings: %s", e)
            try:
                if temp_file.exists():
                    temp_file.unlink()
            except OSError:
                pass
            return False
