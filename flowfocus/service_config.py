"""
Runtime configuration for the notification service.

Storage locations, delivery loop cadence and Do Not Disturb handling.
Values come from dataclass defaults, optionally overridden by environment.
"""

import os
from dataclasses import dataclass
from pathlib import Path


STORAGE_ROOT_ENV = "FLOWFOCUS_STORAGE_ROOT"
DRY_RUN_ENV = "FLOWFOCUS_DRY_RUN"
DELIVERY_INTERVAL_ENV = "FLOWFOCUS_DELIVERY_INTERVAL_SEC"


def _env_flag(value: str) -> bool:
    return value.strip().lower() not in {"", "0", "false", "no", "off"}


@dataclass
class ServiceConfig:
    """
    Configuration for the notification service and its backends.

    All durations in seconds.
    """
    # Storage
    storage_dir: str = "storage"
    settings_filename: str = "notification_settings.json"
    queue_filename: str = "notification_queue.json"
    events_filename: str = "notification_events.jsonl"

    # Identity shown in Notification Center
    app_name: str = "Flow Focus"

    # Delivery loop (macOS backend)
    delivery_interval_sec: float = 30.0
    one_shot_expiry_sec: float = 2700.0  # 45 min - drop one-shots held back by DND
    respect_dnd: bool = True

    # Use the in-memory backend and never post anything
    dry_run: bool = False

    @classmethod
    def from_env(cls) -> 'ServiceConfig':
        """
        Build a config from defaults plus environment overrides.

        FLOWFOCUS_STORAGE_ROOT relocates every storage file (the app bundle
        points it at ~/Library/Application Support/FlowFocus).
        """
        config = cls()

        storage_root = os.environ.get(STORAGE_ROOT_ENV)
        if storage_root:
            config.storage_dir = str(Path(storage_root).expanduser() / "storage")

        dry_run = os.environ.get(DRY_RUN_ENV)
        if dry_run is not None:
            config.dry_run = _env_flag(dry_run)

        interval = os.environ.get(DELIVERY_INTERVAL_ENV)
        if interval:
            try:
                config.delivery_interval_sec = max(1.0, float(interval))
            except ValueError:
                raise ValueError(f"{DELIVERY_INTERVAL_ENV} must be a number, got {interval!r}")

        return config

    @property
    def settings_path(self) -> Path:
        return Path(self.storage_dir) / self.settings_filename

    @property
    def queue_path(self) -> Path:
        return Path(self.storage_dir) / self.queue_filename

    @property
    def events_path(self) -> Path:
        return Path(self.storage_dir) / self.events_filename
