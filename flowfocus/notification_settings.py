"""
User notification preferences.
"""

import re
from dataclasses import dataclass, asdict, fields
from typing import Dict, Any, Tuple


DEFAULT_REMINDER_TIME = "09:00"

_REMINDER_TIME_RE = re.compile(r"^([0-9]{1,2}):([0-9]{2})$")


@dataclass
class NotificationSettings:
    """
    Notification preferences, one record per install.

    `enabled` is the master switch: when False nothing is scheduled,
    whatever the per-type flags say.
    """
    enabled: bool = True

    # Per-type switches
    session_complete: bool = True
    break_complete: bool = True
    daily_reminders: bool = True
    weekly_reports: bool = True
    motivational_messages: bool = True

    # Delivery
    sound_enabled: bool = True
    vibration_enabled: bool = True

    # Daily reminder wall-clock time, "HH:MM"
    reminder_time: str = DEFAULT_REMINDER_TIME

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotificationSettings':
        """
        Create from a persisted dictionary.

        Merges field by field over the defaults: missing, unknown or
        ill-typed entries are ignored so an older or damaged file still
        yields a complete record.
        """
        settings = cls()
        if not isinstance(data, dict):
            return settings

        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if _valid_value(f.name, value):
                setattr(settings, f.name, value)
        settings.reminder_time = normalize_reminder_time(settings.reminder_time)
        return settings

    def merged(self, partial: Dict[str, Any]) -> 'NotificationSettings':
        """Return a copy with `partial` applied. Raises ValueError on bad input."""
        validate_partial(partial)
        updated = NotificationSettings(**{**self.to_dict(), **partial})
        updated.reminder_time = normalize_reminder_time(updated.reminder_time)
        return updated


SETTING_KEYS = tuple(f.name for f in fields(NotificationSettings))


def parse_reminder_time(text: str) -> Tuple[int, int]:
    """
    Parse "HH:MM" strictly.

    Raises:
        ValueError: if the string is malformed or out of range
    """
    match = _REMINDER_TIME_RE.match(text.strip()) if isinstance(text, str) else None
    if not match:
        raise ValueError(f"Reminder time must look like HH:MM, got {text!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Reminder time out of range: {text!r}")
    return hour, minute


def normalize_reminder_time(text: str) -> str:
    """Canonical zero-padded "HH:MM" form of a valid reminder time."""
    hour, minute = parse_reminder_time(text)
    return f"{hour:02d}:{minute:02d}"


def is_valid_reminder_time(text: Any) -> bool:
    try:
        parse_reminder_time(text)
    except ValueError:
        return False
    return True


def _valid_value(key: str, value: Any) -> bool:
    if key == "reminder_time":
        return is_valid_reminder_time(value)
    return isinstance(value, bool)


def validate_partial(partial: Dict[str, Any]):
    """
    Check a partial settings update before it is merged.

    Raises:
        ValueError: on an unknown key or a value of the wrong type
    """
    for key, value in partial.items():
        if key not in SETTING_KEYS:
            raise ValueError(f"Unknown notification setting: {key!r}")
        if not _valid_value(key, value):
            raise ValueError(f"Invalid value for {key}: {value!r}")
