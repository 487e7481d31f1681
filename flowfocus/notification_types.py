"""
Notification data structures: semantic types, triggers, descriptors,
backend handles, delivery channels and inbound session events.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Any, Optional, Tuple, Union


class SemanticType(Enum):
    """Purpose tag carried in every notification's data["type"]."""
    SESSION_COMPLETE = "session_complete"
    BREAK_COMPLETE = "break_complete"
    DAILY_REMINDER = "daily_reminder"
    WEEKLY_REPORT = "weekly_report"
    GOAL_ACHIEVEMENT = "goal_achievement"
    STREAK_MILESTONE = "streak_milestone"
    BREAK_REMINDER = "break_reminder"

    @property
    def is_recurring(self) -> bool:
        return self in RECURRING_TYPES


RECURRING_TYPES = (SemanticType.DAILY_REMINDER, SemanticType.WEEKLY_REPORT)

DEFAULT_CHANNEL_ID = "default"
REMINDERS_CHANNEL_ID = "reminders"


class PermissionStatus(Enum):
    """Authorization state reported by a notification backend."""
    UNDETERMINED = "undetermined"
    GRANTED = "granted"
    DENIED = "denied"


class ChannelImportance(Enum):
    MAX = "max"
    HIGH = "high"
    DEFAULT = "default"
    LOW = "low"


# Triggers

@dataclass(frozen=True)
class ImmediateTrigger:
    """Deliver as soon as possible."""

    def next_fire_time(self, after: datetime) -> datetime:
        return after

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "immediate"}


@dataclass(frozen=True)
class DailyTrigger:
    """Repeat every day at hour:minute local time."""
    hour: int
    minute: int

    def __post_init__(self):
        if not (0 <= self.hour < 24 and 0 <= self.minute < 60):
            raise ValueError(f"Invalid daily trigger time {self.hour}:{self.minute}")

    def next_fire_time(self, after: datetime) -> datetime:
        """First occurrence strictly after `after`."""
        candidate = after.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= after:
            candidate += timedelta(days=1)
        return candidate

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "daily", "hour": self.hour, "minute": self.minute}


@dataclass(frozen=True)
class WeeklyTrigger:
    """
    Repeat every week on an ISO weekday (Monday=1 .. Sunday=7) at hour:minute.
    """
    weekday: int
    hour: int
    minute: int

    def __post_init__(self):
        if not 1 <= self.weekday <= 7:
            raise ValueError(f"Invalid ISO weekday {self.weekday}")
        if not (0 <= self.hour < 24 and 0 <= self.minute < 60):
            raise ValueError(f"Invalid weekly trigger time {self.hour}:{self.minute}")

    def next_fire_time(self, after: datetime) -> datetime:
        """First occurrence strictly after `after`."""
        days_ahead = (self.weekday - after.isoweekday()) % 7
        candidate = after.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        candidate += timedelta(days=days_ahead)
        if candidate <= after:
            candidate += timedelta(days=7)
        return candidate

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "weekly", "weekday": self.weekday, "hour": self.hour, "minute": self.minute}


Trigger = Union[ImmediateTrigger, DailyTrigger, WeeklyTrigger]


def trigger_from_dict(data: Dict[str, Any]) -> Trigger:
    """Rebuild a trigger serialized with to_dict()."""
    kind = data.get("kind")
    if kind == "immediate":
        return ImmediateTrigger()
    if kind == "daily":
        return DailyTrigger(hour=int(data["hour"]), minute=int(data["minute"]))
    if kind == "weekly":
        return WeeklyTrigger(
            weekday=int(data["weekday"]),
            hour=int(data["hour"]),
            minute=int(data["minute"])
        )
    raise ValueError(f"Unknown trigger kind: {kind!r}")


# Descriptors and handles

@dataclass
class NotificationDescriptor:
    """
    A notification the planner wants to exist.

    Only recurring semantic types may carry a daily/weekly trigger; everything
    else is immediate. data["type"] is always the semantic type value so the
    engine can find the notification again later.
    """
    semantic_type: SemanticType
    title: str
    body: str
    trigger: Trigger = field(default_factory=ImmediateTrigger)
    sound: bool = True
    vibrate: bool = True
    data: Dict[str, Any] = field(default_factory=dict)
    channel_id: str = DEFAULT_CHANNEL_ID

    def __post_init__(self):
        recurring_trigger = not isinstance(self.trigger, ImmediateTrigger)
        if recurring_trigger and not self.semantic_type.is_recurring:
            raise ValueError(
                f"{self.semantic_type.value} notifications must use an immediate trigger"
            )
        self.data = {**self.data, "type": self.semantic_type.value}

    @property
    def is_recurring(self) -> bool:
        return not isinstance(self.trigger, ImmediateTrigger)


@dataclass
class ScheduledHandle:
    """A notification currently held by the backend queue."""
    identifier: str
    data: Dict[str, Any]
    title: str = ""
    body: str = ""
    trigger: Trigger = field(default_factory=ImmediateTrigger)
    sound: bool = True
    vibrate: bool = True

    @property
    def type_tag(self) -> Optional[str]:
        return self.data.get("type")


@dataclass(frozen=True)
class ChannelConfig:
    """Delivery channel (priority class) definition."""
    name: str
    importance: ChannelImportance
    vibration_pattern: Tuple[int, ...]
    light_color: str
    sound: str = "default"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["importance"] = self.importance.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChannelConfig':
        return cls(
            name=data["name"],
            importance=ChannelImportance(data["importance"]),
            vibration_pattern=tuple(data.get("vibration_pattern") or ()),
            light_color=data.get("light_color", ""),
            sound=data.get("sound", "default")
        )


# Inbound events (one-shot path)

@dataclass
class SessionCompleteEvent:
    """A focus session or a break finished."""
    is_break: bool = False

    @property
    def semantic_type(self) -> SemanticType:
        return SemanticType.BREAK_COMPLETE if self.is_break else SemanticType.SESSION_COMPLETE


@dataclass
class GoalAchievedEvent:
    title: str

    semantic_type = SemanticType.GOAL_ACHIEVEMENT


@dataclass
class StreakMilestoneEvent:
    """Streak counter reached `count` consecutive days."""
    count: int

    semantic_type = SemanticType.STREAK_MILESTONE


@dataclass
class BreakReminderEvent:
    """The timer wants the user to take a break of `minutes`."""
    minutes: int

    semantic_type = SemanticType.BREAK_REMINDER


SessionEvent = Union[SessionCompleteEvent, GoalAchievedEvent, StreakMilestoneEvent, BreakReminderEvent]
