"""
Flow Focus notification core.
Local reminder/celebration scheduling and reconciliation for the focus timer.
"""

from .service_config import ServiceConfig
from .notification_settings import NotificationSettings, parse_reminder_time
from .notification_types import (
    SemanticType,
    RECURRING_TYPES,
    PermissionStatus,
    ChannelImportance,
    ChannelConfig,
    ImmediateTrigger,
    DailyTrigger,
    WeeklyTrigger,
    NotificationDescriptor,
    ScheduledHandle,
    SessionCompleteEvent,
    GoalAchievedEvent,
    StreakMilestoneEvent,
    BreakReminderEvent,
)
from .storage import SettingsStorage
from .event_logger import EventLogger
from .notifications import (
    NotificationBackend,
    NotificationBackendError,
    InMemoryNotificationBackend,
    MacNotificationBackend,
)
from .permissions import PermissionGate, NOTIFICATION_CHANNELS
from .planner import SchedulePlanner, reminder_time_or_default
from .scheduler import SchedulingEngine
from .reconciler import Reconciler, ReconcilerState
from .notification_service import NotificationService, create_backend
from .platform import is_macos, supports_local_notifications

__all__ = [
    "ServiceConfig",
    "NotificationSettings",
    "parse_reminder_time",
    "SemanticType",
    "RECURRING_TYPES",
    "PermissionStatus",
    "ChannelImportance",
    "ChannelConfig",
    "ImmediateTrigger",
    "DailyTrigger",
    "WeeklyTrigger",
    "NotificationDescriptor",
    "ScheduledHandle",
    "SessionCompleteEvent",
    "GoalAchievedEvent",
    "StreakMilestoneEvent",
    "BreakReminderEvent",
    "SettingsStorage",
    "EventLogger",
    "NotificationBackend",
    "NotificationBackendError",
    "InMemoryNotificationBackend",
    "MacNotificationBackend",
    "PermissionGate",
    "NOTIFICATION_CHANNELS",
    "SchedulePlanner",
    "reminder_time_or_default",
    "SchedulingEngine",
    "Reconciler",
    "ReconcilerState",
    "NotificationService",
    "create_backend",
    "is_macos",
    "supports_local_notifications",
]
