"""
Notification service: the entry point used by the timer, the session
manager and the settings screen.

Construct one instance at app start, call `initialize()`, pass it to the
collaborators that need it and call `shutdown()` on exit.
"""

import logging
import random
import time
from typing import Any, Callable, List, Optional

from .event_logger import EventLogger
from .notification_settings import NotificationSettings
from .notification_types import (
    NotificationDescriptor,
    ScheduledHandle,
    PermissionStatus,
    SessionEvent,
    SessionCompleteEvent,
    GoalAchievedEvent,
    StreakMilestoneEvent,
    BreakReminderEvent,
)
from .notifications import (
    NotificationBackend,
    InMemoryNotificationBackend,
    MacNotificationBackend,
    NotificationBackendError,
)
from .permissions import PermissionGate
from .planner import SchedulePlanner
from .platform import supports_local_notifications
from .reconciler import Reconciler
from .scheduler import SchedulingEngine
from .service_config import ServiceConfig
from .storage import SettingsStorage


logger = logging.getLogger(__name__)


def create_backend(config: ServiceConfig) -> NotificationBackend:
    """Pick the backend for this host and configuration."""
    if config.dry_run:
        return InMemoryNotificationBackend(
            permission_status=PermissionStatus.GRANTED,
            dry_run=True
        )
    return MacNotificationBackend(
        queue_path=str(config.queue_path),
        app_name=config.app_name,
        delivery_interval_sec=config.delivery_interval_sec,
        one_shot_expiry_sec=config.one_shot_expiry_sec,
        respect_dnd=config.respect_dnd
    )


class NotificationService:
    """
    Wires the preference store, permission gate, planner, engine and
    reconciler around one notification backend.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        backend: Optional[NotificationBackend] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize notification service.

        Args:
            config: Service configuration (default: ServiceConfig.from_env())
            backend: Notification backend (default: chosen from config)
            rng: Random source for message selection
            clock: Time source (unix seconds)
        """
        self.config = config or ServiceConfig.from_env()
        self.backend = backend or create_backend(self.config)

        self.storage = SettingsStorage(str(self.config.settings_path))
        self.event_logger = EventLogger(str(self.config.events_path))
        self.permission_gate = PermissionGate(self.backend)
        self.planner = SchedulePlanner(rng=rng, clock=clock)
        self.engine = SchedulingEngine(self.backend, self.permission_gate, self.event_logger)
        self.reconciler = Reconciler(self.permission_gate, self.storage, self.planner, self.engine)

        self._started = False

    # Lifecycle

    def initialize(self) -> bool:
        """
        Resolve permission, load settings, reconcile recurring notifications
        and start background delivery.

        Returns:
            True if notifications are permitted
        """
        granted = self.reconciler.initialize()
        if granted and not self._started:
            try:
                self.backend.start()
                self._started = True
            except NotificationBackendError as e:
                logger.error("Could not start notification delivery: %s", e)
        logger.info("Notification service ready (permission %s)", "granted" if granted else "not granted")
        return granted

    def shutdown(self):
        """Stop background delivery."""
        if self._started:
            self.backend.stop()
            self._started = False

    def is_supported(self) -> bool:
        return self.config.dry_run or supports_local_notifications()

    # Inbound events

    def on_session_complete(self, is_break: bool = False) -> bool:
        return self._schedule_event(SessionCompleteEvent(is_break=is_break))

    def on_goal_achieved(self, title: str) -> bool:
        return self._schedule_event(GoalAchievedEvent(title=title))

    def on_streak_milestone(self, count: int) -> bool:
        return self._schedule_event(StreakMilestoneEvent(count=count))

    def on_break_reminder(self, minutes: int) -> bool:
        return self._schedule_event(BreakReminderEvent(minutes=minutes))

    # Settings

    def get_settings(self) -> NotificationSettings:
        """Read-only snapshot of the current settings."""
        return self.storage.current

    def update_setting(self, key: str, value: Any) -> bool:
        """
        Change one preference and reconcile what depends on it.

        Returns:
            True if the change was persisted

        Raises:
            ValueError: on an unknown key or an ill-typed value
        """
        return self.reconciler.on_setting_change({key: value})

    def toggle_notification_type(self, key: str, enabled: bool) -> bool:
        return self.update_setting(key, bool(enabled))

    def update_reminder_time(self, reminder_time: str) -> bool:
        """
        Move the daily reminder.

        Raises:
            ValueError: if reminder_time is not a valid "HH:MM"
        """
        return self.update_setting("reminder_time", reminder_time)

    def reset_settings(self) -> bool:
        """Restore defaults and rebuild every pending notification."""
        return self.reconciler.reset()

    def get_pending_notifications(self) -> List[ScheduledHandle]:
        try:
            return self.backend.list_pending()
        except NotificationBackendError as e:
            logger.error("Could not list pending notifications: %s", e)
            return []

    def _schedule_event(self, event: SessionEvent) -> bool:
        descriptor: Optional[NotificationDescriptor] = self.planner.plan_one_shot(
            event, self.storage.current
        )
        if descriptor is None:
            self.event_logger.log_suppressed(event.semantic_type.value, "disabled_by_settings")
            return False
        return self.engine.schedule_one_shot(descriptor)
