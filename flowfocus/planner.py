"""
Schedule planner: decides which notification, if any, an event or a
recurring type should produce under the current settings.

No I/O. Randomness and time come from injected sources so scenarios are
reproducible.
"""

import logging
import random
import time
from typing import Callable, Optional, Tuple

from .notification_settings import NotificationSettings, parse_reminder_time
from .notification_types import (
    SemanticType,
    NotificationDescriptor,
    DailyTrigger,
    WeeklyTrigger,
    SessionEvent,
    SessionCompleteEvent,
    GoalAchievedEvent,
    StreakMilestoneEvent,
    BreakReminderEvent,
    DEFAULT_CHANNEL_ID,
    REMINDERS_CHANNEL_ID,
)


logger = logging.getLogger(__name__)

FALLBACK_REMINDER_TIME = (9, 0)

# Weekly report: Monday 09:00, not user-configurable yet
WEEKLY_REPORT_WEEKDAY = 1
WEEKLY_REPORT_TIME = (9, 0)

MOTIVATIONAL_MESSAGES = (
    "🎉 Amazing work! You're building incredible focus habits!",
    "🔥 You're on fire! That focus session was fantastic!",
    "⭐ Excellent! You're becoming a productivity master!",
    "🚀 Outstanding focus! You're reaching new heights!",
    "💪 Incredible dedication! Your consistency is inspiring!",
)

CELEBRATION_MESSAGES = (
    "🏆 Goal achieved! \"{title}\" - You're unstoppable!",
    "🎉 Congratulations! You've completed \"{title}\"!",
    "⭐ Amazing! \"{title}\" is now complete!",
    "🚀 Goal unlocked! \"{title}\" - Keep soaring!",
)

MILESTONE_MESSAGES = {
    3: "🔥 3-day streak! You're building momentum!",
    7: "⭐ One week strong! Your consistency is paying off!",
    14: "🚀 Two weeks of focus! You're developing incredible habits!",
    30: "🏆 30-day streak! You're a focus champion!",
    50: "💎 50 days! Your dedication is truly inspiring!",
    100: "👑 100-day streak! You're a productivity legend!",
}

SESSION_COMPLETE_TITLE = "Focus Session Complete! 🎯"
SESSION_COMPLETE_PLAIN_BODY = "Time for a well-deserved break!"
BREAK_COMPLETE_TITLE = "Break Complete! 🌟"
BREAK_COMPLETE_BODY = "Ready to dive back into deep work?"


def reminder_time_or_default(text: str) -> Tuple[int, int]:
    """
    Hour and minute for the daily reminder.

    Malformed or out-of-range values fall back to 09:00 instead of raising.
    """
    try:
        return parse_reminder_time(text)
    except ValueError:
        logger.warning("Invalid reminder time %r, falling back to 09:00", text)
        return FALLBACK_REMINDER_TIME


class SchedulePlanner:
    """
    Maps (event, settings) and (recurring type, settings) to zero or one
    NotificationDescriptor.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize planner.

        Args:
            rng: Random source for message selection (seed it in tests)
            clock: Time source (unix seconds) for payload timestamps
        """
        self.rng = rng or random.Random()
        self.clock = clock

    def plan_one_shot(
        self,
        event: SessionEvent,
        settings: NotificationSettings
    ) -> Optional[NotificationDescriptor]:
        """
        Plan the notification for a runtime event.

        Returns:
            Descriptor with an immediate trigger, or None if suppressed
        """
        if isinstance(event, SessionCompleteEvent):
            return self._plan_session_complete(event, settings)
        if isinstance(event, GoalAchievedEvent):
            return self._plan_goal_achievement(event, settings)
        if isinstance(event, StreakMilestoneEvent):
            return self._plan_streak_milestone(event, settings)
        if isinstance(event, BreakReminderEvent):
            return self._plan_break_reminder(event, settings)
        raise TypeError(f"Unsupported event: {type(event).__name__}")

    def plan_recurring(
        self,
        semantic_type: SemanticType,
        settings: NotificationSettings
    ) -> Optional[NotificationDescriptor]:
        """
        Plan the single live notification for a recurring type.

        Returns:
            Descriptor with a daily/weekly trigger, or None if the type is off
        """
        if semantic_type == SemanticType.DAILY_REMINDER:
            if not settings.enabled or not settings.daily_reminders:
                return None
            hour, minute = reminder_time_or_default(settings.reminder_time)
            return NotificationDescriptor(
                semantic_type=semantic_type,
                title="Time to Focus! 🎯",
                body="Start your day with a productive focus session.",
                trigger=DailyTrigger(hour=hour, minute=minute),
                sound=settings.sound_enabled,
                vibrate=settings.vibration_enabled,
                channel_id=REMINDERS_CHANNEL_ID
            )

        if semantic_type == SemanticType.WEEKLY_REPORT:
            if not settings.enabled or not settings.weekly_reports:
                return None
            hour, minute = WEEKLY_REPORT_TIME
            return NotificationDescriptor(
                semantic_type=semantic_type,
                title="Weekly Focus Report 📊",
                body="Check out your productivity insights for this week!",
                trigger=WeeklyTrigger(weekday=WEEKLY_REPORT_WEEKDAY, hour=hour, minute=minute),
                sound=settings.sound_enabled,
                vibrate=settings.vibration_enabled,
                channel_id=REMINDERS_CHANNEL_ID
            )

        raise ValueError(f"{semantic_type.value} is not a recurring notification type")

    def _plan_session_complete(
        self,
        event: SessionCompleteEvent,
        settings: NotificationSettings
    ) -> Optional[NotificationDescriptor]:
        if not settings.enabled:
            return None
        if event.is_break and not settings.break_complete:
            return None
        if not event.is_break and not settings.session_complete:
            return None

        # Only the session-complete wording depends on motivational_messages
        if event.is_break:
            title, body = BREAK_COMPLETE_TITLE, BREAK_COMPLETE_BODY
            semantic_type = SemanticType.BREAK_COMPLETE
        else:
            title = SESSION_COMPLETE_TITLE
            if settings.motivational_messages:
                body = self.rng.choice(MOTIVATIONAL_MESSAGES)
            else:
                body = SESSION_COMPLETE_PLAIN_BODY
            semantic_type = SemanticType.SESSION_COMPLETE

        return self._one_shot(
            semantic_type, title, body, settings,
            timestamp=int(self.clock() * 1000)
        )

    def _plan_goal_achievement(
        self,
        event: GoalAchievedEvent,
        settings: NotificationSettings
    ) -> Optional[NotificationDescriptor]:
        if not settings.enabled:
            return None

        body = self.rng.choice(CELEBRATION_MESSAGES).format(title=event.title)
        return self._one_shot(
            SemanticType.GOAL_ACHIEVEMENT, "Goal Achieved! 🎯", body, settings,
            goal_title=event.title
        )

    def _plan_streak_milestone(
        self,
        event: StreakMilestoneEvent,
        settings: NotificationSettings
    ) -> Optional[NotificationDescriptor]:
        if not settings.enabled or not settings.motivational_messages:
            return None

        message = MILESTONE_MESSAGES.get(event.count)
        if message is None:
            return None

        return self._one_shot(
            SemanticType.STREAK_MILESTONE, "Streak Milestone! 🔥", message, settings,
            streak=event.count
        )

    def _plan_break_reminder(
        self,
        event: BreakReminderEvent,
        settings: NotificationSettings
    ) -> Optional[NotificationDescriptor]:
        if event.minutes <= 0:
            logger.warning("Ignoring break reminder with non-positive length %r", event.minutes)
            return None
        if not settings.enabled:
            return None

        return self._one_shot(
            SemanticType.BREAK_REMINDER,
            "Break Time! ☕",
            f"Take a {event.minutes}-minute break to recharge your mind.",
            settings,
            duration=event.minutes
        )

    def _one_shot(
        self,
        semantic_type: SemanticType,
        title: str,
        body: str,
        settings: NotificationSettings,
        **data
    ) -> NotificationDescriptor:
        return NotificationDescriptor(
            semantic_type=semantic_type,
            title=title,
            body=body,
            sound=settings.sound_enabled,
            vibrate=settings.vibration_enabled,
            data=data,
            channel_id=DEFAULT_CHANNEL_ID
        )
