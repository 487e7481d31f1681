import random

import pytest

from flowfocus import (
    BreakReminderEvent,
    DailyTrigger,
    GoalAchievedEvent,
    ImmediateTrigger,
    NotificationSettings,
    SchedulePlanner,
    SemanticType,
    SessionCompleteEvent,
    StreakMilestoneEvent,
    WeeklyTrigger,
    reminder_time_or_default,
)
from flowfocus.notification_types import DEFAULT_CHANNEL_ID, REMINDERS_CHANNEL_ID
from flowfocus.planner import (
    BREAK_COMPLETE_BODY,
    CELEBRATION_MESSAGES,
    MILESTONE_MESSAGES,
    MOTIVATIONAL_MESSAGES,
    SESSION_COMPLETE_PLAIN_BODY,
)


def settings(**overrides):
    return NotificationSettings(**overrides)


def plan(semantic_type, planner, s):
    """Plan whatever produces `semantic_type` under settings `s`."""
    if semantic_type.is_recurring:
        return planner.plan_recurring(semantic_type, s)
    events = {
        SemanticType.SESSION_COMPLETE: SessionCompleteEvent(is_break=False),
        SemanticType.BREAK_COMPLETE: SessionCompleteEvent(is_break=True),
        SemanticType.GOAL_ACHIEVEMENT: GoalAchievedEvent(title="Ship it"),
        SemanticType.STREAK_MILESTONE: StreakMilestoneEvent(count=7),
        SemanticType.BREAK_REMINDER: BreakReminderEvent(minutes=5),
    }
    return planner.plan_one_shot(events[semantic_type], s)


# Type-specific flag per semantic type (None: only the master switch applies)
TYPE_FLAGS = {
    SemanticType.SESSION_COMPLETE: "session_complete",
    SemanticType.BREAK_COMPLETE: "break_complete",
    SemanticType.DAILY_REMINDER: "daily_reminders",
    SemanticType.WEEKLY_REPORT: "weekly_reports",
    SemanticType.GOAL_ACHIEVEMENT: None,
    SemanticType.STREAK_MILESTONE: "motivational_messages",
    SemanticType.BREAK_REMINDER: None,
}


@pytest.mark.parametrize("semantic_type", list(SemanticType))
@pytest.mark.parametrize("enabled", [True, False])
@pytest.mark.parametrize("type_flag", [True, False])
def test_gating_table(semantic_type, enabled, type_flag):
    flag = TYPE_FLAGS[semantic_type]
    overrides = {"enabled": enabled}
    if flag:
        overrides[flag] = type_flag

    descriptor = plan(semantic_type, SchedulePlanner(rng=random.Random(1)), settings(**overrides))

    should_fire = enabled and (type_flag or flag is None)
    if should_fire:
        assert descriptor is not None
        assert descriptor.semantic_type == semantic_type
        assert descriptor.data["type"] == semantic_type.value
    else:
        assert descriptor is None


def test_only_recurring_types_get_recurring_triggers():
    planner = SchedulePlanner(rng=random.Random(1))
    for semantic_type in SemanticType:
        descriptor = plan(semantic_type, planner, settings())
        if semantic_type.is_recurring:
            assert not isinstance(descriptor.trigger, ImmediateTrigger)
            assert descriptor.channel_id == REMINDERS_CHANNEL_ID
        else:
            assert isinstance(descriptor.trigger, ImmediateTrigger)
            assert descriptor.channel_id == DEFAULT_CHANNEL_ID


def test_daily_reminder_uses_reminder_time():
    descriptor = SchedulePlanner().plan_recurring(SemanticType.DAILY_REMINDER, settings(reminder_time="09:00"))

    assert descriptor.trigger == DailyTrigger(hour=9, minute=0)


def test_invalid_reminder_time_falls_back_to_nine():
    descriptor = SchedulePlanner().plan_recurring(SemanticType.DAILY_REMINDER, settings(reminder_time="25:61"))

    assert descriptor.trigger == DailyTrigger(hour=9, minute=0)
    assert reminder_time_or_default("garbage") == (9, 0)
    assert reminder_time_or_default("18:30") == (18, 30)


def test_weekly_report_is_monday_nine():
    descriptor = SchedulePlanner().plan_recurring(SemanticType.WEEKLY_REPORT, settings(reminder_time="18:30"))

    assert descriptor.trigger == WeeklyTrigger(weekday=1, hour=9, minute=0)


def test_plan_recurring_rejects_one_shot_types():
    with pytest.raises(ValueError):
        SchedulePlanner().plan_recurring(SemanticType.GOAL_ACHIEVEMENT, settings())


@pytest.mark.parametrize("count", [0, 1, 2, 4, 5, 6, 8, 13, 15, 29, 31, 49, 99, 101, 365])
def test_non_milestone_counts_are_silent(count):
    assert SchedulePlanner().plan_one_shot(StreakMilestoneEvent(count=count), settings()) is None


def test_each_milestone_has_its_own_text():
    planner = SchedulePlanner()
    bodies = {}
    for count in (3, 7, 14, 30, 50, 100):
        descriptor = planner.plan_one_shot(StreakMilestoneEvent(count=count), settings())
        assert descriptor.body
        assert descriptor.data["streak"] == count
        bodies[count] = descriptor.body

    assert len(set(bodies.values())) == 6
    assert bodies == MILESTONE_MESSAGES


def test_session_complete_body_is_seeded_motivational_pick():
    expected = random.Random(42).choice(MOTIVATIONAL_MESSAGES)
    planner = SchedulePlanner(rng=random.Random(42), clock=lambda: 1_700_000_000.5)

    descriptor = planner.plan_one_shot(SessionCompleteEvent(is_break=False), settings())

    assert descriptor.body == expected
    assert descriptor.data == {"type": "session_complete", "timestamp": 1_700_000_000_500}


def test_session_complete_without_motivational_messages_uses_plain_body():
    descriptor = SchedulePlanner().plan_one_shot(
        SessionCompleteEvent(is_break=False), settings(motivational_messages=False)
    )

    assert descriptor.body == SESSION_COMPLETE_PLAIN_BODY


def test_motivational_flag_does_not_gate_break_or_goal():
    s = settings(motivational_messages=False)
    planner = SchedulePlanner(rng=random.Random(3))

    break_done = planner.plan_one_shot(SessionCompleteEvent(is_break=True), s)
    goal = planner.plan_one_shot(GoalAchievedEvent(title="Deep work week"), s)

    assert break_done.body == BREAK_COMPLETE_BODY
    assert goal is not None
    assert goal.body in [m.format(title="Deep work week") for m in CELEBRATION_MESSAGES]
    assert goal.data["goal_title"] == "Deep work week"


def test_break_flags_follow_is_break():
    planner = SchedulePlanner()

    only_breaks = settings(session_complete=False)
    assert planner.plan_one_shot(SessionCompleteEvent(is_break=False), only_breaks) is None
    assert planner.plan_one_shot(SessionCompleteEvent(is_break=True), only_breaks) is not None

    only_sessions = settings(break_complete=False)
    assert planner.plan_one_shot(SessionCompleteEvent(is_break=True), only_sessions) is None
    assert planner.plan_one_shot(SessionCompleteEvent(is_break=False), only_sessions) is not None


def test_break_reminder_payload():
    descriptor = SchedulePlanner().plan_one_shot(BreakReminderEvent(minutes=5), settings())

    assert descriptor.body == "Take a 5-minute break to recharge your mind."
    assert descriptor.data == {"type": "break_reminder", "duration": 5}

    assert SchedulePlanner().plan_one_shot(BreakReminderEvent(minutes=0), settings()) is None


def test_sound_and_vibration_follow_settings():
    descriptor = SchedulePlanner().plan_recurring(
        SemanticType.DAILY_REMINDER, settings(sound_enabled=False, vibration_enabled=False)
    )

    assert descriptor.sound is False
    assert descriptor.vibrate is False
