import pytest

from conftest import FlakyBackend, pending_types
from flowfocus import (
    DailyTrigger,
    EventLogger,
    NotificationDescriptor,
    PermissionGate,
    PermissionStatus,
    SchedulingEngine,
    SemanticType,
    WeeklyTrigger,
)


def daily(hour=9, minute=0):
    return NotificationDescriptor(
        semantic_type=SemanticType.DAILY_REMINDER,
        title="Time to Focus!",
        body="Start your day with a productive focus session.",
        trigger=DailyTrigger(hour=hour, minute=minute),
    )


def weekly():
    return NotificationDescriptor(
        semantic_type=SemanticType.WEEKLY_REPORT,
        title="Weekly Focus Report",
        body="Check out your productivity insights for this week!",
        trigger=WeeklyTrigger(weekday=1, hour=9, minute=0),
    )


def goal():
    return NotificationDescriptor(
        semantic_type=SemanticType.GOAL_ACHIEVEMENT,
        title="Goal Achieved!",
        body="Congratulations!",
    )


def make_engine(tmp_path, backend=None, granted=True):
    backend = backend or FlakyBackend(
        permission_status=PermissionStatus.GRANTED if granted else PermissionStatus.DENIED
    )
    gate = PermissionGate(backend)
    gate.initialize()
    engine = SchedulingEngine(backend, gate, EventLogger(str(tmp_path / "events.jsonl")))
    return engine, backend


def test_schedule_recurring_replaces_existing(tmp_path):
    engine, backend = make_engine(tmp_path)

    assert engine.schedule_recurring(SemanticType.DAILY_REMINDER, daily(9, 0))
    assert engine.schedule_recurring(SemanticType.DAILY_REMINDER, daily(18, 30))

    handles = engine.pending_by_type()["daily_reminder"]
    assert len(handles) == 1
    assert handles[0].trigger == DailyTrigger(hour=18, minute=30)


def test_cancel_by_type_leaves_other_types(tmp_path):
    engine, backend = make_engine(tmp_path)
    engine.schedule_recurring(SemanticType.DAILY_REMINDER, daily())
    engine.schedule_recurring(SemanticType.WEEKLY_REPORT, weekly())

    assert engine.cancel_by_type(SemanticType.DAILY_REMINDER)

    assert pending_types(backend) == ["weekly_report"]


def test_cancel_by_type_with_no_matches_is_noop(tmp_path):
    engine, backend = make_engine(tmp_path)

    assert engine.cancel_by_type(SemanticType.WEEKLY_REPORT) is True
    assert backend.list_pending() == []


def test_cancel_by_type_removes_duplicates_left_by_earlier_runs(tmp_path):
    engine, backend = make_engine(tmp_path)
    backend.enqueue(daily(7, 0))
    backend.enqueue(daily(8, 0))

    engine.schedule_recurring(SemanticType.DAILY_REMINDER, daily(9, 0))

    assert pending_types(backend) == ["daily_reminder"]


def test_one_shots_are_not_deduplicated(tmp_path):
    engine, backend = make_engine(tmp_path)

    assert engine.schedule_one_shot(goal())
    assert engine.schedule_one_shot(goal())

    assert [d.semantic_type for d in backend.delivered] == [SemanticType.GOAL_ACHIEVEMENT] * 2


def test_without_permission_everything_is_a_noop(tmp_path):
    engine, backend = make_engine(tmp_path, granted=False)

    assert engine.schedule_one_shot(goal()) is False
    assert engine.schedule_recurring(SemanticType.DAILY_REMINDER, daily()) is False
    assert engine.cancel_by_type(SemanticType.DAILY_REMINDER) is False
    assert engine.cancel_all() is False
    assert backend.delivered == []
    assert backend.list_pending() == []


def test_failed_cancel_skips_create(tmp_path):
    engine, backend = make_engine(tmp_path)
    engine.schedule_recurring(SemanticType.DAILY_REMINDER, daily(9, 0))
    backend.fail_cancel_types.add("daily_reminder")

    assert engine.schedule_recurring(SemanticType.DAILY_REMINDER, daily(18, 30)) is False

    handles = backend.list_pending()
    assert len(handles) == 1
    assert handles[0].trigger == DailyTrigger(hour=9, minute=0)


def test_failed_enqueue_is_logged_not_raised(tmp_path):
    engine, backend = make_engine(tmp_path)
    backend.fail_enqueue_types.add("goal_achievement")

    assert engine.schedule_one_shot(goal()) is False

    events = engine.event_logger.get_recent_events()
    assert events[-1]["event_type"] == "failed"
    assert events[-1]["metadata"]["operation"] == "enqueue"


def test_unlistable_queue_is_reported_as_failure(tmp_path):
    engine, backend = make_engine(tmp_path)
    backend.fail_list = True

    assert engine.cancel_by_type(SemanticType.DAILY_REMINDER) is False
    assert engine.schedule_recurring(SemanticType.DAILY_REMINDER, daily()) is False
    assert engine.pending_by_type() == {}


def test_cancel_all_clears_queue(tmp_path):
    engine, backend = make_engine(tmp_path)
    engine.schedule_recurring(SemanticType.DAILY_REMINDER, daily())
    engine.schedule_recurring(SemanticType.WEEKLY_REPORT, weekly())

    assert engine.cancel_all()

    assert backend.list_pending() == []
    assert engine.event_logger.get_recent_events()[-1]["metadata"]["cancelled_count"] == 2


def test_schedule_recurring_validates_type(tmp_path):
    engine, _ = make_engine(tmp_path)

    with pytest.raises(ValueError):
        engine.schedule_recurring(SemanticType.GOAL_ACHIEVEMENT, goal())
    with pytest.raises(ValueError):
        engine.schedule_recurring(SemanticType.WEEKLY_REPORT, daily())


def test_one_shot_types_cannot_carry_recurring_trigger():
    with pytest.raises(ValueError):
        NotificationDescriptor(
            semantic_type=SemanticType.SESSION_COMPLETE,
            title="Focus Session Complete!",
            body="Nice",
            trigger=DailyTrigger(hour=9, minute=0),
        )
