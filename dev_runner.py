#!/usr/bin/env python3
"""
Flow Focus notification development runner.
Initializes the notification service, optionally fires simulated session
events, then prints the pending queue and the recent event journal.

Usage:
    python dev_runner.py [--dry-run] [--reminder-time HH:MM]
    python dev_runner.py --simulate session --simulate streak:7 --simulate goal:"Read 5 books"
    python dev_runner.py --run-for 120   (keep the delivery loop alive)
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from flowfocus import NotificationService, ServiceConfig


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(storage_dir: str, verbose: bool = False):
    """Log to stderr and to storage/flowfocus.log."""
    log_dir = Path(storage_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not root.handlers:
        h_stderr = logging.StreamHandler(sys.stderr)
        h_stderr.setFormatter(formatter)
        root.addHandler(h_stderr)
        h_file = logging.FileHandler(log_dir / "flowfocus.log", encoding="utf-8")
        h_file.setFormatter(formatter)
        root.addHandler(h_file)


def fire_simulated_event(service: NotificationService, event_name: str) -> bool:
    """
    Fire one simulated event.

    Args:
        event_name: session | break | goal:<title> | streak:<count> | break-reminder:<minutes>
    """
    kind, _, arg = event_name.partition(":")
    if kind == "session":
        return service.on_session_complete(is_break=False)
    if kind == "break":
        return service.on_session_complete(is_break=True)
    if kind == "goal":
        return service.on_goal_achieved(arg or "Daily focus goal")
    if kind == "streak":
        return service.on_streak_milestone(int(arg or "3"))
    if kind == "break-reminder":
        return service.on_break_reminder(int(arg or "5"))
    raise ValueError(f"Unknown simulated event: {event_name}")


def print_status(service: NotificationService):
    settings = service.get_settings()
    print()
    print("=" * 80)
    print("NOTIFICATION STATUS")
    print("=" * 80)
    print(f"Permission: {'granted' if service.permission_gate.granted else 'not granted'}")
    print(f"Enabled: {settings.enabled} | Daily: {settings.daily_reminders} at {settings.reminder_time} "
          f"| Weekly: {settings.weekly_reports} | Motivational: {settings.motivational_messages}")
    print()

    pending = service.get_pending_notifications()
    print(f"Pending notifications ({len(pending)}):")
    for handle in pending:
        print(f"  [{handle.type_tag}] {handle.title} -> {handle.trigger.to_dict()}")
    print()

    print("Recent events:")
    for evt in service.event_logger.get_recent_events(limit=10):
        print(f"  [{evt['timestamp']}] {evt['event_type']}: {evt['notification_type']} - {evt['reason']}")
    print("=" * 80)


def main():
    parser = argparse.ArgumentParser(description="Flow Focus notification dev runner")
    parser.add_argument("--dry-run", action="store_true",
                        help="Use the in-memory backend; nothing is posted")
    parser.add_argument("--storage", type=str, default=None,
                        help="Storage directory (default: ./storage or $FLOWFOCUS_STORAGE_ROOT)")
    parser.add_argument("--reminder-time", type=str, default=None,
                        help="Move the daily reminder to HH:MM before simulating")
    parser.add_argument("--simulate", action="append", default=[],
                        help="Event to fire: session, break, goal:<title>, streak:<n>, break-reminder:<min>")
    parser.add_argument("--run-for", type=float, default=0.0,
                        help="Keep the delivery loop running for this many seconds")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    try:
        config = ServiceConfig.from_env()
    except ValueError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    if args.storage:
        config.storage_dir = args.storage
    if args.dry_run:
        config.dry_run = True

    setup_logging(config.storage_dir, args.verbose)

    service = NotificationService(config)
    granted = service.initialize()
    if not granted:
        print("Notifications are not available (unsupported platform or permission denied).")
        print("Use --dry-run to exercise the scheduling logic anyway.")

    try:
        if args.reminder_time:
            service.update_reminder_time(args.reminder_time)

        for event_name in args.simulate:
            posted = fire_simulated_event(service, event_name)
            print(f"Simulated {event_name}: {'scheduled' if posted else 'suppressed'}")

        print_status(service)

        if args.run_for > 0:
            print(f"Delivery loop running for {args.run_for:.0f}s (Ctrl+C to stop)...")
            time.sleep(args.run_for)
    except ValueError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        service.shutdown()


if __name__ == "__main__":
    main()
