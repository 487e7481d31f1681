"""
Event journal for notification scheduling decisions.

Records what was scheduled, suppressed, cancelled or failed so a user can
see why a reminder did or did not show up.
"""

import json
import logging
import time
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime


logger = logging.getLogger(__name__)


class EventLogger:
    """
    Journal of notification scheduling events.

    Logs to JSONL format (one JSON object per line).
    Journal failures are logged and never interrupt scheduling.
    """

    def __init__(self, log_path: Optional[str] = None):
        """
        Initialize event logger.

        Args:
            log_path: Path to log file (default: storage/notification_events.jsonl)
        """
        if log_path is None:
            log_path = "storage/notification_events.jsonl"

        self.log_path = Path(log_path)

    def log_event(
        self,
        event_type: str,
        notification_type: str,
        reason: str,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """
        Append one event to the journal.

        Args:
            event_type: scheduled, suppressed, cancelled, failed or reset
            notification_type: Semantic type value (or "all")
            reason: Brief reason string
            metadata: Additional metadata (trigger, identifier, error, ...)
        """
        event = {
            "timestamp": datetime.now().isoformat(),
            "unix_time": time.time(),
            "event_type": event_type,
            "notification_type": notification_type,
            "reason": reason,
            "metadata": metadata or {}
        }

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(event, default=str) + "\n")
        except OSError as e:
            logger.warning("Could not write notification event journal: %s", e)

    def log_scheduled(
        self,
        notification_type: str,
        identifier: str,
        trigger: Dict[str, Any]
    ):
        """Log a notification handed to the backend."""
        self.log_event(
            event_type="scheduled",
            notification_type=notification_type,
            reason=f"Scheduled ({trigger.get('kind', 'immediate')})",
            metadata={"identifier": identifier, "trigger": trigger}
        )

    def log_suppressed(self, notification_type: str, suppression_type: str):
        """Log a notification that was not scheduled (permission, settings)."""
        self.log_event(
            event_type="suppressed",
            notification_type=notification_type,
            reason=suppression_type,
            metadata={"suppression_type": suppression_type}
        )

    def log_cancelled(self, notification_type: str, identifier: str):
        """Log a pending notification removed from the backend."""
        self.log_event(
            event_type="cancelled",
            notification_type=notification_type,
            reason="Cancelled by type",
            metadata={"identifier": identifier}
        )

    def log_failed(self, notification_type: str, operation: str, error: Exception):
        """Log a backend call that failed."""
        self.log_event(
            event_type="failed",
            notification_type=notification_type,
            reason=f"{operation} failed",
            metadata={"operation": operation, "error": str(error)}
        )

    def log_reset(self, cancelled_count: int):
        """Log a full cancel of every pending notification."""
        self.log_event(
            event_type="reset",
            notification_type="all",
            reason="Cancelled all pending notifications",
            metadata={"cancelled_count": cancelled_count}
        )

    def get_recent_events(self, limit: int = 100) -> list:
        """
        Get recent events from log.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of event dictionaries
        """
        if not self.log_path.exists():
            return []

        events = []
        with open(self.log_path, "r", encoding="utf-8") as f:
            for line in f:
                try:
                    events.append(json.loads(line.strip()))
                except json.JSONDecodeError:
                    continue

        return events[-limit:]

    def purge_logs(self):
        """Delete all logged events."""
        if self.log_path.exists():
            self.log_path.unlink()
