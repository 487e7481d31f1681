"""
Notification backends: the device-side queue of pending notifications.

The macOS backend keeps its own persisted queue and posts due items through
pync (terminal-notifier), respecting Do Not Disturb / Focus modes. The
in-memory backend stands in for the OS in tests and dry runs.
"""

import json
import logging
import os
import subprocess
import threading
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List, Callable

from .notification_types import (
    NotificationDescriptor,
    ScheduledHandle,
    ChannelConfig,
    ImmediateTrigger,
    PermissionStatus,
    trigger_from_dict,
)
from .platform import is_macos


logger = logging.getLogger(__name__)

QUEUE_FILE_VERSION = "1.0"
DELIVERY_THREAD_NAME = "flowfocus-delivery"


class NotificationBackendError(Exception):
    """A call into the notification subsystem failed."""


class NotificationBackend(ABC):
    """
    Abstract OS notification subsystem.

    Handles are discovered through list_pending(); callers never need to
    remember identifiers returned by enqueue().
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this host can show local notifications at all."""

    @abstractmethod
    def get_permission_status(self) -> PermissionStatus:
        ...

    @abstractmethod
    def request_permission(self) -> PermissionStatus:
        """Ask the user (or the system) for authorization."""

    @abstractmethod
    def get_channel(self, channel_id: str) -> Optional[ChannelConfig]:
        ...

    @abstractmethod
    def set_channel(self, channel_id: str, config: ChannelConfig):
        """Create or replace a delivery channel definition."""

    @abstractmethod
    def enqueue(self, descriptor: NotificationDescriptor) -> str:
        """Queue a notification; returns its identifier."""

    @abstractmethod
    def list_pending(self) -> List[ScheduledHandle]:
        ...

    @abstractmethod
    def cancel(self, identifier: str):
        ...

    @abstractmethod
    def cancel_all(self):
        ...

    def start(self):
        """Start background delivery, if the backend needs one."""

    def stop(self):
        """Stop background delivery."""


class InMemoryNotificationBackend(NotificationBackend):
    """
    Process-local notification queue.

    Immediate notifications are "delivered" on enqueue and recorded in
    `delivered`; anything with a recurring trigger stays pending.
    """

    def __init__(
        self,
        permission_status: PermissionStatus = PermissionStatus.UNDETERMINED,
        grant_on_request: bool = True,
        available: bool = True,
        dry_run: bool = False
    ):
        """
        Initialize in-memory backend.

        Args:
            permission_status: Authorization state before any request
            grant_on_request: Answer given when permission is requested
            available: Whether the host reports notification support
            dry_run: Log would-be deliveries instead of silently recording them
        """
        self.permission_status = permission_status
        self.grant_on_request = grant_on_request
        self.available = available
        self.dry_run = dry_run

        self.channels: Dict[str, ChannelConfig] = {}
        self.pending: Dict[str, NotificationDescriptor] = {}
        self.delivered: List[NotificationDescriptor] = []

        # Call counters (diagnostics)
        self.permission_requests = 0
        self.channel_writes = 0

    def is_available(self) -> bool:
        return self.available

    def get_permission_status(self) -> PermissionStatus:
        return self.permission_status

    def request_permission(self) -> PermissionStatus:
        self.permission_requests += 1
        self.permission_status = (
            PermissionStatus.GRANTED if self.grant_on_request else PermissionStatus.DENIED
        )
        return self.permission_status

    def get_channel(self, channel_id: str) -> Optional[ChannelConfig]:
        return self.channels.get(channel_id)

    def set_channel(self, channel_id: str, config: ChannelConfig):
        self.channel_writes += 1
        self.channels[channel_id] = config

    def enqueue(self, descriptor: NotificationDescriptor) -> str:
        identifier = uuid.uuid4().hex
        if descriptor.is_recurring:
            self.pending[identifier] = descriptor
        else:
            self.delivered.append(descriptor)
            if self.dry_run:
                logger.info("DRY RUN: would post %r - %s", descriptor.title, descriptor.body)
        return identifier

    def list_pending(self) -> List[ScheduledHandle]:
        return [
            ScheduledHandle(
                identifier=identifier,
                data=dict(descriptor.data),
                title=descriptor.title,
                body=descriptor.body,
                trigger=descriptor.trigger,
                sound=descriptor.sound,
                vibrate=descriptor.vibrate
            )
            for identifier, descriptor in self.pending.items()
        ]

    def cancel(self, identifier: str):
        if self.pending.pop(identifier, None) is None:
            raise NotificationBackendError(f"No pending notification {identifier}")

    def cancel_all(self):
        self.pending.clear()


class MacNotificationBackend(NotificationBackend):
    """
    macOS Notification Center backend.

    Pending notifications, channel definitions and the authorization answer
    live in storage/notification_queue.json so they survive restarts.
    A background thread posts due items every `delivery_interval_sec`.
    """

    def __init__(
        self,
        queue_path: str = "storage/notification_queue.json",
        app_name: str = "Flow Focus",
        delivery_interval_sec: float = 30.0,
        one_shot_expiry_sec: float = 2700.0,
        respect_dnd: bool = True,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize macOS backend.

        Args:
            queue_path: Path to persisted queue file
            app_name: Application name shown as notification subtitle
            delivery_interval_sec: Delivery loop period
            one_shot_expiry_sec: Drop one-shot items held back longer than this
            respect_dnd: Hold back deliveries while Do Not Disturb is on
            clock: Time source (unix seconds)
        """
        self.queue_path = Path(queue_path)
        self.app_name = app_name
        self.delivery_interval_sec = delivery_interval_sec
        self.one_shot_expiry_sec = one_shot_expiry_sec
        self.respect_dnd = respect_dnd
        self.clock = clock

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error_count = 0

        self._state = self._load_state()

    # Permission and channels

    def is_available(self) -> bool:
        return is_macos()

    def get_permission_status(self) -> PermissionStatus:
        with self._lock:
            try:
                return PermissionStatus(self._state.get("permission"))
            except ValueError:
                return PermissionStatus.UNDETERMINED

    def request_permission(self) -> PermissionStatus:
        """
        Probe for a working terminal-notifier through pync.

        The answer is stored, so the probe runs once per install.
        """
        try:
            import pync  # noqa: F401
            status = PermissionStatus.GRANTED
        except ImportError:
            logger.warning("pync is not installed; notifications disabled")
            status = PermissionStatus.DENIED

        with self._lock:
            self._state["permission"] = status.value
            self._save_state()
        return status

    def get_channel(self, channel_id: str) -> Optional[ChannelConfig]:
        with self._lock:
            data = self._state["channels"].get(channel_id)
        return ChannelConfig.from_dict(data) if data else None

    def set_channel(self, channel_id: str, config: ChannelConfig):
        with self._lock:
            self._state["channels"][channel_id] = config.to_dict()
            self._save_state()

    # Queue

    def enqueue(self, descriptor: NotificationDescriptor) -> str:
        now = self.clock()
        fire_at = descriptor.trigger.next_fire_time(datetime.fromtimestamp(now)).timestamp()
        item = {
            "identifier": uuid.uuid4().hex,
            "title": descriptor.title,
            "body": descriptor.body,
            "sound": descriptor.sound,
            "vibrate": descriptor.vibrate,
            "channel_id": descriptor.channel_id,
            "data": descriptor.data,
            "trigger": descriptor.trigger.to_dict(),
            "queued_at": now,
            "fire_at": fire_at
        }

        with self._lock:
            self._commit_pending(self._state["pending"] + [item])

        if not descriptor.is_recurring:
            try:
                self.deliver_due()
            except NotificationBackendError as e:
                # Item stays queued; the delivery loop retries
                logger.warning("Immediate delivery deferred: %s", e)
        return item["identifier"]

    def list_pending(self) -> List[ScheduledHandle]:
        with self._lock:
            items = list(self._state["pending"])
        return [self._to_handle(item) for item in items]

    def cancel(self, identifier: str):
        with self._lock:
            pending = self._state["pending"]
            remaining = [item for item in pending if item["identifier"] != identifier]
            if len(remaining) == len(pending):
                raise NotificationBackendError(f"No pending notification {identifier}")
            self._commit_pending(remaining)

    def cancel_all(self):
        with self._lock:
            self._commit_pending([])

    # Delivery

    def deliver_due(self, now: Optional[float] = None) -> int:
        """
        Post every item whose fire time has passed.

        Recurring items move to their next occurrence; one-shot items are
        removed once posted or once they outlive the expiry window.

        Returns:
            Number of notifications posted
        """
        if now is None:
            now = self.clock()

        with self._lock:
            self._expire_one_shots(now)

            if self.respect_dnd and self.is_dnd_active():
                self._save_state()
                return 0

            delivered = 0
            remaining = []
            for item in self._state["pending"]:
                if item["fire_at"] > now:
                    remaining.append(item)
                    continue

                trigger = trigger_from_dict(item["trigger"])
                try:
                    self._post_notification(item["title"], item["body"], item.get("sound", True))
                    delivered += 1
                except NotificationBackendError as e:
                    logger.error("Could not post %s notification: %s", item["data"].get("type"), e)
                    remaining.append(item)
                    continue

                if not isinstance(trigger, ImmediateTrigger):
                    next_fire = trigger.next_fire_time(datetime.fromtimestamp(now)).timestamp()
                    remaining.append({**item, "fire_at": next_fire})

            self._state["pending"] = remaining
            self._save_state()
            return delivered

    def is_dnd_active(self) -> bool:
        """
        Check if macOS Do Not Disturb / Focus mode is active.

        Returns:
            True if DND is active, False otherwise
        """
        try:
            # Reads the com.apple.notificationcenterui plist
            result = subprocess.run(
                ["defaults", "read", "com.apple.notificationcenterui", "doNotDisturb"],
                capture_output=True,
                text=True,
                timeout=1.0
            )
            return result.returncode == 0 and result.stdout.strip() == "1"
        except (subprocess.TimeoutExpired, FileNotFoundError):
            # If we can't determine, assume DND is not active
            return False

    def start(self):
        """Start the delivery thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        # One event per thread, so a stopped loop never resumes
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._delivery_loop,
            args=(self._stop_event,),
            name=DELIVERY_THREAD_NAME,
            daemon=True
        )
        self._thread.start()

    def stop(self):
        """Stop the delivery thread and wait for it to exit."""
        self._stop_event.set()
        if self._thread:
            self._thread.join()
            self._thread = None

    def _delivery_loop(self, stop_event: threading.Event):
        """Main delivery loop (runs in background thread)."""
        while not stop_event.is_set():
            try:
                self.deliver_due()
                self._error_count = 0
                stop_event.wait(self.delivery_interval_sec)
            except Exception as e:
                # Best-effort: keep running, back off on repeated errors
                self._error_count += 1
                logger.error("Notification delivery loop error: %s", e)
                backoff = min(self.delivery_interval_sec * (2 ** min(self._error_count, 5)), 600.0)
                stop_event.wait(backoff)

    def _post_notification(self, title: str, message: str, sound: bool):
        # Notification Center has no vibration; `vibrate` stays on the queued item only
        try:
            import pync
            pync.notify(
                message,
                title=title,
                subtitle=self.app_name,
                sound="default" if sound else None
            )
        except Exception as e:
            raise NotificationBackendError(str(e)) from e

    def _expire_one_shots(self, now: float):
        kept = []
        for item in self._state["pending"]:
            one_shot = item["trigger"].get("kind") == "immediate"
            if one_shot and now - item["queued_at"] > self.one_shot_expiry_sec:
                logger.info("Dropping stale %s notification (held back too long)", item["data"].get("type"))
                continue
            kept.append(item)
        self._state["pending"] = kept

    # Persistence

    def _to_handle(self, item: Dict[str, Any]) -> ScheduledHandle:
        return ScheduledHandle(
            identifier=item["identifier"],
            data=dict(item["data"]),
            title=item["title"],
            body=item["body"],
            trigger=trigger_from_dict(item["trigger"]),
            sound=item.get("sound", True),
            vibrate=item.get("vibrate", True)
        )

    def _empty_state(self) -> Dict[str, Any]:
        return {
            "version": QUEUE_FILE_VERSION,
            "permission": PermissionStatus.UNDETERMINED.value,
            "channels": {},
            "pending": []
        }

    def _load_state(self) -> Dict[str, Any]:
        state = self._empty_state()
        if not self.queue_path.exists():
            return state

        try:
            with open(self.queue_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.error("Failed to load notification queue, starting empty: %s", e)
            return state

        if not isinstance(data, dict):
            return state

        if isinstance(data.get("permission"), str):
            state["permission"] = data["permission"]
        if isinstance(data.get("channels"), dict):
            state["channels"] = data["channels"]
        if isinstance(data.get("pending"), list):
            state["pending"] = [item for item in data["pending"] if self._valid_item(item)]
        return state

    def _valid_item(self, item: Any) -> bool:
        if not isinstance(item, dict):
            return False
        required = ("identifier", "title", "body", "data", "trigger", "queued_at", "fire_at")
        if any(key not in item for key in required):
            return False
        try:
            trigger_from_dict(item["trigger"])
        except (ValueError, KeyError, TypeError):
            return False
        return True

    def _commit_pending(self, pending: List[Dict[str, Any]]):
        """Replace the pending list and persist it, restoring on failure."""
        previous = self._state["pending"]
        self._state["pending"] = pending
        try:
            self._save_state()
        except NotificationBackendError:
            self._state["pending"] = previous
            raise

    def _save_state(self):
        """
        Write the queue atomically (temp file + os.replace()).

        Raises:
            NotificationBackendError: if the file cannot be written
        """
        temp_file = self.queue_path.with_suffix(".tmp")
        try:
            self.queue_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(self._state, f, indent=2, default=str)
            os.replace(temp_file, self.queue_path)
        except OSError as e:
            raise NotificationBackendError(f"Could not write notification queue: {e}") from e
