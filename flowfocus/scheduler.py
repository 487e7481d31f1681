"""
Scheduling engine: the only component that writes to the notification
backend.

Recurring types keep at most one live notification each: existing ones are
cancelled before the replacement is created. Cancellation works by scanning
the backend's pending list for a matching data["type"], so it also cleans up
items scheduled by an earlier run of the app.
"""

import logging
import threading
from typing import Dict, List, Optional

from .event_logger import EventLogger
from .notification_types import NotificationDescriptor, ScheduledHandle, SemanticType
from .notifications import NotificationBackend, NotificationBackendError
from .permissions import PermissionGate


logger = logging.getLogger(__name__)


class SchedulingEngine:
    """
    Applies planned notifications to the backend.

    Without notification permission every operation is a silent no-op.
    Backend failures are logged and journaled, never raised.
    """

    def __init__(
        self,
        backend: NotificationBackend,
        permission_gate: PermissionGate,
        event_logger: Optional[EventLogger] = None
    ):
        """
        Initialize scheduling engine.

        Args:
            backend: Notification backend (OS queue)
            permission_gate: Source of the capability flag
            event_logger: Journal for scheduling decisions
        """
        self.backend = backend
        self.permission_gate = permission_gate
        self.event_logger = event_logger or EventLogger()

        # Serializes cancel-before-create against other operations
        self._lock = threading.RLock()

    @property
    def can_schedule(self) -> bool:
        return self.permission_gate.granted

    def schedule_one_shot(self, descriptor: NotificationDescriptor) -> bool:
        """
        Enqueue a notification for immediate delivery. Not deduplicated.

        Returns:
            True if the backend accepted it
        """
        type_value = descriptor.semantic_type.value
        if not self.can_schedule:
            self.event_logger.log_suppressed(type_value, "permission_not_granted")
            return False

        with self._lock:
            return self._enqueue(descriptor)

    def schedule_recurring(
        self,
        semantic_type: SemanticType,
        descriptor: NotificationDescriptor
    ) -> bool:
        """
        Replace the live notification of a recurring type.

        Cancels every pending item of this type, then enqueues the descriptor.
        If any cancellation fails the create is skipped so the type never ends
        up with two live items; the next reconciliation retries.

        Returns:
            True if the new notification is scheduled

        Raises:
            ValueError: if the type is not recurring or does not match the descriptor
        """
        if not semantic_type.is_recurring:
            raise ValueError(f"{semantic_type.value} is not a recurring notification type")
        if descriptor.semantic_type != semantic_type:
            raise ValueError(
                f"Descriptor type {descriptor.semantic_type.value} does not match {semantic_type.value}"
            )

        if not self.can_schedule:
            self.event_logger.log_suppressed(semantic_type.value, "permission_not_granted")
            return False

        with self._lock:
            if not self._cancel_matching(semantic_type):
                logger.warning(
                    "Skipping %s reschedule: existing notification could not be cancelled",
                    semantic_type.value
                )
                return False
            return self._enqueue(descriptor)

    def cancel_by_type(self, semantic_type: SemanticType) -> bool:
        """
        Cancel every pending notification tagged with this type.

        Zero matches is not an error.

        Returns:
            True if nothing matching is left behind
        """
        if not self.can_schedule:
            return False

        with self._lock:
            return self._cancel_matching(semantic_type)

    def cancel_all(self) -> bool:
        """
        Clear every pending notification. Only for a full settings reset.

        Returns:
            True if the backend cleared its queue
        """
        if not self.can_schedule:
            return False

        with self._lock:
            try:
                count = len(self.backend.list_pending())
                self.backend.cancel_all()
            except NotificationBackendError as e:
                logger.error("Failed to cancel all notifications: %s", e)
                self.event_logger.log_failed("all", "cancel_all", e)
                return False

            self.event_logger.log_reset(count)
            logger.info("Cancelled all pending notifications (%d)", count)
            return True

    def pending_by_type(self) -> Dict[str, List[ScheduledHandle]]:
        """
        Group pending notifications by their type tag.

        Returns:
            Dictionary of type value -> handles (empty if the backend fails)
        """
        grouped: Dict[str, List[ScheduledHandle]] = {}
        try:
            handles = self.backend.list_pending()
        except NotificationBackendError as e:
            logger.error("Could not list pending notifications: %s", e)
            return grouped

        for handle in handles:
            grouped.setdefault(handle.type_tag or "unknown", []).append(handle)
        return grouped

    def _enqueue(self, descriptor: NotificationDescriptor) -> bool:
        type_value = descriptor.semantic_type.value
        try:
            identifier = self.backend.enqueue(descriptor)
        except NotificationBackendError as e:
            logger.error("Failed to schedule %s notification: %s", type_value, e)
            self.event_logger.log_failed(type_value, "enqueue", e)
            return False

        self.event_logger.log_scheduled(type_value, identifier, descriptor.trigger.to_dict())
        logger.debug("Scheduled %s notification %s", type_value, identifier)
        return True

    def _cancel_matching(self, semantic_type: SemanticType) -> bool:
        type_value = semantic_type.value
        try:
            handles = self.backend.list_pending()
        except NotificationBackendError as e:
            logger.error("Could not list pending notifications: %s", e)
            self.event_logger.log_failed(type_value, "list_pending", e)
            return False

        all_cancelled = True
        for handle in handles:
            if handle.type_tag != type_value:
                continue
            try:
                self.backend.cancel(handle.identifier)
            except NotificationBackendError as e:
                logger.error("Failed to cancel %s notification %s: %s", type_value, handle.identifier, e)
                self.event_logger.log_failed(type_value, "cancel", e)
                all_cancelled = False
                continue
            self.event_logger.log_cancelled(type_value, handle.identifier)

        return all_cancelled
