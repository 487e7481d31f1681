"""
Reconciler: keeps the recurring notifications on the device in line with
the stored preferences.

Two entry points: `initialize` at app start and `on_setting_change` when the
user edits a preference. Both re-plan each affected recurring type and let
the engine cancel-then-create, so no diff against earlier state is needed.
"""

import logging
from enum import Enum
from typing import Dict, Any, Iterable, List, Tuple

from .notification_types import SemanticType, RECURRING_TYPES
from .permissions import PermissionGate
from .planner import SchedulePlanner
from .scheduler import SchedulingEngine
from .storage import SettingsStorage


logger = logging.getLogger(__name__)

# Setting key -> recurring types whose descriptor depends on it
AFFECTED_TYPES: Dict[str, Tuple[SemanticType, ...]] = {
    "enabled": RECURRING_TYPES,
    "daily_reminders": (SemanticType.DAILY_REMINDER,),
    "reminder_time": (SemanticType.DAILY_REMINDER,),
    "weekly_reports": (SemanticType.WEEKLY_REPORT,),
    "sound_enabled": RECURRING_TYPES,
    "vibration_enabled": RECURRING_TYPES,
}


class ReconcilerState(Enum):
    IDLE = "idle"
    RECONCILING = "reconciling"
    READY = "ready"


def affected_types(keys: Iterable[str]) -> List[SemanticType]:
    """Recurring types to re-plan after the given settings keys change."""
    affected: List[SemanticType] = []
    for key in keys:
        for semantic_type in AFFECTED_TYPES.get(key, ()):
            if semantic_type not in affected:
                affected.append(semantic_type)
    return affected


class Reconciler:
    """
    Orchestrates permission, preferences and the engine for recurring types.
    """

    def __init__(
        self,
        permission_gate: PermissionGate,
        storage: SettingsStorage,
        planner: SchedulePlanner,
        engine: SchedulingEngine
    ):
        self.permission_gate = permission_gate
        self.storage = storage
        self.planner = planner
        self.engine = engine
        self.state = ReconcilerState.IDLE

    @property
    def is_ready(self) -> bool:
        return self.state == ReconcilerState.READY

    def initialize(self) -> bool:
        """
        Resolve permission, load preferences and reconcile every recurring type.

        Safe to call on every app start.

        Returns:
            True if notifications are permitted
        """
        self.state = ReconcilerState.RECONCILING
        granted = self.permission_gate.initialize()
        self.storage.load()

        if granted:
            self.reconcile_types(RECURRING_TYPES)
        else:
            logger.info("Notifications not permitted; skipping reconciliation")

        self.state = ReconcilerState.READY
        return granted

    def on_setting_change(self, partial: Dict[str, Any]) -> bool:
        """
        Persist a settings change and re-plan only the recurring types it affects.

        Args:
            partial: Field name -> new value

        Returns:
            True if the change was persisted

        Raises:
            ValueError: on an unknown key or an ill-typed value
        """
        saved = self.storage.save(partial)
        if not saved:
            logger.warning("Settings change not persisted; keeping previous settings")

        types = affected_types(partial.keys())
        if types:
            self.reconcile_types(types)
        return saved

    def reset(self) -> bool:
        """
        Restore default settings, clear every pending notification and
        rebuild the recurring ones.

        Returns:
            True if the defaults were persisted
        """
        saved = self.storage.reset()
        self.engine.cancel_all()
        self.reconcile_types(RECURRING_TYPES)
        return saved

    def reconcile_types(self, types: Iterable[SemanticType]) -> Dict[SemanticType, bool]:
        """
        Reconcile each type independently; one failure never stops the rest.

        Returns:
            Dictionary of type -> whether it reached its desired state
        """
        results = {}
        for semantic_type in types:
            results[semantic_type] = self.reconcile_type(semantic_type)

        failed = [t.value for t, ok in results.items() if not ok]
        if failed and self.engine.can_schedule:
            logger.warning("Reconciliation incomplete for: %s", ", ".join(failed))
        return results

    def reconcile_type(self, semantic_type: SemanticType) -> bool:
        """Schedule the desired notification for a type, or cancel it if off."""
        settings = self.storage.current
        descriptor = self.planner.plan_recurring(semantic_type, settings)

        if descriptor is None:
            return self.engine.cancel_by_type(semantic_type)
        return self.engine.schedule_recurring(semantic_type, descriptor)
