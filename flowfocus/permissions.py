"""
Permission gate: OS authorization and delivery channel setup.

Every scheduling call checks `granted`. A denied or unsupported host is not
an error anywhere else; scheduling simply does nothing.
"""

import logging
from typing import Dict

from .notification_types import (
    ChannelConfig,
    ChannelImportance,
    PermissionStatus,
    DEFAULT_CHANNEL_ID,
    REMINDERS_CHANNEL_ID,
)
from .notifications import NotificationBackend, NotificationBackendError


logger = logging.getLogger(__name__)

VIBRATION_PATTERN = (0, 250, 250, 250)

# "default" carries session/break/achievement/milestone notifications,
# "reminders" the daily and weekly recurring ones.
NOTIFICATION_CHANNELS: Dict[str, ChannelConfig] = {
    DEFAULT_CHANNEL_ID: ChannelConfig(
        name="Flow Focus",
        importance=ChannelImportance.MAX,
        vibration_pattern=VIBRATION_PATTERN,
        light_color="#48BB78",
        sound="default"
    ),
    REMINDERS_CHANNEL_ID: ChannelConfig(
        name="Daily Reminders",
        importance=ChannelImportance.DEFAULT,
        vibration_pattern=VIBRATION_PATTERN,
        light_color="#4299E1",
        sound="default"
    ),
}


class PermissionGate:
    """
    Owns the notification capability flag.

    Requests authorization at most once per gate; a denial is final until
    the user changes it in System Settings.
    """

    def __init__(self, backend: NotificationBackend):
        self.backend = backend
        self._granted = False
        self._requested = False

    @property
    def granted(self) -> bool:
        return self._granted

    def initialize(self) -> bool:
        """
        Resolve authorization and configure delivery channels.

        Returns:
            True if notifications may be scheduled
        """
        if not self.backend.is_available():
            logger.info("Local notifications not supported on this platform")
            self._granted = False
            return False

        try:
            status = self.backend.get_permission_status()
            if status == PermissionStatus.UNDETERMINED and not self._requested:
                self._requested = True
                status = self.backend.request_permission()
        except NotificationBackendError as e:
            logger.error("Could not determine notification permission: %s", e)
            self._granted = False
            return False

        if status != PermissionStatus.GRANTED:
            logger.info("Notification permission not granted (%s)", status.value)
            self._granted = False
            return False

        self._configure_channels()
        self._granted = True
        return True

    def _configure_channels(self):
        """Create missing or changed channels; identical ones are left alone."""
        for channel_id, config in NOTIFICATION_CHANNELS.items():
            try:
                if self.backend.get_channel(channel_id) == config:
                    continue
                self.backend.set_channel(channel_id, config)
                logger.debug("Configured notification channel %s", channel_id)
            except NotificationBackendError as e:
                # Delivery still works on the backend's default channel
                logger.error("Could not configure channel %s: %s", channel_id, e)
