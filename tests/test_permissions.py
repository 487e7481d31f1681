from conftest import FlakyBackend
from flowfocus import (
    NOTIFICATION_CHANNELS,
    ChannelImportance,
    NotificationBackendError,
    PermissionGate,
    PermissionStatus,
)


def test_unsupported_platform_has_no_side_effects():
    backend = FlakyBackend(available=False)
    gate = PermissionGate(backend)

    assert gate.initialize() is False
    assert gate.granted is False
    assert backend.permission_requests == 0
    assert backend.channels == {}


def test_undetermined_permission_is_requested_once():
    backend = FlakyBackend(permission_status=PermissionStatus.UNDETERMINED, grant_on_request=True)
    gate = PermissionGate(backend)

    assert gate.initialize() is True
    assert gate.initialize() is True
    assert backend.permission_requests == 1


def test_denied_request_is_not_retried():
    backend = FlakyBackend(permission_status=PermissionStatus.UNDETERMINED, grant_on_request=False)
    gate = PermissionGate(backend)

    assert gate.initialize() is False
    assert gate.initialize() is False
    assert backend.permission_requests == 1
    assert backend.channels == {}


def test_already_granted_skips_request():
    backend = FlakyBackend(permission_status=PermissionStatus.GRANTED)

    assert PermissionGate(backend).initialize() is True
    assert backend.permission_requests == 0


def test_channels_are_configured_idempotently():
    backend = FlakyBackend(permission_status=PermissionStatus.GRANTED)
    gate = PermissionGate(backend)

    gate.initialize()
    gate.initialize()
    PermissionGate(backend).initialize()

    assert set(backend.channels) == {"default", "reminders"}
    assert backend.channel_writes == 2
    assert backend.channels["default"].importance == ChannelImportance.MAX
    assert backend.channels["reminders"].importance == ChannelImportance.DEFAULT
    assert backend.channels["reminders"] == NOTIFICATION_CHANNELS["reminders"]


def test_backend_error_while_querying_denies(monkeypatch):
    backend = FlakyBackend()

    def broken_status():
        raise NotificationBackendError("authorization service unavailable")

    monkeypatch.setattr(backend, "get_permission_status", broken_status)

    assert PermissionGate(backend).initialize() is False


def test_channel_error_does_not_revoke_permission(monkeypatch):
    backend = FlakyBackend(permission_status=PermissionStatus.GRANTED)

    def broken_set_channel(channel_id, config):
        raise NotificationBackendError("channel store read-only")

    monkeypatch.setattr(backend, "set_channel", broken_set_channel)

    gate = PermissionGate(backend)
    assert gate.initialize() is True
    assert gate.granted is True
