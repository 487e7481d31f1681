import random

import pytest

from flowfocus import (
    InMemoryNotificationBackend,
    NotificationBackendError,
    NotificationService,
    PermissionStatus,
    ServiceConfig,
)


class FlakyBackend(InMemoryNotificationBackend):
    """In-memory backend that fails on demand for selected type tags."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.fail_enqueue_types = set()
        self.fail_cancel_types = set()
        self.fail_list = False

    def enqueue(self, descriptor):
        if descriptor.semantic_type.value in self.fail_enqueue_types:
            raise NotificationBackendError("enqueue rejected")
        return super().enqueue(descriptor)

    def cancel(self, identifier):
        descriptor = self.pending.get(identifier)
        if descriptor is not None and descriptor.semantic_type.value in self.fail_cancel_types:
            raise NotificationBackendError("cancel rejected")
        super().cancel(identifier)

    def list_pending(self):
        if self.fail_list:
            raise NotificationBackendError("queue unavailable")
        return super().list_pending()


def pending_types(backend):
    return sorted(handle.type_tag for handle in backend.list_pending())


@pytest.fixture
def config(tmp_path):
    return ServiceConfig(storage_dir=str(tmp_path / "storage"))


@pytest.fixture
def backend():
    return FlakyBackend(permission_status=PermissionStatus.UNDETERMINED, grant_on_request=True)


@pytest.fixture
def service(config, backend):
    svc = NotificationService(config, backend=backend, rng=random.Random(7), clock=lambda: 1_700_000_000.0)
    yield svc
    svc.shutdown()
