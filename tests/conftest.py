import heapq
import itertools
from unittest.mock import MagicMock

import pytest

import auth
from infrastructure.repositories.sqlite_credential_repository import SQLiteCredentialRepository
from use_cases.auth_flow import SessionController
from use_cases.credential_store import CredentialStore
from use_cases.session_models import StepUpTransaction, UserIdentity


class FakeHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Virtual clock. Callbacks fire in (time, scheduling order) during advance()."""

    def __init__(self, start=1_000_000.0):
        self._now = start
        self._queue = []
        self._seq = itertools.count()

    def now(self):
        return self._now

    def call_later(self, delay, callback):
        handle = FakeHandle(self._now + delay, callback)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    def pending(self, name=None):
        handles = [h for _, _, h in self._queue if not h.cancelled]
        if name is not None:
            handles = [h for h in handles if getattr(h.callback, "func", h.callback).__name__ == name]
        return handles

    def advance(self, seconds):
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, when)
            handle.callback()
        self._now = max(self._now, target)


DOCTOR = UserIdentity(
    id=7,
    full_name="Gregory House",
    email="house@clinic.test",
    is_active=True,
    role_id=2,
    role_name="doctor",
)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def store(tmp_path):
    credential_store = CredentialStore(SQLiteCredentialRepository(str(tmp_path / "credentials.db")))
    credential_store.open()
    return credential_store


@pytest.fixture
def gateway():
    gw = MagicMock()
    gw.authenticate_user.return_value = "temp-123"
    gw.verify_code.return_value = "final-abc"
    gw.fetch_current_user.return_value = DOCTOR
    gw.initiate_step_up.return_value = StepUpTransaction(
        txn_id="txn-1", challenge="42", expires_in_sec=60, message="Push sent"
    )
    gw.redeem_step_up.side_effect = auth.StepUpPendingError("Third factor not approved yet")
    return gw


@pytest.fixture
def make_controller(store, gateway, scheduler):
    def _make(poll_interval=3):
        return SessionController(store, gateway=gateway, scheduler=scheduler, poll_interval=poll_interval)
    return _make


@pytest.fixture
def controller(make_controller):
    return make_controller()


@pytest.fixture
def logged_in(controller):
    controller.submit_login("house@clinic.test", "vicodin")
    controller.verify_code("123456")
    assert controller.session.stage == "logged_in"
    return controller
