"""
Step-up authorization: out-of-band approval for access to health records.

One transaction at a time. Entering `pending_approval` arms two independent
scheduled callbacks, a one-shot timeout of `expires_in_sec` and a poller
that re-arms itself every `poll_interval` seconds. Every result is applied
under the coordinator lock and only if its generation is still current and
the state is still `pending_approval`; anything else is a late arrival and
is dropped.
"""

import logging
import threading
from functools import partial
from typing import Callable, Literal, Optional

import auth
from use_cases.session_models import StepUpGrant, StepUpTransaction

log = logging.getLogger(__name__)

StepUpState = Literal["idle", "initiating", "pending_approval", "approved", "timed_out", "error"]

DEFAULT_TARGET_ACTION = "access_sensitive_data"
DEFAULT_TARGET_RESOURCE = "health_records"
DEFAULT_POLL_INTERVAL = 3.0


class StepUpCoordinator:
    def __init__(
        self,
        scheduler,
        token_provider: Callable[[], Optional[str]],
        on_granted: Callable[[StepUpGrant], None],
        gateway=auth,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        notify: Optional[Callable[[str, str], None]] = None,
    ):
        self._scheduler = scheduler
        self._token_provider = token_provider
        self._on_granted = on_granted
        self._gateway = gateway
        self._poll_interval = poll_interval
        self._notify = notify or (lambda level, message: None)

        self._lock = threading.Lock()
        self._state: StepUpState = "idle"
        self._generation = 0
        self._transaction: Optional[StepUpTransaction] = None
        self._error_message: Optional[str] = None
        self._timeout_handle = None
        self._poll_handle = None
        self._deferred: Optional[Callable[[], None]] = None
        self._deferred_running = False
        self._target = (DEFAULT_TARGET_ACTION, DEFAULT_TARGET_RESOURCE)

    @property
    def state(self) -> StepUpState:
        return self._state

    @property
    def transaction(self) -> Optional[StepUpTransaction]:
        return self._transaction

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def is_polling(self) -> bool:
        return self._poll_handle is not None

    @property
    def deferred_running(self) -> bool:
        """True while the operation released by an approval is still executing."""
        return self._deferred_running

    def start(
        self,
        target_action: str = DEFAULT_TARGET_ACTION,
        target_resource: str = DEFAULT_TARGET_RESOURCE,
        on_success: Optional[Callable[[], None]] = None,
    ) -> StepUpState:
        """Begin a new transaction, tearing down any previous one first."""
        with self._lock:
            self._cancel_timers()
            self._generation += 1
            generation = self._generation
            self._state = "initiating"
            self._transaction = None
            self._error_message = None
            self._deferred = on_success
            self._target = (target_action, target_resource)

        try:
            txn = self._gateway.initiate_step_up(self._token_provider(), target_action, target_resource)
        except auth.StepUpError as e:
            with self._lock:
                if generation == self._generation:
                    self._state = "error"
                    self._error_message = str(e) or auth.STEP_UP_INITIATE_FALLBACK
            log.warning(f"❌ Step-up initiation failed: {e}")
            self._notify("error", str(e) or auth.STEP_UP_INITIATE_FALLBACK)
            return self._state

        with self._lock:
            if generation != self._generation:
                # dismissed or superseded while the request was in flight
                return self._state
            self._transaction = txn
            self._state = "pending_approval"
            self._timeout_handle = self._scheduler.call_later(
                txn.expires_in_sec, partial(self._on_timeout, generation)
            )
            self._poll_handle = self._scheduler.call_later(
                self._poll_interval, partial(self._poll, generation)
            )

        log.info(f"Step-up {txn.txn_id} pending approval (expires in {txn.expires_in_sec:g}s)")
        self._notify("info", "Push notification sent! Please check your mobile device to approve this request.")
        return "pending_approval"

    def retry(self) -> StepUpState:
        """Restart after a timeout or error, keeping the target and the deferred operation."""
        with self._lock:
            action, resource = self._target
            deferred = self._deferred
        return self.start(action, resource, on_success=deferred)

    def dismiss(self):
        """The surrounding flow was closed: stop everything and forget the transaction."""
        with self._lock:
            self._cancel_timers()
            self._generation += 1
            previous = self._state
            self._state = "idle"
            self._transaction = None
            self._error_message = None
            self._deferred = None
        if previous != "idle":
            log.info(f"Step-up flow dismissed from state {previous}")

    reset = dismiss

    def _current(self, generation: int) -> bool:
        return generation == self._generation and self._state == "pending_approval"

    def _cancel_timers(self):
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None

    def _on_timeout(self, generation: int):
        with self._lock:
            if not self._current(generation):
                return
            self._cancel_timers()
            self._state = "timed_out"
        log.info("⚠️ Step-up request timed out.")
        self._notify("warning", "Authorization request timed out.")

    def _poll(self, generation: int):
        with self._lock:
            if not self._current(generation):
                return
            self._poll_handle = None

        grant = None
        try:
            grant = self._gateway.redeem_step_up(self._token_provider())
        except auth.StepUpPendingError:
            log.debug("Polling for elevated credential...")

        with self._lock:
            if not self._current(generation):
                if grant is not None:
                    log.info("Discarding elevated credential that arrived after the flow ended.")
                return
            if grant is None:
                self._poll_handle = self._scheduler.call_later(
                    self._poll_interval, partial(self._poll, generation)
                )
                return
            self._cancel_timers()
            self._on_granted(grant)
            self._state = "approved"
            callback = self._deferred
            self._deferred = None
            self._deferred_running = callback is not None

        log.info("✅ Step-up approved.")
        self._notify("success", "Authorization successful!")
        if callback is not None:
            try:
                callback()
            finally:
                with self._lock:
                    self._deferred_running = False
