"""Authentication flow orchestration (application layer)."""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Literal, Optional

import auth
from infrastructure.scheduling import ThreadingScheduler
from use_cases import access_gate, session_machine
from use_cases.credential_store import CredentialStore
from use_cases.session_models import ClinicSession, StepUpGrant
from use_cases.step_up import DEFAULT_POLL_INTERVAL, StepUpCoordinator
from utils import session_manager

log = logging.getLogger(__name__)

AuthFlowStatus = Literal["CONTINUE", "STOP"]

NO_TEMP_TOKEN_MESSAGE = "No temporary token found. Please login again."


@dataclass(frozen=True)
class AuthFlowResult:
    """Result contract for auth flow orchestration."""

    status: AuthFlowStatus
    reason: str
    user_id: Optional[int] = None
    message: Optional[str] = None


class SessionController:
    """
    Owns the process-wide `ClinicSession` and sequences the network calls
    behind each transition. The session object is replaced, never mutated.

    Lock order: this controller never holds its own lock while calling into
    the step-up coordinator, because the coordinator calls back into
    `_grant_elevation` while holding its lock.
    """

    def __init__(
        self,
        store: CredentialStore,
        gateway=auth,
        scheduler=None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        notify: Optional[Callable[[str, str], None]] = None,
    ):
        self.store = store
        self._gateway = gateway
        self._scheduler = scheduler or ThreadingScheduler()
        self._lock = threading.RLock()
        self._session = ClinicSession()
        self.step_up = StepUpCoordinator(
            self._scheduler,
            token_provider=lambda: self._session.long_lived_token,
            on_granted=self._grant_elevation,
            gateway=gateway,
            poll_interval=poll_interval,
            notify=notify,
        )

    @property
    def session(self) -> ClinicSession:
        return self._session

    def now(self) -> float:
        return self._scheduler.now()

    def is_elevated(self) -> bool:
        return access_gate.is_elevated(self._session, self.now())

    def _apply(self, transition, *args) -> ClinicSession:
        with self._lock:
            self._session = transition(self._session, *args)
            return self._session

    def restore(self) -> ClinicSession:
        """Seed the stage from the persisted credential and validate it."""
        token = self.store.load()
        with self._lock:
            self._session = session_machine.restored(token, self._session.epoch)
        if token:
            log.info("Persisted credential found; validating identity.")
            self.refresh_identity()
        return self._session

    def submit_login(self, email: str, password: str) -> AuthFlowResult:
        if self._session.stage != "logged_out":
            return AuthFlowResult(status="STOP", reason="wrong_stage", message="Already signed in.")

        self._apply(session_machine.attempt_started)
        try:
            temp_token = self._gateway.authenticate_user(email, password)
        except (auth.InvalidCredentialsError, auth.ProtocolError) as e:
            self._apply(session_machine.attempt_failed, str(e))
            log.info(f"Login rejected: {e}")
            return AuthFlowResult(status="STOP", reason="login_failed", message=str(e))

        self._apply(session_machine.login_accepted, temp_token)
        log.info("Password accepted; one-time code required.")
        return AuthFlowResult(status="CONTINUE", reason="otp_required")

    def verify_code(self, code: str) -> AuthFlowResult:
        with self._lock:
            interim = self._session.interim_token
            stage = self._session.stage
        if stage != "otp_required" or not interim:
            self._apply(session_machine.attempt_failed, NO_TEMP_TOKEN_MESSAGE)
            return AuthFlowResult(status="STOP", reason="no_interim_token", message=NO_TEMP_TOKEN_MESSAGE)

        self._apply(session_machine.attempt_started)
        try:
            access_token = self._gateway.verify_code(interim, code)
        except (auth.InvalidCredentialsError, auth.ProtocolError) as e:
            self._apply(session_machine.attempt_failed, str(e))
            log.info(f"One-time code rejected: {e}")
            return AuthFlowResult(status="STOP", reason="verify_failed", message=str(e))

        with self._lock:
            if self._session.interim_token != interim:
                # logged out or restarted while the code was being checked
                return AuthFlowResult(status="STOP", reason="superseded")
            self._session = session_machine.code_verified(self._session, access_token)

        self.store.save(access_token)
        log.info("✅ One-time code verified.")
        return self.refresh_identity()

    def refresh_identity(self) -> AuthFlowResult:
        """Fetch the profile for the current long-lived credential; failure logs out."""
        with self._lock:
            session = self._session
        if session.stage != "logged_in":
            return AuthFlowResult(status="STOP", reason="auth_required")

        epoch = session.epoch
        try:
            identity = self._gateway.fetch_current_user(session.long_lived_token)
        except auth.IdentityFetchError as e:
            with self._lock:
                before = self._session
                self._session = session_machine.identity_rejected(before, epoch, str(e))
                invalidated = before is not self._session
            if invalidated:
                self.step_up.reset()
                self.store.erase()
                log.warning(f"⚠️ Identity fetch failed, session invalidated: {e}")
            return AuthFlowResult(status="STOP", reason="identity_rejected", message=str(e))

        current = self._apply(session_machine.identity_loaded, epoch, identity)
        if current.identity is not identity:
            return AuthFlowResult(status="STOP", reason="superseded")
        return AuthFlowResult(status="CONTINUE", reason="authenticated", user_id=identity.id)

    def logout(self):
        self.step_up.reset()
        with self._lock:
            self._session = session_machine.logged_out(self._session)
        self.store.erase()
        log.info("Logged out.")

    def _grant_elevation(self, grant: StepUpGrant):
        expires_at = self.now() + grant.expires_in_sec
        self._apply(session_machine.elevation_granted, grant.third_token, expires_at)


def ensure_authenticated_session() -> AuthFlowResult:
    """Run auth-gate orchestration and return a control-flow status."""
    session_manager.init_session_state()
    controller = session_manager.get_controller()
    if controller is None:
        return AuthFlowResult(status="STOP", reason="auth_required")

    session = controller.session
    decision = access_gate.private_route(session)
    if decision == "LOGIN":
        return AuthFlowResult(status="STOP", reason="auth_required", message=session.error)
    if decision == "WAIT":
        return AuthFlowResult(status="STOP", reason="identity_pending")
    user_id = session.identity.id if session.identity is not None else None
    return AuthFlowResult(status="CONTINUE", reason="authenticated", user_id=user_id)
