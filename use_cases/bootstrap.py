"""Startup orchestration: credential store, controller and session restore."""

from dataclasses import dataclass
from typing import Literal, Optional, Tuple

import auth
from use_cases.auth_flow import SessionController
from use_cases.credential_store import CredentialStore
from use_cases.session_models import AuthStage
from use_cases.step_up import DEFAULT_POLL_INTERVAL
from utils import session_manager

StartupStatus = Literal["CONTINUE", "STOP"]


@dataclass(frozen=True)
class StartupResult:
    """Result contract for startup/bootstrap orchestration."""

    status: StartupStatus
    planned_steps: Tuple[str, ...]
    stage: Optional[AuthStage] = None


def build_controller(scheduler=None) -> SessionController:
    notices = session_manager.get_notices()
    return SessionController(
        CredentialStore(auth.get_credential_repo()),
        gateway=auth,
        scheduler=scheduler,
        poll_interval=float(auth.get_setting("STEP_UP_POLL_SECONDS", DEFAULT_POLL_INTERVAL)),
        notify=lambda level, message: notices.append((level, message)),
    )


def run_startup(controller: Optional[SessionController] = None) -> StartupResult:
    """Build the session controller once per browser session and restore its stage."""
    executed_steps = []

    session_manager.init_session_state()
    executed_steps.append("init_session_state")

    if session_manager.st.session_state.startup_done:
        current = session_manager.get_controller()
        return StartupResult(
            status="CONTINUE",
            planned_steps=tuple(executed_steps),
            stage=current.session.stage if current is not None else None,
        )

    if controller is None:
        controller = build_controller()
        executed_steps.append("build_controller")

    # Schema must exist before the persisted credential is read.
    controller.store.open()
    executed_steps.append("open_credential_store")

    session = controller.restore()
    executed_steps.append("restore_session")
    if session.identity is not None:
        executed_steps.append("identity_refreshed")

    session_manager.st.session_state.controller = controller
    session_manager.st.session_state.startup_done = True
    return StartupResult(status="CONTINUE", planned_steps=tuple(executed_steps), stage=session.stage)
