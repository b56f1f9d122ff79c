"""Authorization gate for sensitive operations, plus advisory role checks."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from use_cases.session_models import ClinicSession, UserIdentity

log = logging.getLogger(__name__)

GateStatus = Literal["EXECUTED", "DEFERRED"]
RouteDecision = Literal["ALLOW", "WAIT", "LOGIN", "DENY"]

RECORD_WRITER_ROLE = "doctor"


@dataclass(frozen=True)
class GateResult:
    status: GateStatus
    reason: str


def is_elevated(session: ClinicSession, now: Optional[float] = None) -> bool:
    if session.elevated is None:
        return False
    if now is None:
        now = time.time()
    return session.elevated.is_valid(now)


def has_role(identity: Optional[UserIdentity], required_role: str) -> bool:
    """Advisory, UI-only check from the cached identity. The server decides for real."""
    return identity is not None and identity.role_name == required_role


def require_elevation(controller, operation: Optional[Callable[[], None]] = None, reload: Optional[Callable[[], None]] = None) -> GateResult:
    """
    Runs `operation` now if the session holds a valid elevated credential.
    Otherwise starts step-up and defers it; with no operation, a successful
    step-up triggers `reload` so the protected view fetches fresh data.
    """
    if is_elevated(controller.session, controller.now()):
        if operation is not None:
            operation()
        elif reload is not None:
            reload()
        return GateResult(status="EXECUTED", reason="elevated")

    log.info("Sensitive operation deferred until step-up approval.")
    controller.step_up.start(on_success=operation or reload)
    return GateResult(status="DEFERRED", reason="step_up_required")


def private_route(session: ClinicSession) -> RouteDecision:
    if session.stage != "logged_in":
        return "LOGIN"
    if session.identity is None and session.identity_pending:
        return "WAIT"
    return "ALLOW"


def admin_route(session: ClinicSession) -> RouteDecision:
    if session.identity is None:
        return "WAIT" if session.stage == "logged_in" else "LOGIN"
    return "ALLOW" if session.identity.role_name == "admin" else "DENY"

