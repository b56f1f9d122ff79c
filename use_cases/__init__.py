"""Application layer contracts for orchestrating high-level flows."""

from .access_gate import (
    RECORD_WRITER_ROLE,
    GateResult,
    admin_route,
    has_role,
    is_elevated,
    private_route,
    require_elevation,
)
from .auth_flow import AuthFlowResult, AuthFlowStatus, SessionController, ensure_authenticated_session
from .bootstrap import StartupResult, StartupStatus, run_startup
from .credential_store import CredentialStore
from .session_models import (
    AuthStage,
    ClinicSession,
    ElevatedCredential,
    StepUpGrant,
    StepUpTransaction,
    UserIdentity,
    is_admin,
    is_consistent,
    is_doctor,
)
from .step_up import StepUpCoordinator, StepUpState

__all__ = [
    "AuthFlowResult",
    "AuthFlowStatus",
    "AuthStage",
    "ClinicSession",
    "CredentialStore",
    "ElevatedCredential",
    "GateResult",
    "RECORD_WRITER_ROLE",
    "SessionController",
    "StartupResult",
    "StartupStatus",
    "StepUpCoordinator",
    "StepUpGrant",
    "StepUpState",
    "StepUpTransaction",
    "UserIdentity",
    "admin_route",
    "ensure_authenticated_session",
    "has_role",
    "is_admin",
    "is_consistent",
    "is_doctor",
    "is_elevated",
    "private_route",
    "require_elevation",
    "run_startup",
]
