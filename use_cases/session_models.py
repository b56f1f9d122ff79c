"""Session DTOs shared across application layers."""

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

AuthStage = Literal["logged_out", "otp_required", "logged_in"]
LoadingStatus = Literal["idle", "pending", "succeeded", "failed"]


@dataclass(frozen=True)
class UserIdentity:
    id: int
    full_name: str
    email: str
    is_active: bool
    role_id: Optional[int]
    role_name: str

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "UserIdentity":
        return cls(
            id=int(data["id"]),
            full_name=data.get("full_name") or "",
            email=data.get("email") or "",
            is_active=bool(data.get("is_active", True)),
            role_id=data.get("role_id"),
            role_name=data.get("role_name") or "",
        )


@dataclass(frozen=True)
class ElevatedCredential:
    token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class ClinicSession:
    """
    Snapshot of the client's authentication state.

    `epoch` increases on every entry into logged_in; identity results
    carry the epoch they were requested for.
    """

    stage: AuthStage = "logged_out"
    long_lived_token: Optional[str] = None
    interim_token: Optional[str] = None
    elevated: Optional[ElevatedCredential] = None
    identity: Optional[UserIdentity] = None
    identity_pending: bool = False
    epoch: int = 0
    loading: LoadingStatus = "idle"
    error: Optional[str] = None


def is_admin(identity: Optional[UserIdentity]) -> bool:
    return identity is not None and identity.role_name == "admin"


def is_doctor(identity: Optional[UserIdentity]) -> bool:
    return identity is not None and identity.role_name == "doctor"


def is_consistent(session: ClinicSession) -> bool:
    """Credential ownership rules that must hold after every transition."""
    if session.stage == "logged_in" and not session.long_lived_token:
        return False
    if session.stage != "logged_in" and (session.long_lived_token or session.elevated or session.identity):
        return False
    if session.interim_token and session.stage != "otp_required":
        return False
    return True


@dataclass(frozen=True)
class StepUpTransaction:
    txn_id: str
    challenge: str
    expires_in_sec: float
    message: str = ""

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "StepUpTransaction":
        return cls(
            txn_id=str(data["txn_id"]),
            challenge=str(data.get("challenge") or ""),
            expires_in_sec=float(data["expires_in_sec"]),
            message=data.get("message") or "",
        )


@dataclass(frozen=True)
class StepUpGrant:
    third_token: str
    expires_in_sec: float
    message: str = ""

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "StepUpGrant":
        return cls(
            third_token=data["third_token"],
            expires_in_sec=float(data["expires_in_sec"]),
            message=data.get("message") or "",
        )
