"""
Pure transition functions for the client session.

Each function takes the current `ClinicSession` and returns the next one.
Nothing here performs I/O; `auth_flow.SessionController` sequences the
network calls and feeds their outcomes through these functions.

    logged_out --login accepted--> otp_required --code verified--> logged_in
        ^                              |                               |
        +------- logout / identity rejected ---------------------------+
"""

from dataclasses import replace
from typing import Optional

from use_cases.session_models import ClinicSession, ElevatedCredential, UserIdentity


def restored(persisted_token: Optional[str], epoch: int = 0) -> ClinicSession:
    """Initial stage at process start: optimistic logged_in when a credential survived."""
    if not persisted_token:
        return ClinicSession(epoch=epoch)
    return ClinicSession(
        stage="logged_in",
        long_lived_token=persisted_token,
        identity_pending=True,
        epoch=epoch + 1,
        loading="pending",
    )


def attempt_started(session: ClinicSession) -> ClinicSession:
    return replace(session, loading="pending", error=None)


def login_accepted(session: ClinicSession, temp_token: str) -> ClinicSession:
    if session.stage != "logged_out":
        return session
    return replace(
        session,
        stage="otp_required",
        interim_token=temp_token,
        loading="idle",
        error=None,
    )


def attempt_failed(session: ClinicSession, message: str) -> ClinicSession:
    """Rejected login or code: the stage and its credentials stay as they were."""
    return replace(session, loading="failed", error=message)


def code_verified(session: ClinicSession, access_token: str) -> ClinicSession:
    if session.stage != "otp_required":
        return session
    return replace(
        session,
        stage="logged_in",
        long_lived_token=access_token,
        interim_token=None,
        identity=None,
        identity_pending=True,
        epoch=session.epoch + 1,
        loading="pending",
        error=None,
    )


def identity_loaded(session: ClinicSession, epoch: int, identity: UserIdentity) -> ClinicSession:
    if session.stage != "logged_in" or session.epoch != epoch:
        return session
    return replace(session, identity=identity, identity_pending=False, loading="succeeded")


def identity_rejected(session: ClinicSession, epoch: int, message: str) -> ClinicSession:
    if session.stage != "logged_in" or session.epoch != epoch:
        return session
    return ClinicSession(epoch=session.epoch, loading="failed", error=message)


def elevation_granted(session: ClinicSession, token: str, expires_at: float) -> ClinicSession:
    if session.stage != "logged_in":
        return session
    return replace(session, elevated=ElevatedCredential(token=token, expires_at=expires_at))


def logged_out(session: ClinicSession) -> ClinicSession:
    return ClinicSession(epoch=session.epoch)
