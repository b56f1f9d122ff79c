from unittest.mock import MagicMock

from use_cases import access_gate
from use_cases.session_models import ClinicSession, ElevatedCredential, StepUpGrant, UserIdentity


ADMIN = UserIdentity(id=1, full_name="Admin", email="a@clinic.test", is_active=True, role_id=1, role_name="admin")
NURSE = UserIdentity(id=3, full_name="Nurse", email="n@clinic.test", is_active=True, role_id=3, role_name="nurse")
DOCTOR = UserIdentity(id=7, full_name="Gregory House", email="house@clinic.test", is_active=True, role_id=2, role_name="doctor")


def test_is_elevated_boundaries():
    session = ClinicSession(
        stage="logged_in", long_lived_token="t", elevated=ElevatedCredential(token="third", expires_at=100.0)
    )
    assert access_gate.is_elevated(session, 99.9)
    assert not access_gate.is_elevated(session, 100.0)
    assert not access_gate.is_elevated(ClinicSession(), 0.0)


def test_operation_runs_immediately_when_elevated(logged_in, gateway):
    logged_in._grant_elevation(StepUpGrant(third_token="third", expires_in_sec=300))
    operation = MagicMock()

    result = access_gate.require_elevation(logged_in, operation)

    assert result.status == "EXECUTED"
    operation.assert_called_once()
    gateway.initiate_step_up.assert_not_called()


def test_reload_runs_when_elevated_without_operation(logged_in):
    logged_in._grant_elevation(StepUpGrant(third_token="third", expires_in_sec=300))
    reload = MagicMock()

    access_gate.require_elevation(logged_in, reload=reload)

    reload.assert_called_once()


def test_operation_deferred_until_approval(logged_in, gateway, scheduler):
    operation = MagicMock()
    reload = MagicMock()

    result = access_gate.require_elevation(logged_in, operation, reload=reload)

    assert result.status == "DEFERRED"
    assert logged_in.step_up.state == "pending_approval"
    operation.assert_not_called()

    gateway.redeem_step_up.side_effect = None
    gateway.redeem_step_up.return_value = StepUpGrant(third_token="third", expires_in_sec=300)
    scheduler.advance(3)

    operation.assert_called_once()
    reload.assert_not_called()


def test_expired_credential_triggers_step_up(logged_in, scheduler):
    logged_in._grant_elevation(StepUpGrant(third_token="third", expires_in_sec=10))
    scheduler.advance(10)
    operation = MagicMock()

    result = access_gate.require_elevation(logged_in, operation)

    assert result.status == "DEFERRED"
    operation.assert_not_called()


def test_private_route_decisions():
    assert access_gate.private_route(ClinicSession()) == "LOGIN"
    assert access_gate.private_route(ClinicSession(stage="otp_required", interim_token="t")) == "LOGIN"
    pending = ClinicSession(stage="logged_in", long_lived_token="t", identity_pending=True)
    assert access_gate.private_route(pending) == "WAIT"
    ready = ClinicSession(stage="logged_in", long_lived_token="t", identity=DOCTOR)
    assert access_gate.private_route(ready) == "ALLOW"


def test_admin_route_decisions():
    assert access_gate.admin_route(ClinicSession()) == "LOGIN"
    assert access_gate.admin_route(ClinicSession(stage="logged_in", long_lived_token="t")) == "WAIT"
    assert access_gate.admin_route(ClinicSession(stage="logged_in", long_lived_token="t", identity=DOCTOR)) == "DENY"
    assert access_gate.admin_route(ClinicSession(stage="logged_in", long_lived_token="t", identity=ADMIN)) == "ALLOW"


def test_only_doctors_write_records():
    assert access_gate.has_role(DOCTOR, access_gate.RECORD_WRITER_ROLE)
    assert not access_gate.has_role(ADMIN, access_gate.RECORD_WRITER_ROLE)
    assert not access_gate.has_role(NURSE, access_gate.RECORD_WRITER_ROLE)
    assert not access_gate.has_role(None, access_gate.RECORD_WRITER_ROLE)


def test_has_role_is_exact_match():
    assert access_gate.has_role(ADMIN, "admin")
    assert not access_gate.has_role(DOCTOR, "Doctor")
