import logging
import os

import streamlit as st

from infrastructure.api_client import ApiError, ClinicApiClient
from infrastructure.repositories.sqlite_credential_repository import SQLiteCredentialRepository

log = logging.getLogger(__name__)


class AuthError(Exception):
    pass

class InvalidCredentialsError(AuthError):
    pass

class ProtocolError(AuthError):
    pass

class IdentityFetchError(AuthError):
    pass

class StepUpError(AuthError):
    pass

class StepUpPendingError(AuthError):
    pass

class ElevationRequiredError(AuthError):
    pass


DEFAULT_API_URL = "http://localhost:8000/api/v1"
DEFAULT_CREDENTIALS_DB = "credentials.db"
TOTP_STAGE = "totp_required"
STEP_UP_INITIATE_FALLBACK = "Failed to initiate authorization."

def get_secret(key):
    try:
        return st.secrets.get(key)
    except FileNotFoundError:
        return None

def get_setting(key, default=None):
    return get_secret(key) or os.getenv(key) or default

_api_client = None

def get_api_client() -> ClinicApiClient:
    global _api_client
    base_url = get_setting("CLINIC_API_URL", DEFAULT_API_URL)
    if _api_client is None or _api_client.base_url != base_url.rstrip("/"):
        timeout = float(get_setting("API_TIMEOUT_SECONDS", 10))
        _api_client = ClinicApiClient(base_url, timeout=timeout)
    return _api_client

_credential_repo = None

def get_credential_repo() -> SQLiteCredentialRepository:
    global _credential_repo
    db_path = get_setting("CREDENTIALS_DB", DEFAULT_CREDENTIALS_DB)
    if _credential_repo is None or _credential_repo.db_path != db_path:
        _credential_repo = SQLiteCredentialRepository(db_path)
    return _credential_repo

def authenticate_user(email, password):
    """Password step. Returns the interim token for the second factor."""
    try:
        payload = get_api_client().login(email.strip(), password)
    except ApiError as e:
        raise InvalidCredentialsError(str(e)) from e

    # The backend always demands a second factor; anything else is unexpected.
    if not isinstance(payload, dict) or payload.get("stage") != TOTP_STAGE or not payload.get("temp_token"):
        log.warning(f"Unexpected login stage: {payload.get('stage') if isinstance(payload, dict) else payload!r}")
        raise ProtocolError("Unknown login stage received.")
    return payload["temp_token"]

def verify_code(temp_token, code):
    """Second factor. Exchanges the interim token and code for the long-lived token."""
    try:
        payload = get_api_client().verify_otp(temp_token, code)
    except ApiError as e:
        raise InvalidCredentialsError(str(e)) from e

    access_token = payload.get("access_token") if isinstance(payload, dict) else None
    if not access_token:
        raise ProtocolError("Verification response did not include an access token.")
    return access_token

def fetch_current_user(token):
    from use_cases.session_models import UserIdentity

    try:
        payload = get_api_client().current_user(token)
        return UserIdentity.from_payload(payload)
    except ApiError as e:
        raise IdentityFetchError(str(e)) from e
    except (KeyError, TypeError, ValueError) as e:
        raise IdentityFetchError("Malformed user profile received.") from e

def initiate_step_up(token, target_action, target_resource):
    from use_cases.session_models import StepUpTransaction

    try:
        payload = get_api_client().initiate_step_up(token, target_action, target_resource)
        return StepUpTransaction.from_payload(payload)
    except ApiError as e:
        raise StepUpError(str(e) or STEP_UP_INITIATE_FALLBACK) from e
    except (KeyError, TypeError, ValueError) as e:
        raise StepUpError(STEP_UP_INITIATE_FALLBACK) from e

def redeem_step_up(token):
    """Raises StepUpPendingError until the out-of-band request is approved."""
    from use_cases.session_models import StepUpGrant

    try:
        payload = get_api_client().redeem_step_up(token)
        return StepUpGrant.from_payload(payload)
    except ApiError as e:
        raise StepUpPendingError(str(e)) from e
    except (KeyError, TypeError, ValueError) as e:
        raise StepUpPendingError("Incomplete elevated credential response.") from e
