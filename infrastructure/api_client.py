import logging
from typing import Any, Dict, Optional

import requests

log = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."


class ApiError(Exception):
    """A failed API call, already reduced to one human-readable message."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def normalize_error_payload(data: Any, fallback: Optional[str] = None) -> str:
    """
    Turns an error body from the clinic API into a single string.
    Handles FastAPI validation lists, plain `detail` strings and `message` fields.
    """
    if isinstance(data, dict):
        detail = data.get("detail")
        if isinstance(detail, list):
            parts = []
            for item in detail:
                if isinstance(item, dict):
                    loc = ".".join(str(p) for p in item.get("loc", []))
                    parts.append(f"{loc} - {item.get('msg', '')}")
                else:
                    parts.append(str(item))
            if parts:
                return "; ".join(parts)
        if isinstance(detail, str):
            return detail
        if isinstance(data.get("message"), str):
            return data["message"]
    return fallback or UNKNOWN_ERROR_MESSAGE


class ClinicApiClient:
    def __init__(self, base_url: str, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        third_token: Optional[str] = None,
        **kwargs,
    ) -> Any:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if third_token:
            headers["X-Third-Token"] = third_token

        url = f"{self.base_url}{path}"
        try:
            resp = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.warning(f"⚠️ Network error on {method} {path}: {e}")
            raise ApiError(str(e) or UNKNOWN_ERROR_MESSAGE) from e

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = None
            message = normalize_error_payload(body, fallback=f"HTTP {resp.status_code}")
            log.info(f"{method} {path} -> {resp.status_code}")
            raise ApiError(message, status_code=resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(f"Malformed response from {path}", status_code=resp.status_code) from e

    # --- auth ---

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/login/access-token",
            data={"username": email, "password": password},
        )

    def verify_otp(self, temp_token: str, code: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/login/access-token/verify-otp",
            token=temp_token,
            json={"code": code, "type": "totp"},
        )

    def current_user(self, token: str) -> Dict[str, Any]:
        return self._request("GET", "/users/me", token=token)

    # --- step-up ---

    def initiate_step_up(self, token: str, target_action: str, target_resource: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/third-factor/step-up-auth",
            token=token,
            json={"target_action": target_action, "target_resource": target_resource},
        )

    def redeem_step_up(self, token: str) -> Dict[str, Any]:
        return self._request("GET", "/third-factor/third-token", token=token)

    # --- health records ---

    def list_health_records(self, token: str, third_token: str, skip: int, limit: int) -> Dict[str, Any]:
        return self._request(
            "GET",
            "/health-records/list",
            token=token,
            third_token=third_token,
            params={"skip": skip, "limit": limit},
        )

    def create_health_record(self, token: str, third_token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/health-records/create", token=token, third_token=third_token, json=payload)

    def update_health_record(
        self, token: str, third_token: str, record_id: int, payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        return self._request(
            "PUT",
            "/health-records/update",
            token=token,
            third_token=third_token,
            params={"record_id": record_id},
            json=payload,
        )

    def delete_health_record(self, token: str, third_token: str, record_id: int) -> None:
        self._request(
            "DELETE",
            "/health-records/delete",
            token=token,
            third_token=third_token,
            params={"record_id": record_id},
        )
