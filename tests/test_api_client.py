from unittest.mock import MagicMock, patch

import pytest
import requests

from infrastructure.api_client import ApiError, ClinicApiClient, normalize_error_payload


def _response(status_code, body=None, content=b"{}"):
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = content
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def client():
    return ClinicApiClient("http://clinic.test/api/v1/", timeout=5)


def test_normalize_validation_error_list():
    data = {
        "detail": [
            {"loc": ["body", "code"], "msg": "field required", "type": "value_error.missing"},
            {"loc": ["query", "limit"], "msg": "ensure this value is less than 100"},
        ]
    }
    assert normalize_error_payload(data) == (
        "body.code - field required; query.limit - ensure this value is less than 100"
    )


def test_normalize_detail_string_then_message_then_fallback():
    assert normalize_error_payload({"detail": "Invalid OTP code"}) == "Invalid OTP code"
    assert normalize_error_payload({"message": "Rate limited"}) == "Rate limited"
    assert normalize_error_payload({"unexpected": 1}, fallback="HTTP 500") == "HTTP 500"
    assert normalize_error_payload(None) == "An unknown error occurred."


@patch("infrastructure.api_client.requests.request")
def test_login_posts_form_credentials(mock_request, client):
    mock_request.return_value = _response(200, {"stage": "totp_required", "temp_token": "t"})

    assert client.login("doc@clinic.test", "pw") == {"stage": "totp_required", "temp_token": "t"}

    args, kwargs = mock_request.call_args
    assert args == ("POST", "http://clinic.test/api/v1/login/access-token")
    assert kwargs["data"] == {"username": "doc@clinic.test", "password": "pw"}
    assert kwargs["timeout"] == 5
    assert "Authorization" not in kwargs["headers"]


@patch("infrastructure.api_client.requests.request")
def test_verify_otp_uses_interim_bearer(mock_request, client):
    mock_request.return_value = _response(200, {"access_token": "final"})

    client.verify_otp("temp", "123456")

    _, kwargs = mock_request.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer temp"
    assert kwargs["json"] == {"code": "123456", "type": "totp"}


@patch("infrastructure.api_client.requests.request")
def test_health_records_send_both_credentials(mock_request, client):
    mock_request.return_value = _response(200, {"data": [], "count": 0})

    client.list_health_records("final", "third", skip=20, limit=10)

    args, kwargs = mock_request.call_args
    assert args == ("GET", "http://clinic.test/api/v1/health-records/list")
    assert kwargs["headers"]["Authorization"] == "Bearer final"
    assert kwargs["headers"]["X-Third-Token"] == "third"
    assert kwargs["params"] == {"skip": 20, "limit": 10}


@patch("infrastructure.api_client.requests.request")
def test_delete_returns_none_on_no_content(mock_request, client):
    mock_request.return_value = _response(204, content=b"")

    assert client.delete_health_record("final", "third", 12) is None
    assert mock_request.call_args.kwargs["params"] == {"record_id": 12}


@patch("infrastructure.api_client.requests.request")
def test_error_status_raises_normalized_message(mock_request, client):
    mock_request.return_value = _response(403, {"detail": "Third factor not approved yet"})

    with pytest.raises(ApiError) as excinfo:
        client.redeem_step_up("final")

    assert str(excinfo.value) == "Third factor not approved yet"
    assert excinfo.value.status_code == 403


@patch("infrastructure.api_client.requests.request")
def test_error_without_json_body_uses_status(mock_request, client):
    mock_request.return_value = _response(502, ValueError("no json"), content=b"<html>")

    with pytest.raises(ApiError) as excinfo:
        client.current_user("final")

    assert str(excinfo.value) == "HTTP 502"


@patch("infrastructure.api_client.requests.request")
def test_network_failure_becomes_api_error(mock_request, client):
    mock_request.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(ApiError) as excinfo:
        client.current_user("final")

    assert "connection refused" in str(excinfo.value)
    assert excinfo.value.status_code is None
