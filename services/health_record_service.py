"""Client for the health records API. Every call needs an elevated session."""

import logging
from typing import Any, Dict

import auth
from infrastructure.api_client import ApiError
from use_cases import access_gate
from use_cases.domain_models import HealthRecord, HealthRecordPage

log = logging.getLogger(__name__)

READ_REQUIRES_ELEVATION = "Temporary authorization required to view records."
WRITE_REQUIRES_ELEVATION = "Temporary authorization required."
MALFORMED_RESPONSE = "Malformed health record response received."


def _credentials(controller, message):
    session = controller.session
    if not access_gate.is_elevated(session, controller.now()):
        raise auth.ElevationRequiredError(message)
    return session.long_lived_token, session.elevated.token


def _parse_record(payload) -> HealthRecord:
    try:
        return HealthRecord.from_payload(payload)
    except (KeyError, TypeError, ValueError) as e:
        log.warning(f"⚠️ Unexpected health record payload: {e!r}")
        raise ApiError(MALFORMED_RESPONSE) from e


def fetch_health_records(controller, page: int = 1, limit: int = 10) -> HealthRecordPage:
    token, third_token = _credentials(controller, READ_REQUIRES_ELEVATION)
    skip = (page - 1) * limit
    payload = auth.get_api_client().list_health_records(token, third_token, skip=skip, limit=limit)
    if not isinstance(payload, dict) or not isinstance(payload.get("data", []), list):
        log.warning(f"⚠️ Unexpected health record list payload: {type(payload).__name__}")
        raise ApiError(MALFORMED_RESPONSE)

    records = [_parse_record(item) for item in payload.get("data", [])]
    try:
        count = int(payload.get("count", len(records)))
    except (TypeError, ValueError) as e:
        raise ApiError(MALFORMED_RESPONSE) from e
    return HealthRecordPage(records=records, count=count, page=page)


def create_health_record(controller, data: Dict[str, Any]) -> HealthRecord:
    token, third_token = _credentials(controller, WRITE_REQUIRES_ELEVATION)
    created = _parse_record(auth.get_api_client().create_health_record(token, third_token, data))
    log.info(f"Health record {created.id} created")
    return created


def update_health_record(controller, record: HealthRecord) -> HealthRecord:
    token, third_token = _credentials(controller, WRITE_REQUIRES_ELEVATION)
    payload = auth.get_api_client().update_health_record(
        token, third_token, record.id, record.to_update_payload()
    )
    log.info(f"Health record {record.id} updated")
    return _parse_record(payload)


def delete_health_record(controller, record_id: int) -> int:
    token, third_token = _credentials(controller, WRITE_REQUIRES_ELEVATION)
    auth.get_api_client().delete_health_record(token, third_token, record_id)
    log.info(f"Health record {record_id} deleted")
    return record_id
