from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class HealthRecord:
    """DTO for a single health record as served by the clinic API."""
    id: int
    patient_id: int
    doctor_id: int
    record_date: str
    diagnosis: str
    treatment: str
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "HealthRecord":
        return cls(
            id=data["id"],
            patient_id=data["patient_id"],
            doctor_id=data["doctor_id"],
            record_date=data["record_date"],
            diagnosis=data["diagnosis"],
            treatment=data["treatment"],
            notes=data.get("notes"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    def to_update_payload(self) -> Dict[str, Any]:
        """Body for the update call: everything except the id."""
        payload = asdict(self)
        payload.pop("id")
        return payload


@dataclass(frozen=True)
class HealthRecordPage:
    records: List[HealthRecord] = field(default_factory=list)
    count: int = 0
    page: int = 1
