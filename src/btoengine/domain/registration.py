from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict

from btoengine.core.errors import ValidationError
from btoengine.domain.enums import RegistrationStatus
from btoengine.domain.validation import parse_date, validate_nric


@dataclass
class Registration:
    """An officer's request to administer a project."""

    registration_id: str
    officer_nric: str
    project_name: str
    registration_date: date
    status: RegistrationStatus = RegistrationStatus.PENDING

    def __post_init__(self):
        if not (self.registration_id or "").strip():
            raise ValidationError(message="Registration id cannot be empty", context={"field": "registration_id"})
        validate_nric(self.officer_nric, field="officer_nric")
        if not (self.project_name or "").strip():
            raise ValidationError(
                message="Registration project cannot be empty",
                context={"id": self.registration_id, "field": "project_name"},
            )
        self.registration_date = parse_date(self.registration_date, field="registration_date")
        self.status = RegistrationStatus.parse(self.status, field="status")

    @property
    def is_open(self) -> bool:
        # pending or approved
        return self.status != RegistrationStatus.REJECTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "registration_id": self.registration_id,
            "officer_nric": self.officer_nric,
            "project_name": self.project_name,
            "registration_date": self.registration_date.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Registration":
        return cls(
            registration_id=data.get("registration_id", ""),
            officer_nric=data.get("officer_nric", ""),
            project_name=data.get("project_name", ""),
            registration_date=data.get("registration_date", ""),
            status=data.get("status", RegistrationStatus.PENDING),
        )
