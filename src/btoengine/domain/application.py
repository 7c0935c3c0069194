"""
Application and withdrawal-request records.

Status changes happen only in ``btoengine.application.lifecycle.applications``;
these records validate shape and expose read-only helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from btoengine.core.errors import ValidationError
from btoengine.domain.enums import (
    BINDING_APPLICATION_STATUSES,
    WITHDRAWABLE_APPLICATION_STATUSES,
    ApplicationStatus,
    FlatType,
)
from btoengine.domain.validation import parse_timestamp, validate_nric


@dataclass
class Application:
    application_id: str
    applicant_nric: str
    project_name: str
    flat_type: Optional[FlatType] = None
    status: ApplicationStatus = ApplicationStatus.PENDING

    def __post_init__(self):
        if not (self.application_id or "").strip():
            raise ValidationError(message="Application id cannot be empty", context={"field": "application_id"})
        validate_nric(self.applicant_nric, field="applicant_nric")
        if not (self.project_name or "").strip():
            raise ValidationError(
                message="Application project cannot be empty",
                context={"id": self.application_id, "field": "project_name"},
            )
        if self.flat_type is not None:
            self.flat_type = FlatType.parse(self.flat_type, field="flat_type")
        self.status = ApplicationStatus.parse(self.status, field="status")
        if self.status == ApplicationStatus.BOOKED and self.flat_type is None:
            raise ValidationError(
                message="Booked application has no flat type",
                context={"id": self.application_id, "field": "flat_type"},
            )

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def holds_binding(self) -> bool:
        return self.status in BINDING_APPLICATION_STATUSES

    @property
    def is_withdrawable(self) -> bool:
        return self.status in WITHDRAWABLE_APPLICATION_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "application_id": self.application_id,
            "applicant_nric": self.applicant_nric,
            "project_name": self.project_name,
            "flat_type": self.flat_type.value if self.flat_type else None,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Application":
        return cls(
            application_id=data.get("application_id", ""),
            applicant_nric=data.get("applicant_nric", ""),
            project_name=data.get("project_name", ""),
            flat_type=data.get("flat_type"),
            status=data.get("status", ApplicationStatus.PENDING),
        )


@dataclass
class WithdrawalRequest:
    """Applicant's request to withdraw; a manager records the decision."""

    request_id: str
    application_id: str
    requested_at: datetime
    is_approved: Optional[bool] = None
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None

    def __post_init__(self):
        if not (self.request_id or "").strip():
            raise ValidationError(message="Withdrawal request id cannot be empty", context={"field": "request_id"})
        self.requested_at = parse_timestamp(self.requested_at, field="requested_at")
        if self.processed_at is not None:
            self.processed_at = parse_timestamp(self.processed_at, field="processed_at")
        if (self.is_approved is None) != (self.processed_at is None):
            raise ValidationError(
                message="Decision and processing time must be recorded together",
                context={"id": self.request_id, "field": "processed_at"},
            )

    @property
    def is_pending(self) -> bool:
        return self.is_approved is None

    def record_decision(self, approved: bool, by: str, at: datetime) -> None:
        self.is_approved = approved
        self.processed_by = by
        self.processed_at = at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "application_id": self.application_id,
            "requested_at": self.requested_at.isoformat(),
            "is_approved": self.is_approved,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "processed_by": self.processed_by,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WithdrawalRequest":
        return cls(
            request_id=data.get("request_id", ""),
            application_id=data.get("application_id", ""),
            requested_at=data.get("requested_at", ""),
            is_approved=data.get("is_approved"),
            processed_at=data.get("processed_at"),
            processed_by=data.get("processed_by"),
        )
