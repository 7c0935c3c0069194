"""
Person model: one record per NRIC, role capabilities as tags.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from btoengine.core.errors import ValidationError
from btoengine.domain.enums import FlatType, MaritalStatus, Role
from btoengine.domain.validation import validate_nric


@dataclass
class Person:
    """A user of the system. Applicant, officer and manager are roles, not subclasses."""

    nric: str
    name: str
    age: int
    marital_status: MaritalStatus
    roles: Set[Role] = field(default_factory=lambda: {Role.APPLICANT})
    password: str = ""

    # Derived from applications/registrations; never persisted with the person.
    active_application_id: Optional[str] = None
    booked_project: Optional[str] = None
    booked_flat_type: Optional[FlatType] = None
    handling_projects: Set[str] = field(default_factory=set)

    def __post_init__(self):
        validate_nric(self.nric)
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError(message="Person name cannot be empty", context={"id": self.nric, "field": "name"})
        try:
            self.age = int(self.age)
        except (TypeError, ValueError):
            raise ValidationError(
                message=f"Age is not an integer: {self.age!r}",
                context={"id": self.nric, "field": "age"},
            ) from None
        if self.age < 0:
            raise ValidationError(message="Age cannot be negative", context={"id": self.nric, "field": "age"})
        self.marital_status = MaritalStatus.parse(self.marital_status, field="marital_status")
        self.roles = {Role.parse(r, field="roles") for r in self.roles}

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    @property
    def is_officer(self) -> bool:
        return Role.OFFICER in self.roles

    @property
    def is_manager(self) -> bool:
        return Role.MANAGER in self.roles

    def handles(self, project_name: str) -> bool:
        return self.is_officer and project_name in self.handling_projects

    @property
    def has_booking(self) -> bool:
        return self.booked_project is not None

    def set_booking(self, project_name: str, flat_type: FlatType) -> None:
        self.booked_project = project_name
        self.booked_flat_type = flat_type

    def clear_booking(self) -> None:
        self.booked_project = None
        self.booked_flat_type = None

    def clear_derived(self) -> None:
        self.active_application_id = None
        self.clear_booking()
        self.handling_projects = set()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nric": self.nric,
            "name": self.name,
            "age": self.age,
            "marital_status": self.marital_status.value,
            "roles": sorted(r.value for r in self.roles),
            "password": self.password,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Person":
        return cls(
            nric=data.get("nric", ""),
            name=data.get("name", ""),
            age=data.get("age", 0),
            marital_status=data.get("marital_status", ""),
            roles=set(data.get("roles") or [Role.APPLICANT]),
            password=data.get("password", ""),
        )
