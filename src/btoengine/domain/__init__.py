"""
Domain layer: entity records, eligibility rules and the inventory ledger.
"""

from .enums import (
    ApplicationStatus,
    EnquiryStatus,
    FlatType,
    MaritalStatus,
    RegistrationStatus,
    Role,
)
from .person import Person
from .project import FlatOffer, Project
from .application import Application, WithdrawalRequest
from .registration import Registration
from .enquiry import Enquiry
from .eligibility import (
    DEFAULT_POLICY,
    EligibilityPolicy,
    can_apply,
    can_register_as_officer,
    eligible_flat_types,
    is_eligible,
    windows_overlap,
)
from .inventory import InventoryLedger

__all__ = [
    "ApplicationStatus",
    "EnquiryStatus",
    "FlatType",
    "MaritalStatus",
    "RegistrationStatus",
    "Role",
    "Person",
    "FlatOffer",
    "Project",
    "Application",
    "WithdrawalRequest",
    "Registration",
    "Enquiry",
    "DEFAULT_POLICY",
    "EligibilityPolicy",
    "can_apply",
    "can_register_as_officer",
    "eligible_flat_types",
    "is_eligible",
    "windows_overlap",
    "InventoryLedger",
]
