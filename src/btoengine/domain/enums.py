from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Type, TypeVar

from btoengine.core.errors import ValidationError

EnumT = TypeVar("EnumT", bound="DisplayEnum")


class DisplayEnum(str, Enum):
    """String enum stored by its display value; parsing accepts value or member name."""

    @classmethod
    def parse(cls: Type[EnumT], raw: object, *, field: str = "") -> EnumT:
        if isinstance(raw, cls):
            return raw
        text = str(raw or "").strip()
        folded = text.casefold().replace(" ", "_")
        for member in cls:
            if folded in (member.value.casefold(), member.name.casefold()):
                return member
        raise ValidationError(
            message=f"Unknown {cls.__name__} value: {text!r}",
            context={"field": field or cls.__name__, "value": text},
        )

    def __str__(self) -> str:
        return self.value


class MaritalStatus(DisplayEnum):
    SINGLE = "Single"
    MARRIED = "Married"


class Role(DisplayEnum):
    APPLICANT = "Applicant"
    OFFICER = "Officer"
    MANAGER = "Manager"


class FlatType(DisplayEnum):
    TWO_ROOM = "2-Room"
    THREE_ROOM = "3-Room"
    FOUR_ROOM = "4-Room"
    FIVE_ROOM = "5-Room"
    EXECUTIVE = "Executive"


class ApplicationStatus(DisplayEnum):
    PENDING = "Pending"
    SUCCESSFUL = "Successful"
    UNSUCCESSFUL = "Unsuccessful"
    BOOKED = "Booked"
    WITHDRAWN = "Withdrawn"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_APPLICATION_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in (ApplicationStatus.UNSUCCESSFUL, ApplicationStatus.WITHDRAWN)


class RegistrationStatus(DisplayEnum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class EnquiryStatus(DisplayEnum):
    UNANSWERED = "Unanswered"
    ANSWERED = "Answered"


ACTIVE_APPLICATION_STATUSES: FrozenSet[ApplicationStatus] = frozenset(
    {ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL}
)

# Statuses that keep the applicant's active-application binding.
BINDING_APPLICATION_STATUSES: FrozenSet[ApplicationStatus] = frozenset(
    {ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL, ApplicationStatus.BOOKED}
)

WITHDRAWABLE_APPLICATION_STATUSES = BINDING_APPLICATION_STATUSES
