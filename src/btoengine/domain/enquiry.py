from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from btoengine.core.errors import ValidationError
from btoengine.domain.enums import EnquiryStatus
from btoengine.domain.validation import parse_timestamp, validate_nric


@dataclass
class Enquiry:
    """A question about a project; answered once, then closed to edits."""

    enquiry_id: str
    creator_nric: str
    project_name: str
    message: str
    created_at: datetime
    reply: Optional[str] = None
    replier_nric: Optional[str] = None
    replied_at: Optional[datetime] = None

    def __post_init__(self):
        if not (self.enquiry_id or "").strip():
            raise ValidationError(message="Enquiry id cannot be empty", context={"field": "enquiry_id"})
        validate_nric(self.creator_nric, field="creator_nric")
        self.created_at = parse_timestamp(self.created_at, field="created_at")
        self.reply = self.reply or None
        self.replier_nric = self.replier_nric or None
        if self.replier_nric is not None:
            validate_nric(self.replier_nric, field="replier_nric")
        if self.replied_at is not None:
            self.replied_at = parse_timestamp(self.replied_at, field="replied_at")
        if (self.reply is None) != (self.replied_at is None):
            raise ValidationError(
                message="Reply and reply time must be recorded together",
                context={"id": self.enquiry_id, "field": "replied_at"},
            )

    @property
    def status(self) -> EnquiryStatus:
        return EnquiryStatus.ANSWERED if self.reply is not None else EnquiryStatus.UNANSWERED

    @property
    def is_answered(self) -> bool:
        return self.status == EnquiryStatus.ANSWERED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enquiry_id": self.enquiry_id,
            "creator_nric": self.creator_nric,
            "project_name": self.project_name,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
            "reply": self.reply,
            "replier_nric": self.replier_nric,
            "replied_at": self.replied_at.isoformat() if self.replied_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Enquiry":
        return cls(
            enquiry_id=data.get("enquiry_id", ""),
            creator_nric=data.get("creator_nric", ""),
            project_name=data.get("project_name", ""),
            message=data.get("message", ""),
            created_at=data.get("created_at", ""),
            reply=data.get("reply"),
            replier_nric=data.get("replier_nric"),
            replied_at=data.get("replied_at"),
        )
