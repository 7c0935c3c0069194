from __future__ import annotations

import logging
from typing import List, Optional

from btoengine.application.lifecycle.base import LifecycleService
from btoengine.core.errors import (
    AuthorizationError,
    BTOError,
    EligibilityError,
    Result,
    StateError,
    ValidationError,
)
from btoengine.domain.enquiry import Enquiry
from btoengine.domain.ids import new_enquiry_id
from btoengine.domain.person import Person
from btoengine.domain.project import Project
from btoengine.domain.validation import require_text

logger = logging.getLogger(__name__)


class EnquiryThread(LifecycleService):
    """Enquiries are editable by their creator until the first reply closes them."""

    def create(self, user: Person, project: Project, content: str) -> Result[Enquiry, BTOError]:
        try:
            message = require_text(content, field="message", entity_id=project.name)
        except ValidationError as e:
            return self._fail("create enquiry", e)
        if not project.visible and not self.repository.has_any_application(user.nric, project.name):
            return self._fail("create enquiry", EligibilityError(
                message=f"{project.name} is not open for enquiries",
                context={"id": user.nric, "project": project.name, "field": "visible"},
            ))

        now = self._now()
        enquiry = Enquiry(
            enquiry_id=new_enquiry_id(now.date()),
            creator_nric=user.nric,
            project_name=project.name,
            message=message,
            created_at=now,
        )
        self.repository.add_enquiry(enquiry)
        logger.info("Enquiry %s created by %s on %s", enquiry.enquiry_id, user.nric, project.name)
        self._commit()
        return Result.ok(enquiry)

    def edit(self, enquiry: Enquiry, user: Person, content: str) -> Result[Enquiry, BTOError]:
        denied = self._creator_only(enquiry, user)
        if denied is not None:
            return self._fail("edit enquiry", denied)
        if enquiry.is_answered:
            return self._fail("edit enquiry", StateError(
                message="Answered enquiries cannot be edited",
                context={"id": enquiry.enquiry_id, "field": "reply"},
            ))
        try:
            enquiry.message = require_text(content, field="message", entity_id=enquiry.enquiry_id)
        except ValidationError as e:
            return self._fail("edit enquiry", e)

        logger.info("Enquiry %s edited", enquiry.enquiry_id)
        self._commit()
        return Result.ok(enquiry)

    def delete(self, enquiry: Enquiry, user: Person) -> Result[Enquiry, BTOError]:
        denied = self._creator_only(enquiry, user)
        if denied is not None:
            return self._fail("delete enquiry", denied)

        self.repository.remove_enquiry(enquiry.enquiry_id)
        logger.info("Enquiry %s deleted by %s", enquiry.enquiry_id, user.nric)
        self._commit()
        return Result.ok(enquiry)

    def reply(self, enquiry: Enquiry, user: Person, content: str) -> Result[Enquiry, BTOError]:
        project = self._project_of(enquiry.project_name)
        if not (user.handles(project.name) or self._owns(user, project) is None):
            return self._fail("reply enquiry", AuthorizationError(
                message=f"{user.nric} neither handles nor manages {project.name}",
                context={"id": enquiry.enquiry_id, "field": "replier_nric", "project": project.name},
            ))
        if enquiry.is_answered:
            return self._fail("reply enquiry", StateError(
                message="Enquiry has already been answered",
                context={"id": enquiry.enquiry_id, "field": "reply"},
            ))
        try:
            reply = require_text(content, field="reply", entity_id=enquiry.enquiry_id)
        except ValidationError as e:
            return self._fail("reply enquiry", e)

        enquiry.reply = reply
        enquiry.replier_nric = user.nric
        enquiry.replied_at = self._now()
        logger.info("Enquiry %s answered by %s", enquiry.enquiry_id, user.nric)
        self._commit()
        return Result.ok(enquiry)

    @staticmethod
    def _creator_only(enquiry: Enquiry, user: Person) -> Optional[AuthorizationError]:
        if enquiry.creator_nric == user.nric:
            return None
        return AuthorizationError(
            message="Only the creator may change an enquiry",
            context={"id": enquiry.enquiry_id, "field": "creator_nric"},
        )

    # ---- queries ----

    def for_project(self, project: Project) -> List[Enquiry]:
        return self.repository.enquiries_for_project(project.name)

    def for_user(self, user: Person) -> List[Enquiry]:
        return self.repository.enquiries_by(user.nric)

    def unanswered(self, project: Project) -> List[Enquiry]:
        return [e for e in self.for_project(project) if not e.is_answered]
