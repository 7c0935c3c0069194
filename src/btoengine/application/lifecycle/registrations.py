"""
Officer registration lifecycle.

    PENDING --approve--> APPROVED
       |                    |
     reject/withdraw     withdraw
       v                    v
    REJECTED <--------------+

Approval consumes one officer slot; withdrawing an approved registration
returns it.
"""

from __future__ import annotations

import logging
from typing import List

from btoengine.application.lifecycle.base import LifecycleService
from btoengine.core.errors import (
    AuthorizationError,
    BTOError,
    ConflictError,
    EligibilityError,
    Result,
    StateError,
)
from btoengine.domain.eligibility import can_register_as_officer, find_overlap
from btoengine.domain.enums import RegistrationStatus
from btoengine.domain.ids import new_registration_id
from btoengine.domain.person import Person
from btoengine.domain.project import Project
from btoengine.domain.registration import Registration

logger = logging.getLogger(__name__)


def _not_pending(registration: Registration, operation: str) -> StateError:
    return StateError(
        message=f"Cannot {operation} a registration that is {registration.status.value}",
        context={"id": registration.registration_id, "field": "status", "status": registration.status.value},
    )


class RegistrationLifecycle(LifecycleService):
    def create(self, officer: Person, project: Project) -> Result[Registration, BTOError]:
        repo = self.repository
        verdict = can_register_as_officer(
            officer,
            project,
            has_application=repo.has_any_application(officer.nric, project.name),
            has_open_registration=repo.open_registration(officer.nric, project.name) is not None,
            handled_windows=repo.handled_windows(officer),
        )
        if not verdict.is_ok():
            return self._fail("create registration", verdict.error)

        registration = Registration(
            registration_id=new_registration_id(self._today()),
            officer_nric=officer.nric,
            project_name=project.name,
            registration_date=self._today(),
        )
        repo.add_registration(registration)
        logger.info("Registration %s created by %s for %s", registration.registration_id, officer.nric, project.name)
        self._commit()
        return Result.ok(registration)

    def approve(self, registration: Registration, manager: Person) -> Result[Registration, BTOError]:
        project = self._project_of(registration.project_name)
        denied = self._owns(manager, project)
        if denied is not None:
            return self._fail("approve registration", denied)
        if registration.status != RegistrationStatus.PENDING:
            return self._fail("approve registration", _not_pending(registration, "approve"))
        if project.available_officer_slots <= 0:
            return self._fail("approve registration", ConflictError(
                message=f"{project.name} has no officer slots left",
                context={"id": registration.registration_id, "field": "officer_slots", "slots": project.officer_slots},
            ))
        officer = self.repository.persons[registration.officer_nric]
        clash = find_overlap(project, self.repository.handled_windows(officer))
        if clash is not None:
            return self._fail("approve registration", ConflictError(
                message=f"{officer.nric} already handles {clash} in an overlapping window",
                context={"id": registration.registration_id, "field": "handling_projects", "overlapping": clash},
            ))
        if self.repository.has_any_application(officer.nric, project.name):
            return self._fail("approve registration", EligibilityError(
                message=f"{officer.nric} has applied for {project.name}",
                context={"id": registration.registration_id, "field": "application"},
            ))

        project.officers.append(officer.nric)
        officer.handling_projects.add(project.name)
        registration.status = RegistrationStatus.APPROVED
        logger.info(
            "Registration %s approved by %s (%d slots left)",
            registration.registration_id, manager.nric, project.available_officer_slots,
        )
        self._commit()
        return Result.ok(registration)

    def reject(self, registration: Registration, manager: Person) -> Result[Registration, BTOError]:
        project = self._project_of(registration.project_name)
        denied = self._owns(manager, project)
        if denied is not None:
            return self._fail("reject registration", denied)
        if registration.status != RegistrationStatus.PENDING:
            return self._fail("reject registration", _not_pending(registration, "reject"))

        registration.status = RegistrationStatus.REJECTED
        logger.info("Registration %s rejected by %s", registration.registration_id, manager.nric)
        self._commit()
        return Result.ok(registration)

    def withdraw(self, registration: Registration, actor: Person) -> Result[Registration, BTOError]:
        """Cancel a registration; the officer or the owning manager may do this."""
        project = self._project_of(registration.project_name)
        if actor.nric != registration.officer_nric and self._owns(actor, project) is not None:
            return self._fail("withdraw registration", AuthorizationError(
                message=f"{actor.nric} may not withdraw this registration",
                context={"id": registration.registration_id, "field": "officer_nric"},
            ))
        if not registration.is_open:
            return self._fail("withdraw registration", _not_pending(registration, "withdraw"))

        if registration.status == RegistrationStatus.APPROVED:
            if registration.officer_nric in project.officers:
                project.officers.remove(registration.officer_nric)
            officer = self.repository.persons.get(registration.officer_nric)
            if officer is not None:
                officer.handling_projects.discard(project.name)
        registration.status = RegistrationStatus.REJECTED
        logger.info("Registration %s withdrawn by %s", registration.registration_id, actor.nric)
        self._commit()
        return Result.ok(registration)

    # ---- queries ----

    def for_officer(self, officer: Person) -> List[Registration]:
        return self.repository.registrations_for(officer.nric)

    def for_project(self, project: Project) -> List[Registration]:
        return self.repository.registrations_for_project(project.name)

    def by_status(self, project: Project, status: RegistrationStatus) -> List[Registration]:
        return self.repository.registrations_for_project(project.name, status)
