"""
Application lifecycle.

    PENDING --approve--> SUCCESSFUL --book_flat--> BOOKED
       |                    |                        |
     reject              withdraw                 withdraw
       v                    v                        v
    UNSUCCESSFUL         WITHDRAWN  <----------------+

PENDING, SUCCESSFUL and BOOKED applications hold the applicant's
active-application binding; UNSUCCESSFUL and WITHDRAWN release it.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from btoengine.application.lifecycle.base import LifecycleService
from btoengine.core.errors import (
    AuthorizationError,
    BTOError,
    ConflictError,
    Result,
    StateError,
)
from btoengine.domain.application import Application, WithdrawalRequest
from btoengine.domain.eligibility import can_apply, check_flat_choice
from btoengine.domain.enums import ApplicationStatus, FlatType
from btoengine.domain.ids import new_application_id, new_withdrawal_id
from btoengine.domain.person import Person
from btoengine.domain.project import Project

logger = logging.getLogger(__name__)


def _state_error(application: Application, operation: str, allowed: str) -> StateError:
    return StateError(
        message=f"Cannot {operation} an application that is {application.status.value}",
        context={"id": application.application_id, "field": "status", "status": application.status.value, "allowed": allowed},
    )


class ApplicationLifecycle(LifecycleService):
    def create(
        self, applicant: Person, project: Project, flat_type: Optional[FlatType] = None
    ) -> Result[Application, BTOError]:
        repo = self.repository
        verdict = can_apply(
            applicant,
            project,
            today=self._today(),
            has_active_application=applicant.active_application_id is not None,
            has_pending_registration=repo.has_pending_registration(applicant.nric, project.name),
            policy=self.policy,
        )
        if not verdict.is_ok():
            return self._fail("create application", verdict.error)
        if flat_type is not None:
            problem = check_flat_choice(applicant, project, flat_type, self.policy)
            if problem is not None:
                return self._fail("create application", problem)

        application = Application(
            application_id=new_application_id(self._today()),
            applicant_nric=applicant.nric,
            project_name=project.name,
            flat_type=flat_type,
        )
        repo.add_application(application)
        applicant.active_application_id = application.application_id
        logger.info("Application %s created by %s for %s", application.application_id, applicant.nric, project.name)
        self._commit()
        return Result.ok(application)

    def approve(self, application: Application, manager: Person) -> Result[Application, BTOError]:
        project = self._project_of(application.project_name)
        denied = self._owns(manager, project)
        if denied is not None:
            return self._fail("approve application", denied)
        if application.status != ApplicationStatus.PENDING:
            return self._fail("approve application", _state_error(application, "approve", "Pending"))
        if application.flat_type is not None and self.ledger.available(project.name, application.flat_type) == 0:
            return self._fail("approve application", ConflictError(
                message=f"No {application.flat_type.value} units left in {project.name}",
                context={"id": application.application_id, "field": "flat_type", "flat_type": application.flat_type.value},
            ))

        application.status = ApplicationStatus.SUCCESSFUL
        logger.info("Application %s approved by %s", application.application_id, manager.nric)
        self._commit()
        return Result.ok(application)

    def reject(self, application: Application, manager: Person) -> Result[Application, BTOError]:
        project = self._project_of(application.project_name)
        denied = self._owns(manager, project)
        if denied is not None:
            return self._fail("reject application", denied)
        if application.status != ApplicationStatus.PENDING:
            return self._fail("reject application", _state_error(application, "reject", "Pending"))

        application.status = ApplicationStatus.UNSUCCESSFUL
        self._release(application)
        logger.info("Application %s rejected by %s", application.application_id, manager.nric)
        self._commit()
        return Result.ok(application)

    def book_flat(self, application: Application, officer: Person, flat_type: FlatType) -> Result[Application, BTOError]:
        project = self._project_of(application.project_name)
        if application.status != ApplicationStatus.SUCCESSFUL:
            return self._fail("book flat", _state_error(application, "book a flat for", "Successful"))
        if not officer.handles(project.name):
            return self._fail("book flat", AuthorizationError(
                message=f"{officer.nric} does not handle {project.name}",
                context={"id": officer.nric, "project": project.name, "field": "handling_projects"},
            ))
        if self.repository.pending_withdrawal(application.application_id) is not None:
            return self._fail("book flat", StateError(
                message="Application has a pending withdrawal request",
                context={"id": application.application_id, "field": "withdrawal"},
            ))
        applicant = self.repository.persons[application.applicant_nric]
        problem = check_flat_choice(applicant, project, flat_type, self.policy)
        if problem is not None:
            return self._fail("book flat", problem)
        if self.ledger.available(project.name, flat_type) == 0:
            return self._fail("book flat", ConflictError(
                message=f"No {flat_type.value} units left in {project.name}",
                context={"id": application.application_id, "field": "flat_type", "flat_type": flat_type.value},
            ))

        remaining = self.ledger.decrement(project.name, flat_type)
        application.flat_type = flat_type
        application.status = ApplicationStatus.BOOKED
        applicant.set_booking(project.name, flat_type)
        logger.info(
            "Application %s booked %s in %s by %s (%d left)",
            application.application_id, flat_type.value, project.name, officer.nric, remaining,
        )
        self._commit()
        return Result.ok(application)

    def request_withdrawal(self, application: Application, applicant: Person) -> Result[WithdrawalRequest, BTOError]:
        if application.applicant_nric != applicant.nric:
            return self._fail("request withdrawal", AuthorizationError(
                message="Only the applicant may request a withdrawal",
                context={"id": application.application_id, "field": "applicant_nric"},
            ))
        if not application.is_withdrawable:
            return self._fail("request withdrawal", _state_error(application, "withdraw", "Pending, Successful, Booked"))
        if self.repository.pending_withdrawal(application.application_id) is not None:
            return self._fail("request withdrawal", ConflictError(
                message="A withdrawal request is already pending",
                context={"id": application.application_id, "field": "withdrawal"},
            ))

        request = WithdrawalRequest(
            request_id=new_withdrawal_id(self._today()),
            application_id=application.application_id,
            requested_at=self._now(),
        )
        self.repository.add_withdrawal(request)
        logger.info("Withdrawal %s requested for %s", request.request_id, application.application_id)
        self._commit()
        return Result.ok(request)

    def withdraw(self, application: Application, manager: Person, approve: bool) -> Result[WithdrawalRequest, BTOError]:
        """
        Record a manager's decision on withdrawing ``application``.

        A pending request is decided in place; without one, a request is
        created and decided immediately. A refusal is a successful outcome
        whose request carries ``is_approved=False``.
        """
        project = self._project_of(application.project_name)
        denied = self._owns(manager, project)
        if denied is not None:
            return self._fail("withdraw application", denied)
        if not application.is_withdrawable:
            return self._fail("withdraw application", _state_error(application, "withdraw", "Pending, Successful, Booked"))

        now = self._now()
        request = self.repository.pending_withdrawal(application.application_id)
        is_new = request is None
        if is_new:
            request = WithdrawalRequest(
                request_id=new_withdrawal_id(now.date()),
                application_id=application.application_id,
                requested_at=now,
            )

        if approve:
            if application.status == ApplicationStatus.BOOKED:
                self.ledger.increment(project.name, application.flat_type)
            application.status = ApplicationStatus.WITHDRAWN
            self._release(application)
        request.record_decision(approve, manager.nric, now)
        # stored only once the ledger accepted the release
        if is_new:
            self.repository.add_withdrawal(request)
        logger.info(
            "Withdrawal %s for %s %s by %s",
            request.request_id, application.application_id, "approved" if approve else "rejected", manager.nric,
        )
        self._commit()
        return Result.ok(request)

    def _release(self, application: Application) -> None:
        applicant = self.repository.persons.get(application.applicant_nric)
        if applicant is None:
            return
        if applicant.active_application_id == application.application_id:
            applicant.active_application_id = None
        if applicant.booked_project == application.project_name:
            applicant.clear_booking()

    # ---- queries ----

    def for_applicant(self, applicant: Person) -> List[Application]:
        return self.repository.applications_for(applicant.nric)

    def active_for(self, applicant: Person) -> Optional[Application]:
        return self.repository.bound_application(applicant)

    def for_project(self, project: Project) -> List[Application]:
        return self.repository.applications_for_project(project.name)

    def by_status(self, project: Project, status: ApplicationStatus) -> List[Application]:
        return self.repository.applications_for_project(project.name, status)

    def withdrawals_for(self, application: Application) -> List[WithdrawalRequest]:
        return self.repository.withdrawals_for(application.application_id)

    def pending_withdrawals(self, project: Project) -> List[WithdrawalRequest]:
        pending = []
        for application in self.for_project(project):
            request = self.repository.pending_withdrawal(application.application_id)
            if request is not None:
                pending.append(request)
        return sorted(pending, key=lambda r: r.requested_at)
