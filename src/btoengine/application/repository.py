"""
In-memory repository over a snapshot.

Holds the indexes and cross-entity queries the lifecycles need, and derives
the per-person bindings (active application, booking, handling projects) that
are never stored with the person records.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from btoengine.application.ports.persistence_port import Snapshot
from btoengine.core.errors import ValidationError
from btoengine.domain.application import Application, WithdrawalRequest
from btoengine.domain.eligibility import Window
from btoengine.domain.enquiry import Enquiry
from btoengine.domain.enums import ApplicationStatus, FlatType, RegistrationStatus, Role
from btoengine.domain.person import Person
from btoengine.domain.project import Project
from btoengine.domain.registration import Registration

logger = logging.getLogger(__name__)


def _broken(message: str, **context) -> ValidationError:
    return ValidationError(message=message, context={"source": "snapshot", **context})


class Repository:
    def __init__(self, snapshot: Optional[Snapshot] = None):
        self.snapshot = snapshot if snapshot is not None else Snapshot()

    # ---- collections ----

    @property
    def persons(self) -> Dict[str, Person]:
        return self.snapshot.persons

    @property
    def projects(self) -> Dict[str, Project]:
        return self.snapshot.projects

    @property
    def applications(self) -> Dict[str, Application]:
        return self.snapshot.applications

    @property
    def registrations(self) -> Dict[str, Registration]:
        return self.snapshot.registrations

    @property
    def enquiries(self) -> Dict[str, Enquiry]:
        return self.snapshot.enquiries

    @property
    def withdrawals(self) -> Dict[str, WithdrawalRequest]:
        return self.snapshot.withdrawals

    # ---- lookups ----

    def person(self, nric: str) -> Optional[Person]:
        return self.persons.get(nric)

    def project(self, name: str) -> Optional[Project]:
        return self.projects.get(name)

    def find_project(self, name: str) -> Optional[Project]:
        """Case-insensitive project lookup (names are unique ignoring case)."""
        folded = name.strip().casefold()
        for project in self.projects.values():
            if project.name.casefold() == folded:
                return project
        return None

    def application(self, application_id: str) -> Optional[Application]:
        return self.applications.get(application_id)

    def registration(self, registration_id: str) -> Optional[Registration]:
        return self.registrations.get(registration_id)

    def enquiry(self, enquiry_id: str) -> Optional[Enquiry]:
        return self.enquiries.get(enquiry_id)

    # ---- applications ----

    def applications_for(self, nric: str) -> List[Application]:
        return [a for a in self.applications.values() if a.applicant_nric == nric]

    def applications_for_project(
        self, project_name: str, status: Optional[ApplicationStatus] = None
    ) -> List[Application]:
        return [
            a for a in self.applications.values()
            if a.project_name == project_name and (status is None or a.status == status)
        ]

    def has_any_application(self, nric: str, project_name: str) -> bool:
        return any(a.project_name == project_name for a in self.applications_for(nric))

    def bound_application(self, person: Person) -> Optional[Application]:
        if person.active_application_id is None:
            return None
        return self.applications.get(person.active_application_id)

    def booked_counts(self) -> Dict[Tuple[str, FlatType], int]:
        return dict(Counter(
            (a.project_name, a.flat_type)
            for a in self.applications.values()
            if a.status == ApplicationStatus.BOOKED and a.flat_type is not None
        ))

    # ---- withdrawals ----

    def withdrawals_for(self, application_id: str) -> List[WithdrawalRequest]:
        return [w for w in self.withdrawals.values() if w.application_id == application_id]

    def pending_withdrawal(self, application_id: str) -> Optional[WithdrawalRequest]:
        for request in self.withdrawals_for(application_id):
            if request.is_pending:
                return request
        return None

    # ---- registrations ----

    def registrations_for(self, nric: str) -> List[Registration]:
        return [r for r in self.registrations.values() if r.officer_nric == nric]

    def registrations_for_project(
        self, project_name: str, status: Optional[RegistrationStatus] = None
    ) -> List[Registration]:
        return [
            r for r in self.registrations.values()
            if r.project_name == project_name and (status is None or r.status == status)
        ]

    def open_registration(self, nric: str, project_name: str) -> Optional[Registration]:
        for registration in self.registrations_for(nric):
            if registration.project_name == project_name and registration.is_open:
                return registration
        return None

    def has_pending_registration(self, nric: str, project_name: str) -> bool:
        registration = self.open_registration(nric, project_name)
        return registration is not None and registration.status == RegistrationStatus.PENDING

    def handled_windows(self, person: Person) -> List[Window]:
        windows: List[Window] = []
        for name in sorted(person.handling_projects):
            project = self.projects.get(name)
            if project is not None:
                windows.append((project.name, project.opening_date, project.closing_date))
        return windows

    # ---- enquiries ----

    def enquiries_for_project(self, project_name: str) -> List[Enquiry]:
        return sorted(
            (e for e in self.enquiries.values() if e.project_name == project_name),
            key=lambda e: e.created_at,
        )

    def enquiries_by(self, nric: str) -> List[Enquiry]:
        return sorted((e for e in self.enquiries.values() if e.creator_nric == nric), key=lambda e: e.created_at)

    # ---- mutation of collections ----

    def add_application(self, application: Application) -> None:
        self.applications[application.application_id] = application

    def add_registration(self, registration: Registration) -> None:
        self.registrations[registration.registration_id] = registration

    def add_enquiry(self, enquiry: Enquiry) -> None:
        self.enquiries[enquiry.enquiry_id] = enquiry

    def remove_enquiry(self, enquiry_id: str) -> None:
        self.enquiries.pop(enquiry_id, None)

    def add_withdrawal(self, request: WithdrawalRequest) -> None:
        self.withdrawals[request.request_id] = request

    def add_project(self, project: Project) -> None:
        self.projects[project.name] = project

    def remove_project(self, project_name: str) -> None:
        self.projects.pop(project_name, None)

    # ---- derived state ----

    def rebuild_bindings(self) -> None:
        """
        Recompute every person's derived fields from the stored records and
        reject snapshots that break a cross-entity invariant.
        """
        for person in self.persons.values():
            person.clear_derived()

        for project in self.projects.values():
            manager = self.persons.get(project.manager_nric)
            if manager is None or not manager.is_manager:
                raise _broken(f"Project {project.name} names an unknown manager", id=project.name, field="manager_nric")
            for nric in project.officers:
                officer = self.persons.get(nric)
                if officer is None or not officer.is_officer:
                    raise _broken(f"Project {project.name} lists an unknown officer", id=project.name, field="officers")
                officer.handling_projects.add(project.name)

        for registration in self.registrations.values():
            self._require_refs(registration.registration_id, registration.officer_nric, registration.project_name)
            if registration.status != RegistrationStatus.APPROVED:
                continue
            project = self.projects[registration.project_name]
            if registration.officer_nric not in project.officers:
                if project.available_officer_slots <= 0:
                    raise _broken(
                        f"Approved registration {registration.registration_id} exceeds officer slots",
                        id=registration.registration_id, field="officer_slots",
                    )
                project.officers.append(registration.officer_nric)
                self.persons[registration.officer_nric].handling_projects.add(project.name)

        for application in self.applications.values():
            applicant = self._require_refs(application.application_id, application.applicant_nric, application.project_name)
            if applicant.handles(application.project_name):
                raise _broken(
                    f"Application {application.application_id} is for a project its applicant handles",
                    id=application.application_id, field="project_name",
                )
            if not application.holds_binding:
                continue
            if applicant.active_application_id is not None:
                raise _broken(
                    f"{applicant.nric} holds more than one active application",
                    id=application.application_id, field="status",
                )
            applicant.active_application_id = application.application_id
            if application.status == ApplicationStatus.BOOKED:
                applicant.set_booking(application.project_name, application.flat_type)

        for enquiry in self.enquiries.values():
            self._require_refs(enquiry.enquiry_id, enquiry.creator_nric, enquiry.project_name)

        for request in self.withdrawals.values():
            if request.application_id not in self.applications:
                raise _broken(
                    f"Withdrawal {request.request_id} references unknown application",
                    id=request.request_id, field="application_id",
                )

        logger.debug("Rebuilt bindings for %d persons", len(self.persons))

    def _require_refs(self, record_id: str, nric: str, project_name: str) -> Person:
        person = self.persons.get(nric)
        if person is None:
            raise _broken(f"{record_id} references unknown person {nric}", id=record_id, field="nric")
        if project_name not in self.projects:
            raise _broken(f"{record_id} references unknown project {project_name}", id=record_id, field="project_name")
        return person

    def people_with_role(self, role: Role) -> Iterable[Person]:
        return (p for p in self.persons.values() if p.has_role(role))
