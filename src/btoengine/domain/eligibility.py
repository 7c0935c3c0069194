"""
Eligibility rules.

Everything here is pure: callers pass in the facts (today's date, whether the
person already holds an application, which windows the officer already
handles) and get a verdict back. Nothing is read from or written to storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, Iterable, List, Optional, Tuple

from btoengine.core.errors import (
    AuthorizationError,
    BTOError,
    ConflictError,
    EligibilityError,
    Result,
)
from btoengine.domain.enums import FlatType, MaritalStatus, Role
from btoengine.domain.person import Person
from btoengine.domain.project import Project


@dataclass(frozen=True)
class EligibilityPolicy:
    single_min_age: int = 35
    married_min_age: int = 21
    single_flat_types: FrozenSet[FlatType] = frozenset({FlatType.TWO_ROOM})


DEFAULT_POLICY = EligibilityPolicy()

# (project name, opening, closing)
Window = Tuple[str, date, date]


def windows_overlap(a: date, b: date, c: date, d: date) -> bool:
    """[a, b] and [c, d] overlap unless one ends before the other starts."""
    return not (b < c or a > d)


def is_eligible(person: Person, flat_type: FlatType, policy: EligibilityPolicy = DEFAULT_POLICY) -> bool:
    if person.marital_status == MaritalStatus.SINGLE:
        return person.age >= policy.single_min_age and flat_type in policy.single_flat_types
    return person.age >= policy.married_min_age


def eligible_flat_types(
    person: Person, project: Project, policy: EligibilityPolicy = DEFAULT_POLICY
) -> List[FlatType]:
    return [ft for ft in project.flat_types if is_eligible(person, ft, policy)]


def _context(person: Person, project: Project, field: str, **extra) -> dict:
    return {"id": person.nric, "project": project.name, "field": field, **extra}


def can_apply(
    person: Person,
    project: Project,
    *,
    today: date,
    has_active_application: bool,
    has_pending_registration: bool = False,
    policy: EligibilityPolicy = DEFAULT_POLICY,
) -> Result[List[FlatType], BTOError]:
    """Return the flat types ``person`` may apply for, or why they may not apply."""
    if not (person.has_role(Role.APPLICANT) or person.has_role(Role.OFFICER)):
        return Result.err(AuthorizationError(
            message="Only applicants and officers may apply for flats",
            context=_context(person, project, "roles"),
        ))
    if has_active_application:
        return Result.err(ConflictError(
            message="Applicant already holds an active application",
            context=_context(person, project, "active_application_id", application=person.active_application_id),
        ))
    if project.manager_nric == person.nric:
        return Result.err(EligibilityError(
            message="A manager cannot apply to a project they manage",
            context=_context(person, project, "manager_nric"),
        ))
    if person.handles(project.name) or has_pending_registration:
        return Result.err(EligibilityError(
            message="An officer cannot apply to a project they handle or registered for",
            context=_context(person, project, "handling_projects"),
        ))
    if not project.visible:
        return Result.err(EligibilityError(
            message="Project is not open to applicants",
            context=_context(person, project, "visible"),
        ))
    if not project.is_open(today):
        return Result.err(EligibilityError(
            message="Project is outside its application window",
            context=_context(
                person, project, "opening_date",
                opening=project.opening_date.isoformat(), closing=project.closing_date.isoformat(),
            ),
        ))
    flat_types = eligible_flat_types(person, project, policy)
    if not flat_types:
        return Result.err(EligibilityError(
            message="Project offers no flat type this applicant is eligible for",
            context=_context(
                person, project, "flat_type",
                age=person.age, marital_status=person.marital_status.value,
            ),
        ))
    return Result.ok(flat_types)


def check_flat_choice(
    person: Person, project: Project, flat_type: FlatType, policy: EligibilityPolicy = DEFAULT_POLICY
) -> Optional[EligibilityError]:
    """Explain why ``person`` may not take ``flat_type`` in ``project``; None when allowed."""
    if not project.offers(flat_type):
        return EligibilityError(
            message=f"Project does not offer {flat_type.value}",
            context=_context(person, project, "flat_type", flat_type=flat_type.value),
        )
    if not is_eligible(person, flat_type, policy):
        return EligibilityError(
            message=f"Applicant is not eligible for {flat_type.value}",
            context=_context(
                person, project, "flat_type",
                flat_type=flat_type.value, age=person.age, marital_status=person.marital_status.value,
            ),
        )
    return None


def find_overlap(project: Project, handled: Iterable[Window]) -> Optional[str]:
    for name, opening, closing in handled:
        if name != project.name and windows_overlap(opening, closing, project.opening_date, project.closing_date):
            return name
    return None


def can_register_as_officer(
    officer: Person,
    project: Project,
    *,
    has_application: bool,
    has_open_registration: bool,
    handled_windows: Iterable[Window] = (),
) -> Result[None, BTOError]:
    if not officer.is_officer:
        return Result.err(AuthorizationError(
            message="Only officers may register to handle a project",
            context=_context(officer, project, "roles"),
        ))
    if project.manager_nric == officer.nric:
        return Result.err(EligibilityError(
            message="A manager cannot register as officer for their own project",
            context=_context(officer, project, "manager_nric"),
        ))
    if has_application:
        return Result.err(EligibilityError(
            message="Officer has applied for this project",
            context=_context(officer, project, "application"),
        ))
    if has_open_registration or officer.handles(project.name):
        return Result.err(ConflictError(
            message="Officer already registered for this project",
            context=_context(officer, project, "registration"),
        ))
    clash = find_overlap(project, handled_windows)
    if clash is not None:
        return Result.err(ConflictError(
            message=f"Officer already handles {clash} in an overlapping window",
            context=_context(officer, project, "handling_projects", overlapping=clash),
        ))
    if project.available_officer_slots <= 0:
        return Result.err(ConflictError(
            message="Project has no officer slots left",
            context=_context(officer, project, "officer_slots", slots=project.officer_slots),
        ))
    return Result.ok(None)
