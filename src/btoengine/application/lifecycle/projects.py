"""
Project administration for managers: create, edit, visibility, delete,
plus filtering of project listings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from btoengine.application.lifecycle.base import LifecycleService
from btoengine.core.errors import (
    AuthorizationError,
    BTOError,
    ConflictError,
    Result,
    StateError,
    ValidationError,
)
from btoengine.domain.eligibility import eligible_flat_types, windows_overlap
from btoengine.domain.enums import ACTIVE_APPLICATION_STATUSES, ApplicationStatus, FlatType, RegistrationStatus
from btoengine.domain.person import Person
from btoengine.domain.project import FlatOffer, Project
from btoengine.domain.validation import PROJECT_NAME_PATTERN, parse_date, require_text

logger = logging.getLogger(__name__)

# The project file layout holds exactly two flat-type columns.
MAX_FLAT_TYPES = 2
DEFAULT_MAX_OFFICER_SLOTS = 10

# flat type -> (total units, price)
FlatSpec = Mapping[Any, Tuple[int, float]]


class ProjectSortOrder(str, Enum):
    NAME = "name"
    NEIGHBORHOOD = "neighborhood"
    OPENING_DATE = "opening_date"


@dataclass
class ProjectFilter:
    name_contains: Optional[str] = None
    neighborhood_contains: Optional[str] = None
    flat_type: Optional[FlatType] = None
    visible_only: bool = False
    sort_by: ProjectSortOrder = ProjectSortOrder.NAME
    descending: bool = False

    def matches(self, project: Project) -> bool:
        if self.name_contains and self.name_contains.casefold() not in project.name.casefold():
            return False
        if self.neighborhood_contains and self.neighborhood_contains.casefold() not in project.neighborhood.casefold():
            return False
        if self.flat_type is not None and not project.offers(self.flat_type):
            return False
        if self.visible_only and not project.visible:
            return False
        return True

    def sort_key(self, project: Project):
        if self.sort_by == ProjectSortOrder.NEIGHBORHOOD:
            return (project.neighborhood.casefold(), project.name.casefold())
        if self.sort_by == ProjectSortOrder.OPENING_DATE:
            return (project.opening_date, project.name.casefold())
        return project.name.casefold()


def _invalid(message: str, field: str, project_id: Optional[str] = None, **extra) -> ValidationError:
    context: Dict[str, Any] = {"field": field, **extra}
    if project_id:
        context["id"] = project_id
    return ValidationError(message=message, context=context)


class ProjectAdministration(LifecycleService):
    def __init__(self, *args, max_officer_slots: int = DEFAULT_MAX_OFFICER_SLOTS, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_officer_slots = max_officer_slots

    # ---- commands ----

    def create(
        self,
        manager: Person,
        name: str,
        neighborhood: str,
        opening_date: Any,
        closing_date: Any,
        flats: FlatSpec,
        officer_slots: int,
        visible: bool = False,
    ) -> Result[Project, BTOError]:
        if not manager.is_manager:
            return self._fail("create project", AuthorizationError(
                message="Only managers may create projects",
                context={"id": manager.nric, "field": "roles"},
            ))
        try:
            project = self._build(manager, name, neighborhood, opening_date, closing_date, flats, officer_slots, visible)
        except ValidationError as e:
            return self._fail("create project", e)
        if self.repository.find_project(project.name) is not None:
            return self._fail("create project", ConflictError(
                message=f"A project named {project.name} already exists",
                context={"id": project.name, "field": "name"},
            ))
        clash = self._managed_overlap(manager, project.opening_date, project.closing_date)
        if clash is not None:
            return self._fail("create project", clash)

        self.repository.add_project(project)
        logger.info("Project %s created by %s", project.name, manager.nric)
        self._commit()
        return Result.ok(project)

    def edit(
        self,
        project: Project,
        manager: Person,
        *,
        neighborhood: Optional[str] = None,
        opening_date: Any = None,
        closing_date: Any = None,
        officer_slots: Optional[int] = None,
        units: Optional[Mapping[FlatType, int]] = None,
        prices: Optional[Mapping[FlatType, float]] = None,
    ) -> Result[Project, BTOError]:
        """Apply all requested changes or none of them."""
        denied = self._owns(manager, project)
        if denied is not None:
            return self._fail("edit project", denied)
        try:
            new_neighborhood = (
                require_text(neighborhood, field="neighborhood", entity_id=project.name)
                if neighborhood is not None else project.neighborhood
            )
            opening = parse_date(opening_date, field="opening_date") if opening_date is not None else project.opening_date
            closing = parse_date(closing_date, field="closing_date") if closing_date is not None else project.closing_date
            if opening > closing:
                raise _invalid("Closing date precedes opening date", "closing_date", project.name)
            slots = project.officer_slots if officer_slots is None else self._check_slots(officer_slots, project.name)
            if slots < len(project.officers):
                raise _invalid(
                    f"{len(project.officers)} officers are already assigned", "officer_slots", project.name,
                    assigned=len(project.officers),
                )
            for flat_type, total in (units or {}).items():
                offer = self._offered(project, flat_type)
                if int(total) < offer.booked_units:
                    raise _invalid(
                        f"Cannot reduce {flat_type.value} below {offer.booked_units} booked units", "total_units",
                        project.name, flat_type=flat_type.value,
                    )
            for flat_type, price in (prices or {}).items():
                self._offered(project, flat_type)
                if float(price) < 0:
                    raise _invalid("Price cannot be negative", "price", project.name, flat_type=flat_type.value)
        except ValidationError as e:
            return self._fail("edit project", e)
        if (opening, closing) != project.window:
            clash = self._managed_overlap(manager, opening, closing, exclude=project.name)
            if clash is not None:
                return self._fail("edit project", clash)
            clash = self._officer_overlap(project, opening, closing)
            if clash is not None:
                return self._fail("edit project", clash)

        project.neighborhood = new_neighborhood
        project.opening_date, project.closing_date = opening, closing
        project.officer_slots = slots
        for flat_type, total in (units or {}).items():
            self.ledger.resize(project.name, flat_type, int(total))
        for flat_type, price in (prices or {}).items():
            project.flats[flat_type].price = float(price)
        logger.info("Project %s edited by %s", project.name, manager.nric)
        self._commit()
        return Result.ok(project)

    def set_visibility(self, project: Project, manager: Person, visible: bool) -> Result[Project, BTOError]:
        denied = self._owns(manager, project)
        if denied is not None:
            return self._fail("set visibility", denied)
        project.visible = bool(visible)
        logger.info("Project %s visibility set to %s by %s", project.name, project.visible, manager.nric)
        self._commit()
        return Result.ok(project)

    def delete(self, project: Project, manager: Person) -> Result[Project, BTOError]:
        """Delete a project without live applications or approved officers, with its closed records."""
        denied = self._owns(manager, project)
        if denied is not None:
            return self._fail("delete project", denied)
        repo = self.repository
        live = [
            a for a in repo.applications_for_project(project.name)
            if a.status in ACTIVE_APPLICATION_STATUSES or a.status == ApplicationStatus.BOOKED
        ]
        approved = repo.registrations_for_project(project.name, RegistrationStatus.APPROVED)
        if live or approved:
            return self._fail("delete project", StateError(
                message=f"{project.name} still has live applications or approved officers",
                context={"id": project.name, "field": "status", "applications": len(live), "officers": len(approved)},
            ))

        for application in repo.applications_for_project(project.name):
            for request in repo.withdrawals_for(application.application_id):
                del repo.withdrawals[request.request_id]
            del repo.applications[application.application_id]
        for registration in repo.registrations_for_project(project.name):
            del repo.registrations[registration.registration_id]
        for enquiry in repo.enquiries_for_project(project.name):
            repo.remove_enquiry(enquiry.enquiry_id)
        repo.remove_project(project.name)
        logger.info("Project %s deleted by %s", project.name, manager.nric)
        self._commit()
        return Result.ok(project)

    # ---- queries ----

    def all(self) -> List[Project]:
        return sorted(self.repository.projects.values(), key=lambda p: p.name.casefold())

    def managed_by(self, manager: Person) -> List[Project]:
        return [p for p in self.all() if p.manager_nric == manager.nric]

    def filter(self, projects: Iterable[Project], criteria: Optional[ProjectFilter] = None) -> List[Project]:
        criteria = criteria or ProjectFilter()
        return sorted(
            (p for p in projects if criteria.matches(p)),
            key=criteria.sort_key,
            reverse=criteria.descending,
        )

    def visible_to(self, person: Person) -> List[Project]:
        applied = {a.project_name for a in self.repository.applications_for(person.nric)}
        shown = []
        for project in self.all():
            if (
                project.name in applied
                or person.handles(project.name)
                or project.manager_nric == person.nric
                or (project.visible and eligible_flat_types(person, project, self.policy))
            ):
                shown.append(project)
        return shown

    # ---- helpers ----

    def _build(self, manager, name, neighborhood, opening_date, closing_date, flats, officer_slots, visible) -> Project:
        name = (name or "").strip()
        if not PROJECT_NAME_PATTERN.match(name):
            raise _invalid(
                "Project name must be 3-100 letters, digits, spaces or hyphens", "name", name or None,
            )
        neighborhood = require_text(neighborhood, field="neighborhood", entity_id=name)
        opening = parse_date(opening_date, field="opening_date")
        closing = parse_date(closing_date, field="closing_date")
        if opening < self._today():
            raise _invalid("Opening date is in the past", "opening_date", name, opening=opening.isoformat())
        if not flats:
            raise _invalid("A project must offer at least one flat type", "flats", name)
        if len(flats) > MAX_FLAT_TYPES:
            raise _invalid(f"A project offers at most {MAX_FLAT_TYPES} flat types", "flats", name)
        offers: Dict[FlatType, FlatOffer] = {}
        for raw_type, (total, price) in flats.items():
            flat_type = FlatType.parse(raw_type, field="flat_type")
            offers[flat_type] = FlatOffer(total_units=total, available_units=total, price=price)
        if sum(o.total_units for o in offers.values()) < 1:
            raise _invalid("A project must have at least one unit", "total_units", name)
        return Project(
            name=name,
            neighborhood=neighborhood,
            opening_date=opening,
            closing_date=closing,
            flats=offers,
            manager_nric=manager.nric,
            officer_slots=self._check_slots(officer_slots, name),
            visible=bool(visible),
        )

    def _check_slots(self, officer_slots: Any, project_id: str) -> int:
        try:
            slots = int(officer_slots)
        except (TypeError, ValueError):
            raise _invalid(f"Officer slots is not an integer: {officer_slots!r}", "officer_slots", project_id) from None
        if not 0 <= slots <= self.max_officer_slots:
            raise _invalid(
                f"Officer slots must be between 0 and {self.max_officer_slots}", "officer_slots", project_id,
            )
        return slots

    @staticmethod
    def _offered(project: Project, flat_type: FlatType) -> FlatOffer:
        offer = project.offer(flat_type)
        if offer is None:
            raise _invalid(f"{project.name} does not offer {flat_type.value}", "flat_type", project.name)
        return offer

    def _managed_overlap(
        self, manager: Person, opening: date, closing: date, exclude: Optional[str] = None
    ) -> Optional[ConflictError]:
        for other in self.managed_by(manager):
            if other.name != exclude and windows_overlap(opening, closing, other.opening_date, other.closing_date):
                return ConflictError(
                    message=f"{manager.nric} already manages {other.name} in an overlapping window",
                    context={"id": manager.nric, "field": "opening_date", "overlapping": other.name},
                )
        return None

    def _officer_overlap(self, project: Project, opening: date, closing: date) -> Optional[ConflictError]:
        """An assigned officer must not end up handling two projects with overlapping windows."""
        for nric in project.officers:
            officer = self.repository.person(nric)
            if officer is None:
                continue
            for name, other_opening, other_closing in self.repository.handled_windows(officer):
                if name != project.name and windows_overlap(opening, closing, other_opening, other_closing):
                    return ConflictError(
                        message=f"Officer {nric} also handles {name} in an overlapping window",
                        context={"id": project.name, "field": "opening_date", "officer": nric, "overlapping": name},
                    )
        return None
