from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from btoengine.application.ports.persistence_port import Snapshot
from btoengine.core.errors import PersistenceError, ValidationError
from btoengine.domain.application import Application, WithdrawalRequest
from btoengine.domain.enquiry import Enquiry
from btoengine.domain.person import Person
from btoengine.domain.project import FlatOffer, Project
from btoengine.domain.registration import Registration
from btoengine.infrastructure.stores.models import (
    ApplicationModel,
    Base,
    EnquiryModel,
    FlatOfferModel,
    PersonModel,
    ProjectModel,
    RegistrationModel,
    WithdrawalRequestModel,
)
from btoengine.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

logger = logging.getLogger(__name__)

# Child tables first.
_TABLES = (
    WithdrawalRequestModel,
    EnquiryModel,
    RegistrationModel,
    ApplicationModel,
    FlatOfferModel,
    ProjectModel,
    PersonModel,
)


class SqlAlchemyPersistenceGateway:
    """
    Relational snapshot store.

    Tables mirror the CSV layouts; ``save`` replaces every row inside one
    transaction, so a failed save leaves the previous snapshot intact.
    """

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        try:
            self._provider = SessionProvider(self.db_url)
            if auto_create_schema:
                Base.metadata.create_all(self._provider.engine)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Cannot open database %s: %s", self.db_url, e)
            raise PersistenceError(message=f"Cannot open database: {e}", context={"db_url": self.db_url}) from e

    def load(self) -> Snapshot:
        try:
            with self._provider.session() as session:
                snapshot = Snapshot()
                for row in session.execute(select(PersonModel)).scalars():
                    person = Person(
                        nric=row.nric, name=row.name, age=row.age, marital_status=row.marital_status,
                        roles=set(row.get_roles()), password=row.password,
                    )
                    snapshot.persons[person.nric] = person
                for row in session.execute(select(ProjectModel)).scalars():
                    project = Project(
                        name=row.name,
                        neighborhood=row.neighborhood,
                        opening_date=row.opening_date,
                        closing_date=row.closing_date,
                        flats={
                            f.flat_type: FlatOffer(total_units=f.total_units, available_units=f.available_units, price=f.price)
                            for f in row.flats
                        },
                        manager_nric=row.manager_nric,
                        officer_slots=row.officer_slots,
                        officers=row.get_officers(),
                        visible=bool(row.visible),
                    )
                    snapshot.projects[project.name] = project
                for row in session.execute(select(ApplicationModel)).scalars():
                    snapshot.applications[row.application_id] = Application(
                        application_id=row.application_id, applicant_nric=row.applicant_nric,
                        project_name=row.project_name, flat_type=row.flat_type, status=row.status,
                    )
                for row in session.execute(select(RegistrationModel)).scalars():
                    snapshot.registrations[row.registration_id] = Registration(
                        registration_id=row.registration_id, officer_nric=row.officer_nric,
                        project_name=row.project_name, registration_date=row.registration_date, status=row.status,
                    )
                for row in session.execute(select(EnquiryModel)).scalars():
                    snapshot.enquiries[row.enquiry_id] = Enquiry(
                        enquiry_id=row.enquiry_id, creator_nric=row.creator_nric, project_name=row.project_name,
                        message=row.message, created_at=row.created_at, reply=row.reply,
                        replier_nric=row.replier_nric, replied_at=row.replied_at,
                    )
                for row in session.execute(select(WithdrawalRequestModel)).scalars():
                    snapshot.withdrawals[row.request_id] = WithdrawalRequest(
                        request_id=row.request_id, application_id=row.application_id,
                        requested_at=row.requested_at, is_approved=row.is_approved,
                        processed_at=row.processed_at, processed_by=row.processed_by,
                    )
        except SQLAlchemyError as e:
            logger.error("Snapshot load from %s failed: %s", self.db_url, e)
            raise PersistenceError(message=f"Failed to load snapshot: {e}", context={"db_url": self.db_url}) from e
        except ValueError as e:
            # malformed JSON columns
            raise ValidationError(message=f"Malformed stored record: {e}", context={"db_url": self.db_url}) from e
        logger.info("Loaded database snapshot from %s: %s", self.db_url, snapshot.counts())
        return snapshot

    def save(self, snapshot: Snapshot) -> None:
        try:
            with self._provider.session() as session, session.begin():
                for model in _TABLES:
                    session.execute(delete(model))
                for p in snapshot.persons.values():
                    row = PersonModel(
                        nric=p.nric, name=p.name, age=p.age, marital_status=p.marital_status.value, password=p.password,
                    )
                    row.set_roles([r.value for r in p.roles])
                    session.add(row)
                for p in snapshot.projects.values():
                    row = ProjectModel(
                        name=p.name, neighborhood=p.neighborhood, opening_date=p.opening_date,
                        closing_date=p.closing_date, manager_nric=p.manager_nric,
                        officer_slots=p.officer_slots, visible=p.visible,
                    )
                    row.set_officers(p.officers)
                    row.flats = [
                        FlatOfferModel(
                            position=i, flat_type=ft.value, total_units=o.total_units,
                            available_units=o.available_units, price=o.price,
                        )
                        for i, (ft, o) in enumerate(p.flats.items())
                    ]
                    session.add(row)
                session.add_all(
                    ApplicationModel(
                        application_id=a.application_id, applicant_nric=a.applicant_nric, project_name=a.project_name,
                        flat_type=a.flat_type.value if a.flat_type else None, status=a.status.value,
                    )
                    for a in snapshot.applications.values()
                )
                session.add_all(
                    RegistrationModel(
                        registration_id=r.registration_id, officer_nric=r.officer_nric, project_name=r.project_name,
                        registration_date=r.registration_date, status=r.status.value,
                    )
                    for r in snapshot.registrations.values()
                )
                session.add_all(
                    EnquiryModel(
                        enquiry_id=e.enquiry_id, creator_nric=e.creator_nric, project_name=e.project_name,
                        message=e.message, created_at=e.created_at, reply=e.reply,
                        replier_nric=e.replier_nric, replied_at=e.replied_at,
                    )
                    for e in snapshot.enquiries.values()
                )
                session.add_all(
                    WithdrawalRequestModel(
                        request_id=w.request_id, application_id=w.application_id, requested_at=w.requested_at,
                        is_approved=w.is_approved, processed_at=w.processed_at, processed_by=w.processed_by,
                    )
                    for w in snapshot.withdrawals.values()
                )
        except SQLAlchemyError as e:
            logger.error("Snapshot save to %s failed: %s", self.db_url, e)
            raise PersistenceError(message=f"Failed to save snapshot: {e}", context={"db_url": self.db_url}) from e
        logger.debug("Saved database snapshot to %s", self.db_url)

    def close(self) -> None:
        self._provider.dispose()
