"""
BTOEngine: one repository, one ledger and one gateway, wired explicitly.

Every lifecycle shares the same in-memory state and the same ``commit``
callable, which writes the full snapshot after each successful transition.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from btoengine.application.lifecycle import (
    ApplicationLifecycle,
    EnquiryThread,
    ProjectAdministration,
    RegistrationLifecycle,
)
from btoengine.application.lifecycle.base import Clock
from btoengine.application.ports.persistence_port import PersistenceGateway, Snapshot
from btoengine.application.reports import ReportService
from btoengine.application.repository import Repository
from btoengine.config.settings import Settings
from btoengine.core.errors import PersistenceError
from btoengine.domain.application import Application, WithdrawalRequest
from btoengine.domain.enquiry import Enquiry
from btoengine.domain.inventory import InventoryLedger
from btoengine.domain.person import Person
from btoengine.domain.project import Project
from btoengine.domain.registration import Registration

logger = logging.getLogger(__name__)


class BTOEngine:
    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.gateway = gateway
        self.settings = settings or Settings()
        self.policy = self.settings.policy.to_policy()

        self.repository = Repository(self._load())
        self.repository.rebuild_bindings()
        self.ledger = InventoryLedger(self.repository.projects)
        self.ledger.verify(self.repository.booked_counts())

        shared = dict(
            repository=self.repository,
            ledger=self.ledger,
            commit=self.commit,
            clock=clock,
            policy=self.policy,
        )
        self.applications = ApplicationLifecycle(**shared)
        self.registrations = RegistrationLifecycle(**shared)
        self.enquiries = EnquiryThread(**shared)
        self.projects = ProjectAdministration(**shared, max_officer_slots=self.settings.policy.max_officer_slots)
        self.reports = ReportService(self.repository)

        logger.info("Engine ready: %s", self.repository.snapshot.counts())

    def _load(self) -> Snapshot:
        try:
            return self.gateway.load()
        except PersistenceError:
            logger.error("Snapshot load failed via %s", type(self.gateway).__name__)
            raise
        except OSError as e:
            logger.error("Snapshot load failed via %s: %s", type(self.gateway).__name__, e)
            raise PersistenceError(message=f"Failed to load snapshot: {e}", context={"gateway": type(self.gateway).__name__}) from e

    def commit(self) -> None:
        """Persist the full snapshot; raises PersistenceError, never rolls back."""
        try:
            self.gateway.save(self.repository.snapshot)
        except PersistenceError:
            logger.error("Snapshot save failed via %s", type(self.gateway).__name__)
            raise
        except OSError as e:
            logger.error("Snapshot save failed via %s: %s", type(self.gateway).__name__, e)
            raise PersistenceError(message=f"Failed to save snapshot: {e}", context={"gateway": type(self.gateway).__name__}) from e

    def verify(self) -> Dict[str, int]:
        """Re-check ledger consistency; returns record counts."""
        self.ledger.verify(self.repository.booked_counts())
        return self.repository.snapshot.counts()

    def close(self) -> None:
        self.gateway.close()

    def __enter__(self) -> "BTOEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---- lookups ----

    def person(self, nric: str) -> Optional[Person]:
        return self.repository.person(nric)

    def project(self, name: str) -> Optional[Project]:
        return self.repository.find_project(name)

    def application(self, application_id: str) -> Optional[Application]:
        return self.repository.application(application_id)

    def registration(self, registration_id: str) -> Optional[Registration]:
        return self.repository.registration(registration_id)

    def enquiry(self, enquiry_id: str) -> Optional[Enquiry]:
        return self.repository.enquiry(enquiry_id)

    def withdrawal(self, request_id: str) -> Optional[WithdrawalRequest]:
        return self.repository.withdrawals.get(request_id)
