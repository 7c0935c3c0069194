from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional

from btoengine.application.repository import Repository
from btoengine.core.errors import AuthorizationError, BTOError, Result
from btoengine.domain.eligibility import DEFAULT_POLICY, EligibilityPolicy
from btoengine.domain.inventory import InventoryLedger
from btoengine.domain.person import Person
from btoengine.domain.project import Project

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Commit = Callable[[], None]


class LifecycleService:
    """
    Shared plumbing for the lifecycle services.

    ``commit`` persists the whole snapshot; it raises ``PersistenceError`` and
    is called only after the in-memory transition has completed.
    """

    def __init__(
        self,
        repository: Repository,
        ledger: InventoryLedger,
        commit: Commit,
        clock: Optional[Clock] = None,
        policy: EligibilityPolicy = DEFAULT_POLICY,
    ):
        self.repository = repository
        self.ledger = ledger
        self._commit = commit
        self._clock = clock or datetime.now
        self.policy = policy

    def _now(self) -> datetime:
        return self._clock().replace(microsecond=0)

    def _today(self) -> date:
        return self._clock().date()

    def _fail(self, operation: str, error: BTOError) -> Result:
        logger.debug("%s rejected: %s %s", operation, error, error.context or {})
        return Result.err(error)

    def _owns(self, manager: Person, project: Project) -> Optional[AuthorizationError]:
        if manager.is_manager and project.manager_nric == manager.nric:
            return None
        return AuthorizationError(
            message=f"{manager.nric} is not the manager of {project.name}",
            context={"id": manager.nric, "project": project.name, "field": "manager_nric"},
        )

    def _project_of(self, project_name: str) -> Project:
        # Records are only ever created against loaded projects.
        return self.repository.projects[project_name]
