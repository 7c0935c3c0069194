from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Dict, Protocol, runtime_checkable

from btoengine.domain.application import Application, WithdrawalRequest
from btoengine.domain.enquiry import Enquiry
from btoengine.domain.person import Person
from btoengine.domain.project import Project
from btoengine.domain.registration import Registration


@dataclass
class Snapshot:
    """Every entity record, keyed by its identity."""

    persons: Dict[str, Person] = field(default_factory=dict)
    projects: Dict[str, Project] = field(default_factory=dict)
    applications: Dict[str, Application] = field(default_factory=dict)
    registrations: Dict[str, Registration] = field(default_factory=dict)
    enquiries: Dict[str, Enquiry] = field(default_factory=dict)
    withdrawals: Dict[str, WithdrawalRequest] = field(default_factory=dict)

    def copy(self) -> "Snapshot":
        return copy.deepcopy(self)

    def counts(self) -> Dict[str, int]:
        return {
            "persons": len(self.persons),
            "projects": len(self.projects),
            "applications": len(self.applications),
            "registrations": len(self.registrations),
            "enquiries": len(self.enquiries),
            "withdrawals": len(self.withdrawals),
        }


@runtime_checkable
class PersistenceGateway(Protocol):
    """
    Snapshot persistence port.

    The engine loads once at start-up and saves the whole snapshot after every
    committed mutation. Implementations raise ``PersistenceError`` on I/O
    failure and must not leave a partially written snapshot behind.
    """

    def load(self) -> Snapshot:
        """Return the stored snapshot (empty when nothing was stored yet)."""

    def save(self, snapshot: Snapshot) -> None:
        """Replace the stored snapshot."""

    def close(self) -> None:
        """Release underlying resources (optional)."""
