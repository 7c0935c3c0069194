"""
Inventory ledger: the only code that moves flat units.

Underflow and overflow are invariant violations, so they raise
``InventoryError`` instead of returning a Result. Lifecycle code checks
availability before calling in.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Tuple

from btoengine.core.errors import InventoryError
from btoengine.domain.enums import FlatType
from btoengine.domain.project import FlatOffer, Project

logger = logging.getLogger(__name__)

BookedCounts = Mapping[Tuple[str, FlatType], int]


class InventoryLedger:
    def __init__(self, projects: Mapping[str, Project]):
        self._projects = projects

    def _offer(self, project_name: str, flat_type: FlatType) -> FlatOffer:
        project = self._projects.get(project_name)
        if project is None:
            raise InventoryError(message=f"Unknown project {project_name!r}", context={"id": project_name})
        offer = project.offer(flat_type)
        if offer is None:
            raise InventoryError(
                message=f"{project_name} does not offer {flat_type.value}",
                context={"id": project_name, "field": "flat_type", "flat_type": flat_type.value},
            )
        return offer

    def total(self, project_name: str, flat_type: FlatType) -> int:
        return self._offer(project_name, flat_type).total_units

    def available(self, project_name: str, flat_type: FlatType) -> int:
        return self._offer(project_name, flat_type).available_units

    def booked(self, project_name: str, flat_type: FlatType) -> int:
        return self._offer(project_name, flat_type).booked_units

    def decrement(self, project_name: str, flat_type: FlatType) -> int:
        offer = self._offer(project_name, flat_type)
        if offer.available_units == 0:
            logger.error("Ledger underflow on %s/%s", project_name, flat_type.value)
            raise InventoryError(
                message=f"No {flat_type.value} units left in {project_name}",
                context={"id": project_name, "field": "available_units", "flat_type": flat_type.value},
            )
        offer.available_units -= 1
        return offer.available_units

    def increment(self, project_name: str, flat_type: FlatType) -> int:
        offer = self._offer(project_name, flat_type)
        if offer.available_units >= offer.total_units:
            logger.error("Ledger overflow on %s/%s", project_name, flat_type.value)
            raise InventoryError(
                message=f"{flat_type.value} units in {project_name} already at total",
                context={"id": project_name, "field": "available_units", "flat_type": flat_type.value},
            )
        offer.available_units += 1
        return offer.available_units

    def resize(self, project_name: str, flat_type: FlatType, new_total: int) -> None:
        """Change the total units of a type, keeping the booked count."""
        offer = self._offer(project_name, flat_type)
        booked = offer.booked_units
        if new_total < booked:
            raise InventoryError(
                message=f"Cannot shrink {flat_type.value} below {booked} booked units",
                context={"id": project_name, "field": "total_units", "booked": booked, "requested": new_total},
            )
        offer.total_units = new_total
        offer.available_units = new_total - booked

    def verify(self, booked_counts: BookedCounts) -> None:
        """Check available + booked == total for every project and flat type."""
        for name, project in self._projects.items():
            for flat_type, offer in project.flats.items():
                booked = booked_counts.get((name, flat_type), 0)
                if offer.available_units + booked != offer.total_units:
                    raise InventoryError(
                        message=(
                            f"{name}/{flat_type.value}: available {offer.available_units} + "
                            f"booked {booked} != total {offer.total_units}"
                        ),
                        context={"id": name, "field": "available_units", "flat_type": flat_type.value},
                    )
        unknown = [key for key in booked_counts if key[0] not in self._projects
                   or key[1] not in self._projects[key[0]].flats]
        if unknown:
            name, flat_type = unknown[0]
            raise InventoryError(
                message=f"Booked applications reference {name}/{flat_type.value}, which has no inventory",
                context={"id": name, "field": "flat_type", "flat_type": flat_type.value},
            )

    def snapshot(self) -> Dict[Tuple[str, FlatType], Tuple[int, int]]:
        return {
            (name, ft): (offer.total_units, offer.available_units)
            for name, project in self._projects.items()
            for ft, offer in project.flats.items()
        }
