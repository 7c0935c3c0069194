"""
Booking reports for managers and receipts for officers.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from btoengine.application.repository import Repository
from btoengine.core.errors import BTOError, Result, StateError
from btoengine.domain.application import Application
from btoengine.domain.enums import ApplicationStatus, FlatType, MaritalStatus

logger = logging.getLogger(__name__)


@dataclass
class ReportFilter:
    project_name: Optional[str] = None
    flat_type: Optional[FlatType] = None
    marital_status: Optional[MaritalStatus] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None


@dataclass
class BookingRecord:
    application_id: str
    applicant_name: str
    applicant_nric: str
    age: int
    marital_status: MaritalStatus
    project_name: str
    neighborhood: str
    flat_type: FlatType
    price: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["marital_status"] = self.marital_status.value
        data["flat_type"] = self.flat_type.value
        return data


class ReportService:
    def __init__(self, repository: Repository):
        self.repository = repository

    def booking_report(self, criteria: Optional[ReportFilter] = None) -> List[BookingRecord]:
        criteria = criteria or ReportFilter()
        records = []
        for application in self.repository.applications.values():
            if application.status != ApplicationStatus.BOOKED:
                continue
            record = self._record(application)
            if criteria.project_name and record.project_name != criteria.project_name:
                continue
            if criteria.flat_type is not None and record.flat_type != criteria.flat_type:
                continue
            if criteria.marital_status is not None and record.marital_status != criteria.marital_status:
                continue
            if criteria.min_age is not None and record.age < criteria.min_age:
                continue
            if criteria.max_age is not None and record.age > criteria.max_age:
                continue
            records.append(record)
        records.sort(key=lambda r: (r.project_name, r.flat_type.value, r.applicant_name))
        logger.debug("Booking report produced %d rows", len(records))
        return records

    def booking_receipt(self, application: Application) -> Result[str, BTOError]:
        if application.status != ApplicationStatus.BOOKED:
            return Result.err(StateError(
                message="Receipts are only issued for booked applications",
                context={"id": application.application_id, "field": "status", "status": application.status.value},
            ))
        r = self._record(application)
        lines = [
            "===== BOOKING RECEIPT =====",
            "",
            "Applicant Information:",
            f"Name: {r.applicant_name}",
            f"NRIC: {r.applicant_nric}",
            f"Age: {r.age}",
            f"Marital Status: {r.marital_status.value}",
            "",
            "Booking Details:",
            f"Application ID: {r.application_id}",
            f"Project Name: {r.project_name}",
            f"Neighborhood: {r.neighborhood}",
            f"Flat Type: {r.flat_type.value}",
            f"Price: ${r.price:,.2f}",
            "",
            "===== END OF RECEIPT =====",
        ]
        return Result.ok("\n".join(lines))

    def _record(self, application: Application) -> BookingRecord:
        applicant = self.repository.persons[application.applicant_nric]
        project = self.repository.projects[application.project_name]
        offer = project.offer(application.flat_type)
        return BookingRecord(
            application_id=application.application_id,
            applicant_name=applicant.name,
            applicant_nric=applicant.nric,
            age=applicant.age,
            marital_status=applicant.marital_status,
            project_name=project.name,
            neighborhood=project.neighborhood,
            flat_type=application.flat_type,
            price=offer.price if offer is not None else 0.0,
        )
