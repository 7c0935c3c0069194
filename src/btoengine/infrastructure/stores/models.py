from __future__ import annotations

import json
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def _dump_list(values: Optional[List[str]]) -> str:
    return json.dumps(list(values or []), ensure_ascii=False)


def _load_list(raw: str) -> List[str]:
    data = json.loads(raw or "[]")
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON list, got {type(data).__name__}")
    return [str(x) for x in data]


class PersonModel(Base):
    __tablename__ = "persons"

    nric: Mapped[str] = mapped_column(String(9), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), default="")
    age: Mapped[int] = mapped_column(Integer, default=0)
    marital_status: Mapped[str] = mapped_column(String(16), default="")
    password: Mapped[str] = mapped_column(String(256), default="")

    roles_json: Mapped[str] = mapped_column(Text, default="[]")

    def set_roles(self, roles: List[str]) -> None:
        self.roles_json = _dump_list(sorted(roles))

    def get_roles(self) -> List[str]:
        return _load_list(self.roles_json)


class ProjectModel(Base):
    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    neighborhood: Mapped[str] = mapped_column(String(128), default="")
    opening_date: Mapped[date] = mapped_column(Date)
    closing_date: Mapped[date] = mapped_column(Date)
    manager_nric: Mapped[str] = mapped_column(String(9), index=True)
    officer_slots: Mapped[int] = mapped_column(Integer, default=0)
    visible: Mapped[bool] = mapped_column(Boolean, default=True)

    # Assigned officer NRICs in assignment order.
    officers_json: Mapped[str] = mapped_column(Text, default="[]")

    flats = relationship(
        "FlatOfferModel", back_populates="project", cascade="all, delete-orphan", order_by="FlatOfferModel.position"
    )

    def set_officers(self, officers: List[str]) -> None:
        self.officers_json = _dump_list(officers)

    def get_officers(self) -> List[str]:
        return _load_list(self.officers_json)


class FlatOfferModel(Base):
    __tablename__ = "flat_offers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_name: Mapped[str] = mapped_column(String(100), ForeignKey("projects.name"), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    flat_type: Mapped[str] = mapped_column(String(16))
    total_units: Mapped[int] = mapped_column(Integer, default=0)
    available_units: Mapped[int] = mapped_column(Integer, default=0)
    price: Mapped[float] = mapped_column(Float, default=0.0)

    project = relationship("ProjectModel", back_populates="flats")


class ApplicationModel(Base):
    __tablename__ = "applications"

    application_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    applicant_nric: Mapped[str] = mapped_column(String(9), index=True)
    project_name: Mapped[str] = mapped_column(String(100), index=True)
    flat_type: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="Pending", index=True)


class RegistrationModel(Base):
    __tablename__ = "officer_registrations"

    registration_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    officer_nric: Mapped[str] = mapped_column(String(9), index=True)
    project_name: Mapped[str] = mapped_column(String(100), index=True)
    registration_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(16), default="Pending")


class EnquiryModel(Base):
    __tablename__ = "enquiries"

    enquiry_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    creator_nric: Mapped[str] = mapped_column(String(9), index=True)
    project_name: Mapped[str] = mapped_column(String(100), index=True)
    message: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime)

    reply: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    replier_nric: Mapped[Optional[str]] = mapped_column(String(9), nullable=True)
    replied_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class WithdrawalRequestModel(Base):
    __tablename__ = "withdrawal_requests"

    request_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    application_id: Mapped[str] = mapped_column(String(32), index=True)
    requested_at: Mapped[datetime] = mapped_column(DateTime)

    is_approved: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    processed_by: Mapped[Optional[str]] = mapped_column(String(9), nullable=True)
