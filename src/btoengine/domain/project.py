"""
Project and per-flat-type offer models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from btoengine.core.errors import ValidationError
from btoengine.domain.enums import FlatType
from btoengine.domain.validation import parse_date, validate_nric, validate_window


@dataclass
class FlatOffer:
    """Units and price of one flat type within a project."""

    total_units: int
    available_units: int
    price: float

    def __post_init__(self):
        self.total_units = int(self.total_units)
        self.available_units = int(self.available_units)
        self.price = float(self.price)
        if self.total_units < 0 or self.available_units < 0:
            raise ValidationError(message="Unit counts cannot be negative", context={"field": "units"})
        if self.available_units > self.total_units:
            raise ValidationError(
                message="Available units exceed total units",
                context={"field": "available_units", "available": self.available_units, "total": self.total_units},
            )
        if self.price < 0:
            raise ValidationError(message="Price cannot be negative", context={"field": "price"})

    @property
    def booked_units(self) -> int:
        return self.total_units - self.available_units

    def to_dict(self) -> Dict[str, Any]:
        return {"total_units": self.total_units, "available_units": self.available_units, "price": self.price}


@dataclass
class Project:
    name: str
    neighborhood: str
    opening_date: date
    closing_date: date
    flats: Dict[FlatType, FlatOffer]
    manager_nric: str
    officer_slots: int
    officers: List[str] = field(default_factory=list)
    visible: bool = True

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError(message="Project name cannot be empty", context={"field": "name"})
        self.opening_date = parse_date(self.opening_date, field="opening_date")
        self.closing_date = parse_date(self.closing_date, field="closing_date")
        validate_window(self.opening_date, self.closing_date, entity_id=self.name)
        validate_nric(self.manager_nric, field="manager_nric")
        self.officer_slots = int(self.officer_slots)
        if self.officer_slots < 0:
            raise ValidationError(message="Officer slots cannot be negative", context={"id": self.name, "field": "officer_slots"})
        if len(self.officers) > self.officer_slots:
            raise ValidationError(
                message="More officers assigned than officer slots",
                context={"id": self.name, "field": "officers", "assigned": len(self.officers), "slots": self.officer_slots},
            )
        self.flats = {FlatType.parse(k, field="flat_type"): v for k, v in self.flats.items()}

    @property
    def window(self) -> Tuple[date, date]:
        return self.opening_date, self.closing_date

    @property
    def available_officer_slots(self) -> int:
        return self.officer_slots - len(self.officers)

    def is_open(self, on: date) -> bool:
        return self.opening_date <= on <= self.closing_date

    def offers(self, flat_type: FlatType) -> bool:
        return flat_type in self.flats

    def offer(self, flat_type: FlatType) -> Optional[FlatOffer]:
        return self.flats.get(flat_type)

    @property
    def flat_types(self) -> List[FlatType]:
        return list(self.flats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "neighborhood": self.neighborhood,
            "opening_date": self.opening_date.isoformat(),
            "closing_date": self.closing_date.isoformat(),
            "flats": {ft.value: offer.to_dict() for ft, offer in self.flats.items()},
            "manager_nric": self.manager_nric,
            "officer_slots": self.officer_slots,
            "officers": list(self.officers),
            "visible": self.visible,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        flats = {
            FlatType.parse(k, field="flat_type"): FlatOffer(**v)
            for k, v in (data.get("flats") or {}).items()
        }
        return cls(
            name=data.get("name", ""),
            neighborhood=data.get("neighborhood", ""),
            opening_date=data.get("opening_date", ""),
            closing_date=data.get("closing_date", ""),
            flats=flats,
            manager_nric=data.get("manager_nric", ""),
            officer_slots=data.get("officer_slots", 0),
            officers=list(data.get("officers") or []),
            visible=bool(data.get("visible", True)),
        )
