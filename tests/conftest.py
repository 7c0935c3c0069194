# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src to sys.path so `import btoengine` works without installing.
"""

import sys
from datetime import date, datetime
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from btoengine.application.engine import BTOEngine  # noqa: E402
from btoengine.application.ports import Snapshot  # noqa: E402
from btoengine.domain import FlatOffer, FlatType, MaritalStatus, Person, Project, Role  # noqa: E402
from btoengine.infrastructure.stores.memory_store import InMemoryPersistenceGateway  # noqa: E402

FIXED_NOW = datetime(2025, 3, 10, 9, 30, 15, 250000)

# NRICs
JOHN = "S1234567A"      # applicant, 40, married
SARAH = "T7654321B"     # applicant, 37, single
GRACE = "S9876543C"     # applicant, 30, single
DANIEL = "T2109876H"    # officer, 36, single
EMILY = "T1234567J"     # officer, 28, married
MICHAEL = "T8765432F"   # manager of Acacia Breeze and Cedar Heights
JESSICA = "S5678901G"   # manager of Maple Grove

ACACIA = "Acacia Breeze"
MAPLE = "Maple Grove"
CEDAR = "Cedar Heights"


def sample_persons():
    return {
        p.nric: p
        for p in (
            Person(nric=JOHN, name="John", age=40, marital_status=MaritalStatus.MARRIED, password="password"),
            Person(nric=SARAH, name="Sarah", age=37, marital_status=MaritalStatus.SINGLE, password="password"),
            Person(nric=GRACE, name="Grace", age=30, marital_status=MaritalStatus.SINGLE, password="password"),
            Person(nric=DANIEL, name="Daniel", age=36, marital_status=MaritalStatus.SINGLE,
                   roles={Role.OFFICER}, password="password"),
            Person(nric=EMILY, name="Emily", age=28, marital_status=MaritalStatus.MARRIED,
                   roles={Role.OFFICER}, password="password"),
            Person(nric=MICHAEL, name="Michael", age=45, marital_status=MaritalStatus.MARRIED,
                   roles={Role.MANAGER}, password="password"),
            Person(nric=JESSICA, name="Jessica", age=50, marital_status=MaritalStatus.MARRIED,
                   roles={Role.MANAGER}, password="password"),
        )
    }


def sample_projects():
    return {
        p.name: p
        for p in (
            Project(
                name=ACACIA,
                neighborhood="Yishun",
                opening_date=date(2025, 3, 1),
                closing_date=date(2025, 3, 31),
                flats={
                    FlatType.TWO_ROOM: FlatOffer(total_units=5, available_units=5, price=350000),
                    FlatType.THREE_ROOM: FlatOffer(total_units=3, available_units=3, price=450000),
                },
                manager_nric=MICHAEL,
                officer_slots=3,
            ),
            Project(
                name=MAPLE,
                neighborhood="Boon Lay",
                opening_date=date(2025, 3, 15),
                closing_date=date(2025, 4, 15),
                flats={FlatType.TWO_ROOM: FlatOffer(total_units=2, available_units=2, price=300000)},
                manager_nric=JESSICA,
                officer_slots=1,
            ),
            Project(
                name=CEDAR,
                neighborhood="Tampines",
                opening_date=date(2025, 5, 1),
                closing_date=date(2025, 5, 31),
                flats={FlatType.THREE_ROOM: FlatOffer(total_units=4, available_units=4, price=500000)},
                manager_nric=MICHAEL,
                officer_slots=2,
            ),
        )
    }


def sample_snapshot() -> Snapshot:
    return Snapshot(persons=sample_persons(), projects=sample_projects())


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def snapshot():
    return sample_snapshot()


@pytest.fixture
def gateway(snapshot):
    return InMemoryPersistenceGateway(snapshot)


@pytest.fixture
def engine(gateway, clock):
    return BTOEngine(gateway, clock=clock)


@pytest.fixture
def handling_officer(engine):
    """Daniel, approved to handle Acacia Breeze."""
    officer = engine.person(DANIEL)
    project = engine.project(ACACIA)
    registration = engine.registrations.create(officer, project).unwrap()
    engine.registrations.approve(registration, engine.person(MICHAEL)).unwrap()
    return officer


@pytest.fixture
def successful_application(engine):
    """John's application to Acacia Breeze, approved by Michael."""
    application = engine.applications.create(engine.person(JOHN), engine.project(ACACIA)).unwrap()
    engine.applications.approve(application, engine.person(MICHAEL)).unwrap()
    return application
