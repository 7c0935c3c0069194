"""
End-to-end scenarios over the wired engine: a full booking season, storage
failures mid-operation, and inventory accounting across mixed transitions.
"""

import pytest

from btoengine.application.engine import BTOEngine
from btoengine.application.reports import ReportFilter
from btoengine.config import Settings
from btoengine.core.di import build_engine
from btoengine.core.errors import ConflictError, InventoryError, PersistenceError
from btoengine.domain import ApplicationStatus, FlatType
from btoengine.infrastructure.stores.csv_store import CsvPersistenceGateway
from btoengine.infrastructure.stores.memory_store import InMemoryPersistenceGateway
from tests.conftest import (
    ACACIA,
    DANIEL,
    EMILY,
    GRACE,
    JESSICA,
    JOHN,
    MAPLE,
    MICHAEL,
    SARAH,
    sample_snapshot,
)


def test_booking_season_over_csv(tmp_path, clock):
    settings = Settings()
    settings.storage.data_dir = str(tmp_path / "data")
    CsvPersistenceGateway(settings.storage.data_dir).save(sample_snapshot())
    engine = build_engine(settings, clock=clock)
    michael, jessica = engine.person(MICHAEL), engine.person(JESSICA)
    acacia, maple = engine.project(ACACIA), engine.project(MAPLE)

    # officers sign up
    daniel_reg = engine.registrations.create(engine.person(DANIEL), acacia).unwrap()
    emily_reg = engine.registrations.create(engine.person(EMILY), maple).unwrap()
    engine.registrations.approve(daniel_reg, michael).unwrap()
    engine.registrations.approve(emily_reg, jessica).unwrap()

    # applicants apply, one is turned down
    john_app = engine.applications.create(engine.person(JOHN), acacia).unwrap()
    sarah_app = engine.applications.create(engine.person(SARAH), acacia).unwrap()
    assert engine.applications.create(engine.person(GRACE), acacia).is_ok() is False
    engine.applications.approve(john_app, michael).unwrap()
    engine.applications.reject(sarah_app, michael).unwrap()

    # questions answered by the handling officer
    question = engine.enquiries.create(engine.person(JOHN), acacia, "When is key collection?").unwrap()
    engine.enquiries.reply(question, engine.person(DANIEL), "Around Q3 2027").unwrap()

    engine.applications.book_flat(john_app, engine.person(DANIEL), FlatType.THREE_ROOM).unwrap()
    receipt = engine.reports.booking_receipt(john_app).unwrap()
    assert "Project Name: Acacia Breeze" in receipt

    # a rejected applicant may apply again
    sarah_again = engine.applications.create(engine.person(SARAH), acacia, FlatType.TWO_ROOM).unwrap()
    assert engine.person(SARAH).active_application_id == sarah_again.application_id

    # John changes his mind
    engine.applications.request_withdrawal(john_app, engine.person(JOHN)).unwrap()
    engine.applications.withdraw(john_app, michael, approve=True).unwrap()
    assert engine.ledger.available(ACACIA, FlatType.THREE_ROOM) == 3
    assert engine.reports.booking_report(ReportFilter(project_name=ACACIA)) == []

    reloaded = BTOEngine(CsvPersistenceGateway(settings.storage.data_dir), clock=clock)
    assert reloaded.verify()["applications"] == 3
    assert reloaded.application(john_app.application_id).status == ApplicationStatus.WITHDRAWN
    assert reloaded.person(JOHN).active_application_id is None
    assert reloaded.person(EMILY).handles(MAPLE)
    assert reloaded.enquiry(question.enquiry_id).reply == "Around Q3 2027"


class TestPersistenceFailure:
    def test_failed_save_raises_and_keeps_memory_state(self, clock):
        gateway = InMemoryPersistenceGateway(sample_snapshot(), fail_on_save=True)
        engine = BTOEngine(gateway, clock=clock)
        john = engine.person(JOHN)

        with pytest.raises(PersistenceError):
            engine.applications.create(john, engine.project(ACACIA))

        # the in-memory transition stands; nothing reached storage
        assert john.active_application_id is not None
        assert len(engine.repository.applications) == 1
        assert gateway.stored.applications == {}
        assert gateway.save_count == 0

    def test_recovers_when_storage_returns(self, clock):
        gateway = InMemoryPersistenceGateway(sample_snapshot(), fail_on_save=True)
        engine = BTOEngine(gateway, clock=clock)
        with pytest.raises(PersistenceError):
            engine.applications.create(engine.person(JOHN), engine.project(ACACIA))

        gateway.fail_on_save = False
        engine.commit()
        assert len(gateway.stored.applications) == 1

    def test_csv_directory_removed(self, tmp_path, clock):
        data_dir = tmp_path / "data"
        CsvPersistenceGateway(data_dir).save(sample_snapshot())
        engine = BTOEngine(CsvPersistenceGateway(data_dir), clock=clock)
        for path in data_dir.iterdir():
            path.unlink()
        data_dir.rmdir()
        data_dir.write_text("now a file")

        with pytest.raises(PersistenceError):
            engine.projects.set_visibility(engine.project(ACACIA), engine.person(MICHAEL), False)


class TestInventoryInvariant:
    def test_available_plus_booked_equals_total(self, engine, handling_officer):
        michael = engine.person(MICHAEL)
        acacia = engine.project(ACACIA)
        booked = []
        for nric, flat_type in ((JOHN, FlatType.THREE_ROOM), (SARAH, FlatType.TWO_ROOM)):
            application = engine.applications.create(engine.person(nric), acacia).unwrap()
            engine.applications.approve(application, michael).unwrap()
            engine.applications.book_flat(application, handling_officer, flat_type).unwrap()
            booked.append(application)
            engine.verify()

        engine.applications.withdraw(booked[1], michael, approve=True).unwrap()
        engine.verify()
        engine.projects.edit(acacia, michael, units={FlatType.THREE_ROOM: 1}).unwrap()
        engine.verify()

        assert engine.ledger.snapshot()[(ACACIA, FlatType.THREE_ROOM)] == (1, 0)
        assert engine.ledger.snapshot()[(ACACIA, FlatType.TWO_ROOM)] == (5, 5)

    def test_last_unit_goes_once(self, engine, handling_officer):
        michael = engine.person(MICHAEL)
        acacia = engine.project(ACACIA)
        engine.projects.edit(acacia, michael, units={FlatType.TWO_ROOM: 1}).unwrap()
        first = engine.applications.create(engine.person(JOHN), acacia).unwrap()
        second = engine.applications.create(engine.person(SARAH), acacia).unwrap()
        for application in (first, second):
            engine.applications.approve(application, michael).unwrap()

        engine.applications.book_flat(first, handling_officer, FlatType.TWO_ROOM).unwrap()
        result = engine.applications.book_flat(second, handling_officer, FlatType.TWO_ROOM)

        assert isinstance(result.error, ConflictError)
        assert engine.ledger.available(ACACIA, FlatType.TWO_ROOM) == 0
        with pytest.raises(InventoryError):
            engine.ledger.decrement(ACACIA, FlatType.TWO_ROOM)

    def test_inconsistent_snapshot_refused(self, clock):
        snapshot = sample_snapshot()
        snapshot.projects[ACACIA].flats[FlatType.TWO_ROOM].available_units = 4
        with pytest.raises(InventoryError):
            BTOEngine(InMemoryPersistenceGateway(snapshot), clock=clock)
