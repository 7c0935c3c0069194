"""
Application lifecycle tests: apply, approve, reject, book, withdraw
"""

import pytest

from btoengine.core.errors import (
    AuthorizationError,
    ConflictError,
    EligibilityError,
    InventoryError,
    StateError,
)
from btoengine.domain import ApplicationStatus, FlatType
from tests.conftest import (
    ACACIA,
    CEDAR,
    DANIEL,
    EMILY,
    FIXED_NOW,
    GRACE,
    JESSICA,
    JOHN,
    MICHAEL,
    SARAH,
)


class TestCreate:
    def test_creates_pending_application(self, engine, gateway):
        john = engine.person(JOHN)
        application = engine.applications.create(john, engine.project(ACACIA)).unwrap()

        assert application.status == ApplicationStatus.PENDING
        assert application.application_id.startswith("20250310-")
        assert application.flat_type is None
        assert john.active_application_id == application.application_id
        assert application.application_id in gateway.stored.applications

    def test_with_flat_type(self, engine):
        application = engine.applications.create(
            engine.person(SARAH), engine.project(ACACIA), FlatType.TWO_ROOM
        ).unwrap()
        assert application.flat_type == FlatType.TWO_ROOM

    def test_ineligible_flat_type(self, engine, gateway):
        result = engine.applications.create(engine.person(SARAH), engine.project(ACACIA), FlatType.THREE_ROOM)
        assert isinstance(result.error, EligibilityError)
        assert gateway.save_count == 0
        assert engine.person(SARAH).active_application_id is None

    def test_second_active_application(self, engine):
        john = engine.person(JOHN)
        engine.applications.create(john, engine.project(ACACIA)).unwrap()
        result = engine.applications.create(john, engine.project(ACACIA))
        assert isinstance(result.error, ConflictError)
        assert len(engine.applications.for_applicant(john)) == 1

    def test_young_single(self, engine):
        result = engine.applications.create(engine.person(GRACE), engine.project(ACACIA))
        assert isinstance(result.error, EligibilityError)

    def test_project_not_open(self, engine):
        result = engine.applications.create(engine.person(JOHN), engine.project(CEDAR))
        assert isinstance(result.error, EligibilityError)

    def test_officer_with_pending_registration(self, engine):
        emily = engine.person(EMILY)
        engine.registrations.create(emily, engine.project(ACACIA)).unwrap()
        result = engine.applications.create(emily, engine.project(ACACIA))
        assert isinstance(result.error, EligibilityError)

    def test_handling_officer_cannot_apply(self, engine, handling_officer):
        result = engine.applications.create(handling_officer, engine.project(ACACIA))
        assert isinstance(result.error, EligibilityError)


class TestDecision:
    def test_approve(self, engine):
        application = engine.applications.create(engine.person(JOHN), engine.project(ACACIA)).unwrap()
        approved = engine.applications.approve(application, engine.person(MICHAEL)).unwrap()
        assert approved.status == ApplicationStatus.SUCCESSFUL
        assert engine.person(JOHN).active_application_id == application.application_id

    def test_only_owning_manager(self, engine):
        application = engine.applications.create(engine.person(JOHN), engine.project(ACACIA)).unwrap()
        result = engine.applications.approve(application, engine.person(JESSICA))
        assert isinstance(result.error, AuthorizationError)
        assert application.status == ApplicationStatus.PENDING

    def test_approve_twice(self, engine, successful_application):
        result = engine.applications.approve(successful_application, engine.person(MICHAEL))
        assert isinstance(result.error, StateError)
        assert result.error.context["status"] == "Successful"

    def test_approve_sold_out_flat_type(self, engine):
        application = engine.applications.create(
            engine.person(JOHN), engine.project(ACACIA), FlatType.THREE_ROOM
        ).unwrap()
        for _ in range(3):
            engine.ledger.decrement(ACACIA, FlatType.THREE_ROOM)
        result = engine.applications.approve(application, engine.person(MICHAEL))
        assert isinstance(result.error, ConflictError)

    def test_reject_releases_binding(self, engine):
        john = engine.person(JOHN)
        application = engine.applications.create(john, engine.project(ACACIA)).unwrap()
        engine.applications.reject(application, engine.person(MICHAEL)).unwrap()

        assert application.status == ApplicationStatus.UNSUCCESSFUL
        assert john.active_application_id is None
        assert engine.applications.create(john, engine.project(ACACIA)).is_ok()

    def test_reject_successful(self, engine, successful_application):
        result = engine.applications.reject(successful_application, engine.person(MICHAEL))
        assert isinstance(result.error, StateError)


class TestBookFlat:
    def test_books_and_decrements(self, engine, handling_officer, successful_application):
        booked = engine.applications.book_flat(successful_application, handling_officer, FlatType.THREE_ROOM).unwrap()

        john = engine.person(JOHN)
        assert booked.status == ApplicationStatus.BOOKED
        assert booked.flat_type == FlatType.THREE_ROOM
        assert engine.ledger.available(ACACIA, FlatType.THREE_ROOM) == 2
        assert (john.booked_project, john.booked_flat_type) == (ACACIA, FlatType.THREE_ROOM)
        assert john.active_application_id == booked.application_id

    def test_requires_successful(self, engine, handling_officer):
        application = engine.applications.create(engine.person(JOHN), engine.project(ACACIA)).unwrap()
        result = engine.applications.book_flat(application, handling_officer, FlatType.TWO_ROOM)
        assert isinstance(result.error, StateError)
        assert engine.ledger.available(ACACIA, FlatType.TWO_ROOM) == 5

    def test_requires_handling_officer(self, engine, successful_application):
        result = engine.applications.book_flat(successful_application, engine.person(EMILY), FlatType.TWO_ROOM)
        assert isinstance(result.error, AuthorizationError)

    def test_blocked_by_pending_withdrawal(self, engine, handling_officer, successful_application):
        engine.applications.request_withdrawal(successful_application, engine.person(JOHN)).unwrap()
        result = engine.applications.book_flat(successful_application, handling_officer, FlatType.TWO_ROOM)
        assert isinstance(result.error, StateError)

    def test_ineligible_flat_type(self, engine, handling_officer):
        application = engine.applications.create(engine.person(SARAH), engine.project(ACACIA)).unwrap()
        engine.applications.approve(application, engine.person(MICHAEL)).unwrap()
        result = engine.applications.book_flat(application, handling_officer, FlatType.THREE_ROOM)
        assert isinstance(result.error, EligibilityError)

    def test_sold_out(self, engine, handling_officer, successful_application):
        for _ in range(3):
            engine.ledger.decrement(ACACIA, FlatType.THREE_ROOM)
        result = engine.applications.book_flat(successful_application, handling_officer, FlatType.THREE_ROOM)
        assert isinstance(result.error, ConflictError)
        assert successful_application.status == ApplicationStatus.SUCCESSFUL


class TestWithdrawal:
    def test_request(self, engine, successful_application):
        request = engine.applications.request_withdrawal(successful_application, engine.person(JOHN)).unwrap()
        assert request.is_pending
        assert request.requested_at == FIXED_NOW.replace(microsecond=0)
        assert request.request_id.startswith("WDR-20250310-")

    def test_request_by_someone_else(self, engine, successful_application):
        result = engine.applications.request_withdrawal(successful_application, engine.person(SARAH))
        assert isinstance(result.error, AuthorizationError)

    def test_duplicate_request(self, engine, successful_application):
        john = engine.person(JOHN)
        engine.applications.request_withdrawal(successful_application, john).unwrap()
        result = engine.applications.request_withdrawal(successful_application, john)
        assert isinstance(result.error, ConflictError)

    def test_request_on_closed_application(self, engine):
        john = engine.person(JOHN)
        application = engine.applications.create(john, engine.project(ACACIA)).unwrap()
        engine.applications.reject(application, engine.person(MICHAEL)).unwrap()
        result = engine.applications.request_withdrawal(application, john)
        assert isinstance(result.error, StateError)

    def test_approve_booked_withdrawal_restores_unit(self, engine, handling_officer, successful_application):
        engine.applications.book_flat(successful_application, handling_officer, FlatType.TWO_ROOM).unwrap()
        pending = engine.applications.request_withdrawal(successful_application, engine.person(JOHN)).unwrap()

        decided = engine.applications.withdraw(successful_application, engine.person(MICHAEL), approve=True).unwrap()

        john = engine.person(JOHN)
        assert decided is pending
        assert decided.is_approved is True
        assert decided.processed_by == MICHAEL
        assert decided.processed_at == FIXED_NOW.replace(microsecond=0)
        assert successful_application.status == ApplicationStatus.WITHDRAWN
        assert engine.ledger.available(ACACIA, FlatType.TWO_ROOM) == 5
        assert john.active_application_id is None
        assert not john.has_booking

    def test_rejected_withdrawal_keeps_application(self, engine, successful_application):
        engine.applications.request_withdrawal(successful_application, engine.person(JOHN)).unwrap()
        decided = engine.applications.withdraw(successful_application, engine.person(MICHAEL), approve=False).unwrap()

        assert decided.is_approved is False
        assert successful_application.status == ApplicationStatus.SUCCESSFUL
        assert engine.person(JOHN).active_application_id == successful_application.application_id
        assert engine.applications.pending_withdrawals(engine.project(ACACIA)) == []

    def test_manager_withdraws_without_request(self, engine, successful_application):
        decided = engine.applications.withdraw(successful_application, engine.person(MICHAEL), approve=True).unwrap()
        assert decided.requested_at == decided.processed_at
        assert engine.applications.withdrawals_for(successful_application) == [decided]

    def test_ledger_fault_stores_no_request(self, engine, handling_officer, successful_application):
        engine.applications.book_flat(successful_application, handling_officer, FlatType.TWO_ROOM).unwrap()
        # ledger already back at its total, so the release cannot be applied
        engine.ledger.increment(ACACIA, FlatType.TWO_ROOM)

        with pytest.raises(InventoryError):
            engine.applications.withdraw(successful_application, engine.person(MICHAEL), approve=True)

        assert engine.applications.withdrawals_for(successful_application) == []
        assert successful_application.status == ApplicationStatus.BOOKED

    def test_only_owning_manager(self, engine, successful_application):
        result = engine.applications.withdraw(successful_application, engine.person(JESSICA), approve=True)
        assert isinstance(result.error, AuthorizationError)

    def test_withdrawn_is_terminal(self, engine, successful_application):
        engine.applications.withdraw(successful_application, engine.person(MICHAEL), approve=True).unwrap()
        result = engine.applications.withdraw(successful_application, engine.person(MICHAEL), approve=True)
        assert isinstance(result.error, StateError)


class TestQueries:
    def test_by_status_and_pending(self, engine, successful_application):
        sarah_app = engine.applications.create(engine.person(SARAH), engine.project(ACACIA)).unwrap()
        engine.applications.request_withdrawal(sarah_app, engine.person(SARAH)).unwrap()
        acacia = engine.project(ACACIA)

        assert engine.applications.by_status(acacia, ApplicationStatus.PENDING) == [sarah_app]
        assert engine.applications.by_status(acacia, ApplicationStatus.SUCCESSFUL) == [successful_application]
        assert [r.application_id for r in engine.applications.pending_withdrawals(acacia)] == [sarah_app.application_id]
        assert engine.applications.active_for(engine.person(SARAH)) is sarah_app
        assert len(engine.applications.for_project(acacia)) == 2

    def test_officer_lookup_for_handler(self, engine, handling_officer):
        assert handling_officer.nric == DANIEL
        assert handling_officer.handles(ACACIA)
