"""
Booking report and receipt tests
"""

import pytest

from btoengine.application.reports import ReportFilter
from btoengine.core.errors import StateError
from btoengine.domain import FlatType, MaritalStatus
from tests.conftest import ACACIA, JOHN, MICHAEL, SARAH


@pytest.fixture
def bookings(engine, handling_officer, successful_application):
    michael = engine.person(MICHAEL)
    engine.applications.book_flat(successful_application, handling_officer, FlatType.THREE_ROOM).unwrap()
    sarah_app = engine.applications.create(engine.person(SARAH), engine.project(ACACIA)).unwrap()
    engine.applications.approve(sarah_app, michael).unwrap()
    engine.applications.book_flat(sarah_app, handling_officer, FlatType.TWO_ROOM).unwrap()
    return successful_application, sarah_app


class TestBookingReport:
    def test_lists_booked_only(self, engine, bookings):
        rows = engine.reports.booking_report()
        assert [(r.applicant_nric, r.flat_type) for r in rows] == [
            (SARAH, FlatType.TWO_ROOM),
            (JOHN, FlatType.THREE_ROOM),
        ]
        assert rows[1].price == 450000
        assert rows[1].neighborhood == "Yishun"

    def test_empty_without_bookings(self, engine, successful_application):
        assert engine.reports.booking_report() == []

    @pytest.mark.parametrize(
        "criteria, expected",
        [
            (ReportFilter(flat_type=FlatType.THREE_ROOM), [JOHN]),
            (ReportFilter(marital_status=MaritalStatus.SINGLE), [SARAH]),
            (ReportFilter(min_age=38), [JOHN]),
            (ReportFilter(max_age=37), [SARAH]),
            (ReportFilter(project_name="Maple Grove"), []),
            (ReportFilter(project_name=ACACIA, min_age=30, max_age=45), [SARAH, JOHN]),
        ],
    )
    def test_filters(self, engine, bookings, criteria, expected):
        assert [r.applicant_nric for r in engine.reports.booking_report(criteria)] == expected

    def test_record_dict(self, engine, bookings):
        data = engine.reports.booking_report(ReportFilter(flat_type=FlatType.THREE_ROOM))[0].to_dict()
        assert data["flat_type"] == "3-Room"
        assert data["marital_status"] == "Married"
        assert data["applicant_name"] == "John"


class TestReceipt:
    def test_receipt(self, engine, bookings):
        john_app, _ = bookings
        text = engine.reports.booking_receipt(john_app).unwrap()
        lines = text.splitlines()
        assert lines[0] == "===== BOOKING RECEIPT ====="
        assert lines[-1] == "===== END OF RECEIPT ====="
        assert "Name: John" in lines
        assert f"Application ID: {john_app.application_id}" in lines
        assert "Flat Type: 3-Room" in lines
        assert "Price: $450,000.00" in lines

    def test_receipt_requires_booking(self, engine, successful_application):
        result = engine.reports.booking_receipt(successful_application)
        assert isinstance(result.error, StateError)
