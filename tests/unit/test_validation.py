"""
Field validation and record construction tests
"""

from datetime import date, datetime, timezone

import pytest

from btoengine.core.errors import ValidationError
from btoengine.domain import (
    Application,
    ApplicationStatus,
    Enquiry,
    FlatOffer,
    FlatType,
    MaritalStatus,
    Person,
    Project,
    Role,
    WithdrawalRequest,
)
from btoengine.domain.validation import (
    is_valid_nric,
    parse_date,
    parse_timestamp,
    require_text,
    validate_nric,
)


class TestNric:
    @pytest.mark.parametrize("nric", ["S1234567A", "T7654321Z"])
    def test_valid(self, nric):
        assert is_valid_nric(nric)
        assert validate_nric(nric) == nric

    @pytest.mark.parametrize(
        "nric",
        [
            "", None, "A1234567B", "S123456A", "S12345678A", "s1234567a", "S1234567",
            # Arabic-Indic digits
            "S\u0661\u0662\u0663\u0664\u0665\u0666\u0667A",
        ],
    )
    def test_invalid(self, nric):
        assert not is_valid_nric(nric)
        with pytest.raises(ValidationError) as exc:
            validate_nric(nric, field="applicant_nric")
        assert exc.value.context["field"] == "applicant_nric"


class TestRequireText:
    def test_strips(self):
        assert require_text("  When is the launch?  ", field="message") == "When is the launch?"

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_blank_rejected(self, value):
        with pytest.raises(ValidationError):
            require_text(value, field="message")

    @pytest.mark.parametrize("value", ["a, b", "line\nbreak", "cr\rhere"])
    def test_delimiters_rejected(self, value):
        with pytest.raises(ValidationError) as exc:
            require_text(value, field="reply", entity_id="ENQ-1")
        assert exc.value.context == {"field": "reply", "id": "ENQ-1"}


class TestDates:
    def test_parse_date(self):
        assert parse_date("2025-03-01", field="opening_date") == date(2025, 3, 1)
        assert parse_date(datetime(2025, 3, 1, 8, 0), field="opening_date") == date(2025, 3, 1)

    def test_parse_date_rejects_other_formats(self):
        with pytest.raises(ValidationError):
            parse_date("01/03/2025", field="opening_date")

    def test_parse_timestamp(self):
        assert parse_timestamp("2025-03-10T09:30:15", field="created_at") == datetime(2025, 3, 10, 9, 30, 15)

    def test_parse_timestamp_rejects_garbage(self):
        with pytest.raises(ValidationError):
            parse_timestamp("yesterday", field="created_at")

    @pytest.mark.parametrize(
        "raw", ["2025-03-01T10:00:00+08:00", datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)]
    )
    def test_parse_timestamp_rejects_utc_offset(self, raw):
        with pytest.raises(ValidationError) as exc:
            parse_timestamp(raw, field="created_at")
        assert exc.value.context["field"] == "created_at"


class TestDisplayEnum:
    @pytest.mark.parametrize("raw", ["2-Room", "2-room", "TWO_ROOM", " two room "])
    def test_flat_type_parse(self, raw):
        assert FlatType.parse(raw) is FlatType.TWO_ROOM

    def test_unknown_value(self):
        with pytest.raises(ValidationError) as exc:
            MaritalStatus.parse("Divorced", field="marital_status")
        assert exc.value.context["field"] == "marital_status"

    def test_str_is_display_value(self):
        assert str(ApplicationStatus.BOOKED) == "Booked"


class TestPerson:
    def test_defaults_to_applicant(self):
        person = Person(nric="S1234567A", name=" John ", age="40", marital_status="married")
        assert person.name == "John"
        assert person.age == 40
        assert person.marital_status is MaritalStatus.MARRIED
        assert person.roles == {Role.APPLICANT}

    def test_negative_age(self):
        with pytest.raises(ValidationError):
            Person(nric="S1234567A", name="John", age=-1, marital_status="Single")

    def test_non_integer_age(self):
        with pytest.raises(ValidationError) as exc:
            Person(nric="S1234567A", name="John", age="forty", marital_status="Single")
        assert exc.value.context["field"] == "age"

    def test_dict_roundtrip_skips_derived_fields(self):
        person = Person(nric="T2109876H", name="Daniel", age=36, marital_status="Single", roles={"Officer"})
        person.handling_projects.add("Acacia Breeze")
        data = person.to_dict()
        assert "handling_projects" not in data
        assert Person.from_dict(data).handling_projects == set()


class TestProject:
    def _project(self, **overrides):
        fields = dict(
            name="Acacia Breeze",
            neighborhood="Yishun",
            opening_date="2025-03-01",
            closing_date="2025-03-31",
            flats={"2-Room": FlatOffer(total_units=5, available_units=5, price=350000)},
            manager_nric="T8765432F",
            officer_slots=3,
        )
        fields.update(overrides)
        return Project(**fields)

    def test_parses_fields(self):
        project = self._project()
        assert project.opening_date == date(2025, 3, 1)
        assert project.flat_types == [FlatType.TWO_ROOM]
        assert project.is_open(date(2025, 3, 31))
        assert not project.is_open(date(2025, 4, 1))

    def test_closing_before_opening(self):
        with pytest.raises(ValidationError):
            self._project(closing_date="2025-02-28")

    def test_officers_beyond_slots(self):
        with pytest.raises(ValidationError):
            self._project(officer_slots=1, officers=["T2109876H", "T1234567J"])

    def test_offer_available_above_total(self):
        with pytest.raises(ValidationError):
            FlatOffer(total_units=2, available_units=3, price=1)


class TestRecords:
    def test_booked_application_needs_flat_type(self):
        with pytest.raises(ValidationError):
            Application(application_id="A1", applicant_nric="S1234567A", project_name="Acacia Breeze", status="Booked")

    def test_application_binding_statuses(self):
        app = Application(application_id="A1", applicant_nric="S1234567A", project_name="Acacia Breeze")
        assert app.holds_binding and app.is_active
        app.status = ApplicationStatus.UNSUCCESSFUL
        assert not app.holds_binding

    def test_enquiry_reply_needs_time(self):
        with pytest.raises(ValidationError):
            Enquiry(
                enquiry_id="ENQ-1", creator_nric="S1234567A", project_name="Acacia Breeze",
                message="Hi", created_at="2025-03-10T09:00:00", reply="Hello",
            )

    def test_withdrawal_decision_recorded_together(self):
        with pytest.raises(ValidationError):
            WithdrawalRequest(
                request_id="WDR-1", application_id="A1", requested_at="2025-03-10T09:00:00", is_approved=True,
            )
