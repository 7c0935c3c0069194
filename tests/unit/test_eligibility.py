"""
Eligibility rule tests
"""

from datetime import date

import pytest

from btoengine.core.errors import AuthorizationError, ConflictError, EligibilityError
from btoengine.domain import (
    EligibilityPolicy,
    FlatType,
    MaritalStatus,
    Person,
    Role,
    can_apply,
    can_register_as_officer,
    eligible_flat_types,
    is_eligible,
    windows_overlap,
)
from btoengine.domain.eligibility import check_flat_choice, find_overlap
from tests.conftest import ACACIA, CEDAR, MAPLE, sample_persons, sample_projects

TODAY = date(2025, 3, 10)


@pytest.fixture
def people():
    return sample_persons()


@pytest.fixture
def projects():
    return sample_projects()


def _apply(person, project, **kwargs):
    kwargs.setdefault("today", TODAY)
    kwargs.setdefault("has_active_application", False)
    return can_apply(person, project, **kwargs)


class TestWindowsOverlap:
    @pytest.mark.parametrize(
        "a, b, c, d, expected",
        [
            (date(2025, 3, 1), date(2025, 3, 31), date(2025, 3, 15), date(2025, 4, 15), True),
            (date(2025, 3, 1), date(2025, 3, 31), date(2025, 3, 31), date(2025, 4, 30), True),
            (date(2025, 3, 1), date(2025, 3, 31), date(2025, 4, 1), date(2025, 4, 30), False),
            (date(2025, 5, 1), date(2025, 5, 31), date(2025, 3, 1), date(2025, 3, 31), False),
        ],
    )
    def test_inclusive_bounds(self, a, b, c, d, expected):
        assert windows_overlap(a, b, c, d) is expected


class TestIsEligible:
    def test_single_applicant_rules(self):
        single = Person(nric="T7654321B", name="Sarah", age=35, marital_status=MaritalStatus.SINGLE)
        assert is_eligible(single, FlatType.TWO_ROOM)
        assert not is_eligible(single, FlatType.THREE_ROOM)
        single.age = 34
        assert not is_eligible(single, FlatType.TWO_ROOM)

    def test_married_applicant_rules(self):
        married = Person(nric="S1234567A", name="John", age=21, marital_status=MaritalStatus.MARRIED)
        assert is_eligible(married, FlatType.TWO_ROOM)
        assert is_eligible(married, FlatType.THREE_ROOM)
        married.age = 20
        assert not is_eligible(married, FlatType.THREE_ROOM)

    def test_policy_overrides(self):
        policy = EligibilityPolicy(single_min_age=30, single_flat_types=frozenset({FlatType.TWO_ROOM, FlatType.THREE_ROOM}))
        single = Person(nric="S9876543C", name="Grace", age=30, marital_status=MaritalStatus.SINGLE)
        assert is_eligible(single, FlatType.THREE_ROOM, policy)

    def test_eligible_flat_types_follow_project_order(self, people, projects):
        john = people["S1234567A"]
        assert eligible_flat_types(john, projects[ACACIA]) == [FlatType.TWO_ROOM, FlatType.THREE_ROOM]


class TestCanApply:
    def test_married_applicant(self, people, projects):
        result = _apply(people["S1234567A"], projects[ACACIA])
        assert result.unwrap() == [FlatType.TWO_ROOM, FlatType.THREE_ROOM]

    def test_single_applicant_limited_to_two_room(self, people, projects):
        assert _apply(people["T7654321B"], projects[ACACIA]).unwrap() == [FlatType.TWO_ROOM]

    def test_young_single_has_no_flat_type(self, people, projects):
        result = _apply(people["S9876543C"], projects[ACACIA])
        assert isinstance(result.error, EligibilityError)
        assert result.error.context["field"] == "flat_type"

    def test_active_application_conflicts(self, people, projects):
        result = _apply(people["S1234567A"], projects[ACACIA], has_active_application=True)
        assert isinstance(result.error, ConflictError)

    def test_manager_only_role_cannot_apply(self, people, projects):
        result = _apply(people["S5678901G"], projects[ACACIA])
        assert isinstance(result.error, AuthorizationError)

    def test_manager_cannot_apply_to_own_project(self, people, projects):
        michael = people["T8765432F"]
        michael.roles.add(Role.APPLICANT)
        result = _apply(michael, projects[ACACIA])
        assert isinstance(result.error, EligibilityError)
        assert result.error.context["field"] == "manager_nric"

    def test_officer_cannot_apply_to_handled_project(self, people, projects):
        daniel = people["T2109876H"]
        daniel.handling_projects.add(ACACIA)
        result = _apply(daniel, projects[ACACIA])
        assert isinstance(result.error, EligibilityError)

    def test_pending_registration_blocks(self, people, projects):
        result = _apply(people["T1234567J"], projects[ACACIA], has_pending_registration=True)
        assert isinstance(result.error, EligibilityError)

    def test_officer_may_apply_elsewhere(self, people, projects):
        emily = people["T1234567J"]
        emily.handling_projects.add(MAPLE)
        assert _apply(emily, projects[ACACIA]).is_ok()

    def test_hidden_project(self, people, projects):
        projects[ACACIA].visible = False
        result = _apply(people["S1234567A"], projects[ACACIA])
        assert result.error.context["field"] == "visible"

    def test_outside_window(self, people, projects):
        result = _apply(people["S1234567A"], projects[CEDAR])
        assert isinstance(result.error, EligibilityError)
        assert result.error.context["opening"] == "2025-05-01"

    def test_window_bounds_are_inclusive(self, people, projects):
        assert _apply(people["S1234567A"], projects[ACACIA], today=date(2025, 3, 31)).is_ok()


class TestCheckFlatChoice:
    def test_not_offered(self, people, projects):
        error = check_flat_choice(people["S1234567A"], projects[MAPLE], FlatType.THREE_ROOM)
        assert isinstance(error, EligibilityError)

    def test_not_eligible(self, people, projects):
        assert check_flat_choice(people["T7654321B"], projects[ACACIA], FlatType.THREE_ROOM) is not None

    def test_allowed(self, people, projects):
        assert check_flat_choice(people["T7654321B"], projects[ACACIA], FlatType.TWO_ROOM) is None


class TestCanRegisterAsOfficer:
    def _register(self, officer, project, **kwargs):
        kwargs.setdefault("has_application", False)
        kwargs.setdefault("has_open_registration", False)
        return can_register_as_officer(officer, project, **kwargs)

    def test_officer_can_register(self, people, projects):
        assert self._register(people["T2109876H"], projects[ACACIA]).is_ok()

    def test_non_officer(self, people, projects):
        assert isinstance(self._register(people["S1234567A"], projects[ACACIA]).error, AuthorizationError)

    def test_applied_to_project(self, people, projects):
        result = self._register(people["T2109876H"], projects[ACACIA], has_application=True)
        assert isinstance(result.error, EligibilityError)

    def test_duplicate_registration(self, people, projects):
        result = self._register(people["T2109876H"], projects[ACACIA], has_open_registration=True)
        assert isinstance(result.error, ConflictError)

    def test_overlapping_window(self, people, projects):
        maple = projects[MAPLE]
        result = self._register(
            people["T2109876H"], projects[ACACIA],
            handled_windows=[(maple.name, maple.opening_date, maple.closing_date)],
        )
        assert result.error.context["overlapping"] == MAPLE

    def test_no_slots(self, people, projects):
        project = projects[MAPLE]
        project.officers.append("T1234567J")
        result = self._register(people["T2109876H"], project)
        assert result.error.context["field"] == "officer_slots"

    def test_find_overlap_ignores_same_project(self, projects):
        acacia = projects[ACACIA]
        assert find_overlap(acacia, [(acacia.name, acacia.opening_date, acacia.closing_date)]) is None
        cedar = projects[CEDAR]
        assert find_overlap(acacia, [(cedar.name, cedar.opening_date, cedar.closing_date)]) is None
