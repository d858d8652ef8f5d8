"""Unit tests for workflow read operations."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from unireg.state_store import Registration, RegistrationStatus
from unireg.workflow import ErrorCode, RegistrationWorkflow

if TYPE_CHECKING:
    from unireg.state_store import StateStore
    from tests.conftest import Campus

BASE_TIME = datetime(2024, 8, 1, 9, 0, 0)


def _register(
    workflow: RegistrationWorkflow,
    store: StateStore,
    user_id: str,
    semester_id: str,
    course_id: str | None,
    minutes: int,
) -> str:
    """Register with an explicit creation time so ordering is deterministic."""
    registration_id = workflow.register_for_semester(user_id, semester_id)["registration"].id
    if course_id is not None:
        workflow.add_course_to_registration(registration_id, course_id)
    with store.transaction() as session:
        session.get(Registration, registration_id).created_at = BASE_TIME + timedelta(
            minutes=minutes
        )
    return registration_id


@pytest.fixture
def students(store: StateStore) -> list[str]:
    """Six extra students for listings."""
    return [store.create_user(f"Student {i}", f"s{i}@uni.edu").id for i in range(6)]


@pytest.mark.unit
class TestGetRegistrationCard:
    """Tests for get_registration_card."""

    def test_approved_registration_card(
        self, workflow: RegistrationWorkflow, store: StateStore, campus: Campus
    ) -> None:
        """The card, registration and latest payment are returned together."""
        registration_id = _register(
            workflow, store, campus.student.id, campus.semester.id, campus.courses[0].id, 0
        )
        workflow.submit_registration(registration_id)
        approved = workflow.approve_registration(registration_id, campus.registrar_actor)
        store.record_payment(
            campus.student.id, campus.semester.id, 100.0, "PAY-OLD", paid_at=BASE_TIME
        )
        store.record_payment(
            campus.student.id,
            campus.semester.id,
            900.0,
            "PAY-NEW",
            paid_at=BASE_TIME + timedelta(days=3),
        )

        result = workflow.get_registration_card(campus.student.id, campus.semester.id)

        assert result.success is True
        assert result["registration_card"].card_number == (
            approved["registration_card"].card_number
        )
        assert result["registration"].id == registration_id
        assert result["registration"].course_uploads[0].course.code == "CS101"
        assert result["payment"].reference == "PAY-NEW"

    def test_slip_before_approval(
        self, workflow: RegistrationWorkflow, store: StateStore, campus: Campus
    ) -> None:
        """Without a card the registration is still returned."""
        _register(workflow, store, campus.student.id, campus.semester.id, campus.courses[0].id, 0)

        result = workflow.get_registration_card(campus.student.id, campus.semester.id)

        assert result.success is True
        assert result["registration_card"] is None
        assert result["registration"] is not None
        assert result["payment"] is None

    def test_nothing_found(self, workflow: RegistrationWorkflow, campus: Campus) -> None:
        """NOT_FOUND when neither a card nor a registration exists."""
        result = workflow.get_registration_card(campus.student.id, campus.semester.id)

        assert result.error == ErrorCode.NOT_FOUND


@pytest.mark.unit
class TestGetStudentRegistration:
    """Tests for get_student_registration."""

    def test_returns_total_credits(
        self, workflow: RegistrationWorkflow, store: StateStore, campus: Campus
    ) -> None:
        """Total credits include pending and approved courses."""
        registration_id = _register(
            workflow, store, campus.student.id, campus.semester.id, campus.courses[1].id, 0
        )
        workflow.add_course_to_registration(registration_id, campus.courses[3].id)

        result = workflow.get_student_registration(campus.student.id, campus.semester.id)

        assert result["registration"].id == registration_id
        assert result["total_credits"] == 6

    def test_not_registered(self, workflow: RegistrationWorkflow, campus: Campus) -> None:
        """NOT_FOUND when the student has no registration for the semester."""
        result = workflow.get_student_registration(campus.student.id, campus.next_semester.id)

        assert result.error == ErrorCode.NOT_FOUND


@pytest.mark.unit
class TestPendingRegistrations:
    """Tests for get_all_pending_registrations."""

    def test_only_pending_newest_first(
        self,
        workflow: RegistrationWorkflow,
        store: StateStore,
        campus: Campus,
        students: list[str],
    ) -> None:
        """DRAFT and reviewed registrations are excluded."""
        course_id = campus.courses[0].id
        older = _register(workflow, store, students[0], campus.semester.id, course_id, 1)
        newer = _register(workflow, store, students[1], campus.semester.id, course_id, 2)
        _register(workflow, store, students[2], campus.semester.id, course_id, 3)
        approved = _register(workflow, store, students[3], campus.semester.id, course_id, 4)
        for registration_id in (older, newer, approved):
            workflow.submit_registration(registration_id)
        workflow.approve_registration(approved, campus.registrar_actor)

        result = workflow.get_all_pending_registrations()

        assert [r.id for r in result["registrations"]] == [newer, older]
        assert result["registrations"][0].user.email == "s1@uni.edu"

    def test_empty(self, workflow: RegistrationWorkflow) -> None:
        """An empty list is a success."""
        result = workflow.get_all_pending_registrations()

        assert result.success is True
        assert result["registrations"] == []


@pytest.mark.unit
class TestGetAllRegistrations:
    """Tests for get_all_registrations."""

    @pytest.fixture
    def registrations(
        self,
        workflow: RegistrationWorkflow,
        store: StateStore,
        campus: Campus,
        students: list[str],
    ) -> list[str]:
        """Five Fall registrations (oldest first) and one Spring registration."""
        ids = [
            _register(workflow, store, student_id, campus.semester.id, campus.courses[0].id, i)
            for i, student_id in enumerate(students[:5])
        ]
        workflow.submit_registration(ids[0])
        workflow.submit_registration(ids[1])
        _register(workflow, store, students[0], campus.next_semester.id, None, 10)
        return ids

    def test_first_page(self, workflow: RegistrationWorkflow, registrations: list[str]) -> None:
        """Newest first; totals reflect all rows."""
        result = workflow.get_all_registrations(page=1, page_size=4)

        page = result["page"]
        assert page.total == 6
        assert page.total_pages == 2
        assert len(page.items) == 4
        assert page.items[1].id == registrations[4]

    def test_last_page(self, workflow: RegistrationWorkflow, registrations: list[str]) -> None:
        """The last page holds the remainder."""
        page = workflow.get_all_registrations(page=2, page_size=4)["page"]

        assert [r.id for r in page.items] == [registrations[1], registrations[0]]

    def test_page_past_end(self, workflow: RegistrationWorkflow, registrations: list[str]) -> None:
        """A page beyond the end is empty, not an error."""
        page = workflow.get_all_registrations(page=5, page_size=4)["page"]

        assert page.items == []
        assert page.total == 6

    def test_filter_by_status(
        self, workflow: RegistrationWorkflow, registrations: list[str]
    ) -> None:
        """Only registrations in the given status are counted and listed."""
        page = workflow.get_all_registrations(status=RegistrationStatus.PENDING)["page"]

        assert page.total == 2
        assert {r.id for r in page.items} == set(registrations[:2])

    def test_filter_by_semester_and_user(
        self,
        workflow: RegistrationWorkflow,
        registrations: list[str],
        campus: Campus,
        students: list[str],
    ) -> None:
        """Filters combine."""
        page = workflow.get_all_registrations(
            semester_id=campus.semester.id, user_id=students[0]
        )["page"]

        assert page.total == 1
        assert page.items[0].id == registrations[0]

    def test_empty_listing(self, workflow: RegistrationWorkflow) -> None:
        """No registrations means zero pages."""
        page = workflow.get_all_registrations()["page"]

        assert page.total == 0
        assert page.total_pages == 0

    @pytest.mark.parametrize(("page", "page_size"), [(0, 10), (1, 0), (1, 101)])
    def test_invalid_pagination(
        self, workflow: RegistrationWorkflow, page: int, page_size: int
    ) -> None:
        """Out-of-range paging arguments are rejected."""
        result = workflow.get_all_registrations(page=page, page_size=page_size)

        assert result.error == ErrorCode.INVALID_ARGUMENT


@pytest.mark.unit
class TestSemesterRegistrations:
    """Tests for get_semester_registrations."""

    def test_lists_semester_only(
        self,
        workflow: RegistrationWorkflow,
        store: StateStore,
        campus: Campus,
        students: list[str],
    ) -> None:
        """Registrations of other semesters are excluded."""
        fall = _register(workflow, store, students[0], campus.semester.id, None, 0)
        _register(workflow, store, students[0], campus.next_semester.id, None, 1)

        result = workflow.get_semester_registrations(campus.semester.id)

        assert [r.id for r in result["registrations"]] == [fall]

    def test_unknown_semester(self, workflow: RegistrationWorkflow) -> None:
        """NOT_FOUND for a semester that doesn't exist."""
        assert workflow.get_semester_registrations("missing").error == ErrorCode.NOT_FOUND


@pytest.mark.unit
class TestRegistrationStats:
    """Tests for get_registration_stats."""

    def test_counts(
        self,
        workflow: RegistrationWorkflow,
        store: StateStore,
        campus: Campus,
        students: list[str],
    ) -> None:
        """Counts by status and semester plus the five most recent."""
        course_id = campus.courses[0].id
        ids = [
            _register(workflow, store, s, campus.semester.id, course_id, i)
            for i, s in enumerate(students)
        ]
        spring = _register(workflow, store, students[0], campus.next_semester.id, course_id, 20)
        workflow.submit_registration(ids[0])
        workflow.submit_registration(ids[1])
        workflow.approve_registration(ids[1], campus.registrar_actor)
        workflow.cancel_registration(ids[2], campus.registrar_actor)

        stats = workflow.get_registration_stats()["stats"]

        assert stats.total == 7
        assert stats.by_status == {
            "DRAFT": 4,
            "PENDING": 1,
            "APPROVED": 1,
            "REJECTED": 0,
            "CANCELLED": 1,
        }
        assert [(s.semester_name, s.count) for s in stats.by_semester] == [
            ("Fall 2024", 6),
            ("Spring 2025", 1),
        ]
        assert [r.id for r in stats.recent] == [spring, ids[5], ids[4], ids[3], ids[2]]

    def test_empty_stats(self, workflow: RegistrationWorkflow) -> None:
        """Every status is present even without registrations."""
        stats = workflow.get_registration_stats()["stats"]

        assert stats.total == 0
        assert set(stats.by_status.values()) == {0}
        assert stats.by_semester == []
        assert stats.recent == []
