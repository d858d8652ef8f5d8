"""Unit tests for registration routes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fastapi import status

if TYPE_CHECKING:
    from fastapi.testclient import TestClient

    from tests.conftest import Campus
    from unireg.api.events import EventManager
    from unireg.state_store import User
    from unireg.workflow import RegistrationWorkflow


def _as(user: User) -> dict[str, str]:
    return {"X-User-Id": user.id}


def _register(client: TestClient, campus: Campus, student: User | None = None) -> dict:
    student = student or campus.student
    response = client.post(
        "/api/v1/registrations",
        json={"user_id": student.id, "semester_id": campus.semester.id},
        headers=_as(student),
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["data"]


def _add(client: TestClient, campus: Campus, registration_id: str, course_index: int):
    return client.post(
        f"/api/v1/registrations/{registration_id}/courses",
        json={"course_id": campus.courses[course_index].id},
        headers=_as(campus.student),
    )


@pytest.mark.unit
class TestRegister:
    """Tests for POST /registrations."""

    def test_register(self, client: TestClient, campus: Campus) -> None:
        """Creates a draft registration."""
        data = _register(client, campus)

        assert data["status"] == "DRAFT"
        assert data["user"]["email"] == "jane@uni.edu"
        assert data["semester"]["name"] == "Fall 2024"
        assert data["course_uploads"] == []
        assert data["total_credits"] == 0

    def test_envelope(self, client: TestClient, campus: Campus) -> None:
        """Responses use the success/message/data/error envelope."""
        response = client.post(
            "/api/v1/registrations",
            json={"user_id": campus.student.id, "semester_id": campus.semester.id},
            headers=_as(campus.student),
        )

        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Registered for semester"
        assert body["error"] is None

    def test_register_twice(self, client: TestClient, campus: Campus) -> None:
        """Returns 409 ALREADY_REGISTERED."""
        _register(client, campus)

        response = client.post(
            "/api/v1/registrations",
            json={"user_id": campus.student.id, "semester_id": campus.semester.id},
            headers=_as(campus.student),
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "ALREADY_REGISTERED"
        assert body["data"] is None

    def test_unknown_semester(self, client: TestClient, campus: Campus) -> None:
        """Returns 404 for a semester that doesn't exist."""
        response = client.post(
            "/api/v1/registrations",
            json={"user_id": campus.student.id, "semester_id": "missing"},
            headers=_as(campus.student),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "Semester not found"

    def test_no_session(self, client: TestClient, campus: Campus) -> None:
        """Returns 401 without X-User-Id."""
        response = client.post(
            "/api/v1/registrations",
            json={"user_id": campus.student.id, "semester_id": campus.semester.id},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "UNAUTHORIZED"

    def test_unknown_session_user(self, client: TestClient, campus: Campus) -> None:
        """An X-User-Id naming nobody is treated as no session."""
        response = client.post(
            "/api/v1/registrations",
            json={"user_id": campus.student.id, "semester_id": campus.semester.id},
            headers={"X-User-Id": "ghost"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_register_for_someone_else(self, client: TestClient, campus: Campus) -> None:
        """Students cannot register other students."""
        response = client.post(
            "/api/v1/registrations",
            json={"user_id": campus.other_student.id, "semester_id": campus.semester.id},
            headers=_as(campus.student),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_registrar_registers_student(self, client: TestClient, campus: Campus) -> None:
        """Registrars may act for students."""
        response = client.post(
            "/api/v1/registrations",
            json={"user_id": campus.student.id, "semester_id": campus.semester.id},
            headers=_as(campus.registrar),
        )

        assert response.status_code == status.HTTP_201_CREATED

    def test_missing_field(self, client: TestClient, campus: Campus) -> None:
        """Returns 422 INVALID_ARGUMENT for a malformed body."""
        response = client.post(
            "/api/v1/registrations",
            json={"user_id": campus.student.id},
            headers=_as(campus.student),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        body = response.json()
        assert body["error"] == "INVALID_ARGUMENT"
        assert "semester_id" in body["message"]


@pytest.mark.unit
class TestCourses:
    """Tests for adding and removing courses."""

    def test_add_course(self, client: TestClient, campus: Campus) -> None:
        """Adds a PENDING course and updates the credit total."""
        registration = _register(client, campus)

        response = _add(client, campus, registration["id"], 1)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["total_credits"] == 4
        (upload,) = data["course_uploads"]
        assert upload["status"] == "PENDING"
        assert upload["course"]["code"] == "MA201"

    def test_add_duplicate(self, client: TestClient, campus: Campus) -> None:
        """Returns 409 DUPLICATE_COURSE."""
        registration = _register(client, campus)
        _add(client, campus, registration["id"], 0)

        response = _add(client, campus, registration["id"], 0)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "DUPLICATE_COURSE"

    def test_credit_limit(self, client: TestClient, campus: Campus) -> None:
        """Returns 422 CREDIT_LIMIT_EXCEEDED past 24 credits."""
        registration = _register(client, campus)
        for index in (4, 2, 1):  # 12 + 6 + 4
            assert _add(client, campus, registration["id"], index).status_code == 201

        response = _add(client, campus, registration["id"], 0)  # +3

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "CREDIT_LIMIT_EXCEEDED"

    def test_add_to_unknown_registration(self, client: TestClient, campus: Campus) -> None:
        """Returns 404 when the registration is missing."""
        response = _add(client, campus, "missing", 0)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_add_to_other_students_registration(
        self, client: TestClient, campus: Campus
    ) -> None:
        """Returns 403 for somebody else's registration."""
        registration = _register(client, campus, campus.other_student)

        response = _add(client, campus, registration["id"], 0)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_remove_course(self, client: TestClient, campus: Campus) -> None:
        """DELETE /course-uploads/{id} removes the course."""
        registration = _register(client, campus)
        upload_id = _add(client, campus, registration["id"], 0).json()["data"][
            "course_uploads"
        ][0]["id"]

        response = client.delete(
            f"/api/v1/course-uploads/{upload_id}", headers=_as(campus.student)
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["course_uploads"] == []

    def test_remove_unknown_course(self, client: TestClient, campus: Campus) -> None:
        """Returns 404 for a missing course upload."""
        response = client.delete("/api/v1/course-uploads/missing", headers=_as(campus.student))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_remove_after_submit(self, client: TestClient, campus: Campus) -> None:
        """Returns 409 once the registration is submitted."""
        registration = _register(client, campus)
        upload_id = _add(client, campus, registration["id"], 0).json()["data"][
            "course_uploads"
        ][0]["id"]
        client.post(
            f"/api/v1/registrations/{registration['id']}/submit", headers=_as(campus.student)
        )

        response = client.delete(
            f"/api/v1/course-uploads/{upload_id}", headers=_as(campus.student)
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "INVALID_STATE"


@pytest.mark.unit
class TestSubmit:
    """Tests for POST /registrations/{id}/submit."""

    def test_submit(self, client: TestClient, campus: Campus) -> None:
        """Moves the registration to PENDING."""
        registration = _register(client, campus)
        _add(client, campus, registration["id"], 0)

        response = client.post(
            f"/api/v1/registrations/{registration['id']}/submit", headers=_as(campus.student)
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["status"] == "PENDING"
        assert data["submitted_at"] is not None

    def test_submit_empty(self, client: TestClient, campus: Campus) -> None:
        """Returns 422 EMPTY_REGISTRATION."""
        registration = _register(client, campus)

        response = client.post(
            f"/api/v1/registrations/{registration['id']}/submit", headers=_as(campus.student)
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "EMPTY_REGISTRATION"

    def test_submit_emits_event(
        self, client: TestClient, campus: Campus, event_manager: EventManager
    ) -> None:
        """Dashboards are told which views changed."""
        registration = _register(client, campus)
        _add(client, campus, registration["id"], 0)
        subscriber = event_manager.subscribe(user_id=campus.student.id)

        client.post(
            f"/api/v1/registrations/{registration['id']}/submit", headers=_as(campus.student)
        )

        event = subscriber.queue.get_nowait()
        assert event.data["status"] == "PENDING"
        assert "/dashboard/approvals" in event.data["paths"]


@pytest.mark.unit
class TestReadRoutes:
    """Tests for registration read endpoints."""

    def test_get_registration(self, client: TestClient, campus: Campus) -> None:
        """Owner can read their registration."""
        registration = _register(client, campus)

        response = client.get(
            f"/api/v1/registrations/{registration['id']}", headers=_as(campus.student)
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["id"] == registration["id"]

    def test_get_other_students_registration(self, client: TestClient, campus: Campus) -> None:
        """Returns 403 for another student."""
        registration = _register(client, campus)

        response = client.get(
            f"/api/v1/registrations/{registration['id']}", headers=_as(campus.other_student)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_get_missing(self, client: TestClient, campus: Campus) -> None:
        """Returns 404 for an unknown ID."""
        response = client.get("/api/v1/registrations/missing", headers=_as(campus.registrar))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "Registration not found"

    def test_list_requires_reviewer(self, client: TestClient, campus: Campus) -> None:
        """Students cannot list everybody's registrations."""
        response = client.get("/api/v1/registrations", headers=_as(campus.student))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_list_own(self, client: TestClient, campus: Campus) -> None:
        """Students may list with their own user_id."""
        _register(client, campus)
        _register(client, campus, campus.other_student)

        response = client.get(
            "/api/v1/registrations",
            params={"user_id": campus.student.id},
            headers=_as(campus.student),
        )

        assert response.status_code == status.HTTP_200_OK
        page = response.json()["data"]
        assert page["total"] == 1
        assert page["items"][0]["user_id"] == campus.student.id

    def test_list_filtered_and_paginated(self, client: TestClient, campus: Campus) -> None:
        """Registrars can filter by status and page through results."""
        _register(client, campus)
        _register(client, campus, campus.other_student)

        response = client.get(
            "/api/v1/registrations",
            params={"status": "DRAFT", "page": 1, "page_size": 1},
            headers=_as(campus.registrar),
        )

        page = response.json()["data"]
        assert page["total"] == 2
        assert page["total_pages"] == 2
        assert len(page["items"]) == 1

    def test_list_bad_page_size(self, client: TestClient, campus: Campus) -> None:
        """Returns 422 for page_size over the maximum."""
        response = client.get(
            "/api/v1/registrations",
            params={"page_size": 500},
            headers=_as(campus.registrar),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "INVALID_ARGUMENT"

    def test_list_bad_status(self, client: TestClient, campus: Campus) -> None:
        """Unknown statuses are rejected."""
        response = client.get(
            "/api/v1/registrations",
            params={"status": "ARCHIVED"},
            headers=_as(campus.registrar),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_pending(
        self, client: TestClient, campus: Campus, api_workflow: RegistrationWorkflow
    ) -> None:
        """Only submitted registrations are listed."""
        submitted = _register(client, campus)
        _add(client, campus, submitted["id"], 0)
        api_workflow.submit_registration(submitted["id"])
        _register(client, campus, campus.other_student)

        response = client.get("/api/v1/registrations/pending", headers=_as(campus.admin))

        data = response.json()["data"]
        assert [r["id"] for r in data] == [submitted["id"]]

    def test_stats(self, client: TestClient, campus: Campus) -> None:
        """Stats count registrations by status and semester."""
        _register(client, campus)
        _register(client, campus, campus.other_student)

        response = client.get("/api/v1/registrations/stats", headers=_as(campus.registrar))

        assert response.status_code == status.HTTP_200_OK
        stats = response.json()["data"]
        assert stats["total"] == 2
        assert stats["by_status"]["DRAFT"] == 2
        assert stats["by_semester"][0]["semester_name"] == "Fall 2024"
        assert len(stats["recent"]) == 2

    def test_stats_requires_reviewer(self, client: TestClient, campus: Campus) -> None:
        """Staff who aren't reviewers are refused."""
        response = client.get("/api/v1/registrations/stats", headers=_as(campus.staff))

        assert response.status_code == status.HTTP_403_FORBIDDEN
