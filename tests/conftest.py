"""Shared pytest fixtures and configuration."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from unireg.notifier import LogMailer, Outbox
from unireg.state_store import Course, Semester, StateStore, User, UserRole
from unireg.workflow import Actor, RegistrationWorkflow


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures


@dataclass
class Campus:
    """Reference data most workflow tests need."""

    student: User
    other_student: User
    registrar: User
    admin: User
    staff: User
    semester: Semester
    next_semester: Semester
    courses: list[Course]

    @property
    def registrar_actor(self) -> Actor:
        return Actor(id=self.registrar.id, role=UserRole.REGISTRAR)

    @property
    def admin_actor(self) -> Actor:
        return Actor(id=self.admin.id, role=UserRole.ADMIN)

    @property
    def student_actor(self) -> Actor:
        return Actor(id=self.student.id, role=UserRole.STUDENT)


@pytest.fixture
def store():
    """Create an in-memory StateStore."""
    s = StateStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def campus(store: StateStore) -> Campus:
    """Seed users, two semesters and a small course catalog."""
    return Campus(
        student=store.create_user("Jane Student", "jane@uni.edu"),
        other_student=store.create_user("Omar Student", "omar@uni.edu"),
        registrar=store.create_user("Rita Registrar", "rita@uni.edu", role=UserRole.REGISTRAR),
        admin=store.create_user("Adam Admin", "adam@uni.edu", role=UserRole.ADMIN),
        staff=store.create_user("Sam Staff", "sam@uni.edu", role=UserRole.STAFF),
        semester=store.create_semester("Fall 2024", is_current=True),
        next_semester=store.create_semester("Spring 2025"),
        courses=[
            store.create_course("CS101", "Intro to Programming", 3),
            store.create_course("MA201", "Linear Algebra", 4),
            store.create_course("PH110", "Physics I", 6),
            store.create_course("EN300", "Technical Writing", 2),
            store.create_course("CS499", "Capstone Project", 12),
        ],
    )


@pytest.fixture
def mailer() -> LogMailer:
    """Mailer that records messages instead of sending them."""
    return LogMailer()


@pytest.fixture
def outbox(store: StateStore, mailer: LogMailer) -> Outbox:
    """Outbox delivering through the recording mailer."""
    return Outbox(store, mailer)


@pytest.fixture
def workflow(store: StateStore, outbox: Outbox) -> RegistrationWorkflow:
    """Workflow with immediate delivery and no event manager."""
    return RegistrationWorkflow(state_store=store, outbox=outbox, app_url="https://portal.test")
