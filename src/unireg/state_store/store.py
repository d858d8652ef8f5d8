"""StateStore - Main API for State Store operations."""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from unireg.state_store.database import Database
from unireg.state_store.exceptions import (
    CourseExistsError,
    CourseNotFoundError,
    SemesterNotFoundError,
    UserExistsError,
    UserNotFoundError,
)
from unireg.state_store.models import (
    Course,
    Payment,
    Semester,
    User,
    UserRole,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class StateStore:
    """Main API for State Store operations.

    Provides CRUD operations for the reference data the registration workflow
    reads (users, semesters, courses, payments) and the transaction scope the
    workflow runs its multi-step transitions in.
    """

    def __init__(self, db_path: str = "unireg.db") -> None:
        """Initialize State Store with SQLite database.

        Creates database and tables if they don't exist.

        Args:
            db_path: Path to SQLite database file
        """
        self._db = Database(db_path)
        self._db.create_tables()

    @property
    def database(self) -> Database:
        """The underlying database manager."""
        return self._db

    def transaction(self) -> AbstractContextManager[Session]:
        """Open a session inside one transaction (commit on success, rollback on error)."""
        return self._db.transaction()

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    # --- User Operations ---

    def create_user(
        self,
        name: str,
        email: str,
        role: UserRole = UserRole.STUDENT,
        user_id: str | None = None,
    ) -> User:
        """Create a new user.

        Args:
            name: Display name
            email: Unique email address
            role: Portal role
            user_id: Explicit ID (generated when omitted)

        Returns:
            Created User object

        Raises:
            UserExistsError: If a user with the same email already exists
        """
        session = self._db.get_session()
        try:
            user = User(name=name, email=email, role=role.value, id=user_id)
            session.add(user)
            session.commit()
            session.refresh(user)
            return user
        except IntegrityError as e:
            session.rollback()
            raise UserExistsError(f"User with email '{email}' already exists") from e
        finally:
            session.close()

    def get_user(self, user_id: str) -> User:
        """Get user by ID.

        Raises:
            UserNotFoundError: If user doesn't exist
        """
        session = self._db.get_session()
        try:
            user = session.get(User, user_id)
            if user is None:
                raise UserNotFoundError(f"User with id '{user_id}' not found")
            return user
        finally:
            session.close()

    def find_user(self, user_id: str) -> User | None:
        """Get user by ID, or None if it doesn't exist."""
        session = self._db.get_session()
        try:
            return session.get(User, user_id)
        finally:
            session.close()

    def list_users(self, role: UserRole | None = None) -> list[User]:
        """List users, optionally only those with the given role.

        Returns:
            Users ordered by name
        """
        session = self._db.get_session()
        try:
            stmt = select(User)
            if role is not None:
                stmt = stmt.where(User.role == role.value)
            stmt = stmt.order_by(User.name)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    # --- Semester Operations ---

    def create_semester(
        self,
        name: str,
        start_date: date | None = None,
        end_date: date | None = None,
        is_current: bool = False,
        semester_id: str | None = None,
    ) -> Semester:
        """Create a new semester.

        Args:
            name: Semester name, e.g. "Fall 2024"
            start_date: First day of the semester
            end_date: Last day of the semester
            is_current: Whether this is the active semester
            semester_id: Explicit ID (generated when omitted)

        Returns:
            Created Semester object
        """
        session = self._db.get_session()
        try:
            semester = Semester(
                name=name,
                id=semester_id,
                start_date=start_date,
                end_date=end_date,
                is_current=is_current,
            )
            session.add(semester)
            session.commit()
            session.refresh(semester)
            return semester
        finally:
            session.close()

    def get_semester(self, semester_id: str) -> Semester:
        """Get semester by ID.

        Raises:
            SemesterNotFoundError: If semester doesn't exist
        """
        session = self._db.get_session()
        try:
            semester = session.get(Semester, semester_id)
            if semester is None:
                raise SemesterNotFoundError(f"Semester with id '{semester_id}' not found")
            return semester
        finally:
            session.close()

    def list_semesters(self) -> list[Semester]:
        """List all semesters, most recently started first."""
        session = self._db.get_session()
        try:
            stmt = select(Semester).order_by(
                Semester.start_date.desc().nulls_last(), Semester.created_at.desc()
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    # --- Course Operations ---

    def create_course(
        self,
        code: str,
        title: str,
        credits: int,
        course_id: str | None = None,
    ) -> Course:
        """Create a new catalog course.

        Args:
            code: Unique course code, e.g. "CS101"
            title: Course title
            credits: Credit hours (must be positive)
            course_id: Explicit ID (generated when omitted)

        Returns:
            Created Course object

        Raises:
            ValueError: If credits is not positive
            CourseExistsError: If a course with the same code already exists
        """
        if credits <= 0:
            raise ValueError("credits must be positive")

        session = self._db.get_session()
        try:
            course = Course(code=code, title=title, credits=credits, id=course_id)
            session.add(course)
            session.commit()
            session.refresh(course)
            return course
        except IntegrityError as e:
            session.rollback()
            raise CourseExistsError(f"Course with code '{code}' already exists") from e
        finally:
            session.close()

    def get_course(self, course_id: str) -> Course:
        """Get course by ID.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session()
        try:
            course = session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError(f"Course with id '{course_id}' not found")
            return course
        finally:
            session.close()

    def list_courses(self) -> list[Course]:
        """List all courses, ordered by code."""
        session = self._db.get_session()
        try:
            stmt = select(Course).order_by(Course.code)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    # --- Payment Operations ---

    def record_payment(
        self,
        user_id: str,
        semester_id: str,
        amount: float,
        reference: str,
        paid_at: datetime | None = None,
    ) -> Payment:
        """Record a fee payment for a student and semester.

        Raises:
            UserNotFoundError: If the user doesn't exist
            SemesterNotFoundError: If the semester doesn't exist
        """
        session = self._db.get_session()
        try:
            if session.get(User, user_id) is None:
                raise UserNotFoundError(f"User with id '{user_id}' not found")
            if session.get(Semester, semester_id) is None:
                raise SemesterNotFoundError(f"Semester with id '{semester_id}' not found")

            payment = Payment(
                user_id=user_id,
                semester_id=semester_id,
                amount=amount,
                reference=reference,
                paid_at=paid_at,
            )
            session.add(payment)
            session.commit()
            session.refresh(payment)
            return payment
        finally:
            session.close()

    def list_payments(self, user_id: str, semester_id: str) -> list[Payment]:
        """List a student's payments for a semester, most recent first."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Payment)
                .where(Payment.user_id == user_id, Payment.semester_id == semester_id)
                .order_by(Payment.paid_at.desc())
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()
