"""SQLAlchemy models for State Store."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


class UserRole(StrEnum):
    """Role of a portal user."""

    STUDENT = "STUDENT"
    STAFF = "STAFF"
    REGISTRAR = "REGISTRAR"
    ADMIN = "ADMIN"


class RegistrationStatus(StrEnum):
    """Lifecycle state of a semester registration."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class CourseUploadStatus(StrEnum):
    """Lifecycle state of a single course request inside a registration."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class OutboxStatus(StrEnum):
    """Delivery state of a queued email."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


# Registrations that can still be submitted, reviewed, or cancelled.
OPEN_REGISTRATION_STATES = frozenset({RegistrationStatus.DRAFT, RegistrationStatus.PENDING})


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (SQLite stores no offset)."""
    return datetime.now(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """User model - students and staff of the portal."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __init__(
        self,
        name: str,
        email: str,
        id: str | None = None,
        role: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.name = name
        self.email = email
        self.role = role if role is not None else UserRole.STUDENT.value

    @property
    def user_role(self) -> UserRole:
        """Get role as UserRole enum."""
        return UserRole(self.role)

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, email={self.email!r}, role={self.role!r})>"


class Semester(Base):
    """Semester model - academic term students register for."""

    __tablename__ = "semesters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __init__(
        self,
        name: str,
        id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        is_current: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.name = name
        self.start_date = start_date
        self.end_date = end_date
        self.is_current = is_current

    def __repr__(self) -> str:
        return f"<Semester(id={self.id!r}, name={self.name!r})>"


class Course(Base):
    """Course model - catalog entry with a credit value."""

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __init__(
        self,
        code: str,
        title: str,
        credits: int,
        id: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.code = code
        self.title = title
        self.credits = credits

    def __repr__(self) -> str:
        return f"<Course(id={self.id!r}, code={self.code!r}, credits={self.credits!r})>"


class Payment(Base):
    """Payment model - fee payment a student made for a semester."""

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    semester_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("semesters.id"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)
    reference: Mapped[str] = mapped_column(String(100), nullable=False)
    paid_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __init__(
        self,
        user_id: str,
        semester_id: str,
        amount: float,
        reference: str,
        id: str | None = None,
        paid_at: datetime | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.user_id = user_id
        self.semester_id = semester_id
        self.amount = amount
        self.reference = reference
        self.paid_at = paid_at if paid_at is not None else utcnow()

    def __repr__(self) -> str:
        return f"<Payment(id={self.id!r}, reference={self.reference!r}, amount={self.amount!r})>"


class Registration(Base):
    """Registration model - a student's enrollment intent for one semester."""

    __tablename__ = "registrations"
    __table_args__ = (UniqueConstraint("user_id", "semester_id", name="uq_registration_user_sem"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    semester_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("semesters.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    reviewed_by_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    user: Mapped[User] = relationship("User", foreign_keys=[user_id])
    semester: Mapped[Semester] = relationship("Semester")
    course_uploads: Mapped[list[CourseUpload]] = relationship(
        "CourseUpload",
        back_populates="registration",
        cascade="all, delete-orphan",
        order_by="CourseUpload.created_at",
    )

    def __init__(
        self,
        user_id: str,
        semester_id: str,
        id: str | None = None,
        status: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.user_id = user_id
        self.semester_id = semester_id
        self.status = status if status is not None else RegistrationStatus.DRAFT.value
        self.rejection_reason = None

    @property
    def registration_status(self) -> RegistrationStatus:
        """Get status as RegistrationStatus enum."""
        return RegistrationStatus(self.status)

    @registration_status.setter
    def registration_status(self, value: RegistrationStatus) -> None:
        """Set status from RegistrationStatus enum."""
        self.status = value.value

    @property
    def total_credits(self) -> int:
        """Credits of all course uploads that are pending or approved."""
        counted = (CourseUploadStatus.PENDING.value, CourseUploadStatus.APPROVED.value)
        return sum(u.course.credits for u in self.course_uploads if u.status in counted)

    def __repr__(self) -> str:
        return f"<Registration(id={self.id!r}, user_id={self.user_id!r}, status={self.status!r})>"


class CourseUpload(Base):
    """CourseUpload model - one course requested inside a registration."""

    __tablename__ = "course_uploads"
    __table_args__ = (
        UniqueConstraint("registration_id", "course_id", name="uq_course_upload_reg_course"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    registration_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("registrations.id"), nullable=False
    )
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    semester_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("semesters.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    registration: Mapped[Registration] = relationship(
        "Registration", back_populates="course_uploads"
    )
    course: Mapped[Course] = relationship("Course")

    def __init__(
        self,
        registration_id: str,
        course_id: str,
        user_id: str,
        semester_id: str,
        id: str | None = None,
        status: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.registration_id = registration_id
        self.course_id = course_id
        self.user_id = user_id
        self.semester_id = semester_id
        self.status = status if status is not None else CourseUploadStatus.PENDING.value
        self.rejection_reason = None

    @property
    def upload_status(self) -> CourseUploadStatus:
        """Get status as CourseUploadStatus enum."""
        return CourseUploadStatus(self.status)

    @upload_status.setter
    def upload_status(self, value: CourseUploadStatus) -> None:
        """Set status from CourseUploadStatus enum."""
        self.status = value.value

    def __repr__(self) -> str:
        return (
            f"<CourseUpload(id={self.id!r}, course_id={self.course_id!r}, "
            f"status={self.status!r})>"
        )


class RegistrationCard(Base):
    """RegistrationCard model - proof that a registration was approved."""

    __tablename__ = "registration_cards"
    __table_args__ = (UniqueConstraint("user_id", "semester_id", name="uq_card_user_sem"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    semester_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("semesters.id"), nullable=False
    )
    card_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    issued_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __init__(
        self,
        user_id: str,
        semester_id: str,
        card_number: str,
        id: str | None = None,
        issued_date: datetime | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.user_id = user_id
        self.semester_id = semester_id
        self.card_number = card_number
        self.issued_date = issued_date if issued_date is not None else utcnow()

    def __repr__(self) -> str:
        return f"<RegistrationCard(id={self.id!r}, card_number={self.card_number!r})>"


class OutboxEmail(Base):
    """OutboxEmail model - email written with a state change, delivered later."""

    __tablename__ = "outbox_emails"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    to_address: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    text_body: Mapped[str] = mapped_column(Text, nullable=False)
    html_body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    def __init__(
        self,
        to_address: str,
        subject: str,
        text_body: str,
        html_body: str,
        id: str | None = None,
        status: str | None = None,
        attempts: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.to_address = to_address
        self.subject = subject
        self.text_body = text_body
        self.html_body = html_body
        self.status = status if status is not None else OutboxStatus.PENDING.value
        self.attempts = attempts
        self.last_error = None
        self.sent_at = None

    @property
    def recipients(self) -> list[str]:
        """Recipient addresses (stored comma-separated)."""
        return [a for a in self.to_address.split(",") if a]

    def __repr__(self) -> str:
        return (
            f"<OutboxEmail(id={self.id!r}, subject={self.subject!r}, status={self.status!r})>"
        )
