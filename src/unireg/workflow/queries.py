"""Read projections over registrations.

All functions take an open session; relationships needed by callers are
eager-loaded so the returned objects stay usable after the session closes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from unireg.state_store.models import (
    CourseUpload,
    Payment,
    Registration,
    RegistrationCard,
    RegistrationStatus,
    Semester,
    User,
    UserRole,
)
from unireg.workflow.models import Page, RegistrationStats, SemesterCount

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.orm import Session

RECENT_LIMIT = 5


def _with_details(stmt: Select[tuple[Registration]]) -> Select[tuple[Registration]]:
    return stmt.options(
        selectinload(Registration.user),
        selectinload(Registration.semester),
        selectinload(Registration.course_uploads).selectinload(CourseUpload.course),
    )


def load_registration(
    session: Session, registration_id: str, refresh: bool = False
) -> Registration | None:
    """Load a registration with its user, semester, and course uploads.

    Args:
        session: Open session.
        registration_id: The registration's unique ID.
        refresh: Reload attributes of an object already in the session.
    """
    stmt = _with_details(select(Registration).where(Registration.id == registration_id))
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    return session.execute(stmt).scalar_one_or_none()


def find_registration(session: Session, user_id: str, semester_id: str) -> Registration | None:
    """Find the registration of a student for a semester."""
    stmt = _with_details(
        select(Registration).where(
            Registration.user_id == user_id,
            Registration.semester_id == semester_id,
        )
    )
    return session.execute(stmt).scalar_one_or_none()


def find_card(session: Session, user_id: str, semester_id: str) -> RegistrationCard | None:
    """Find the registration card issued to a student for a semester."""
    stmt = select(RegistrationCard).where(
        RegistrationCard.user_id == user_id,
        RegistrationCard.semester_id == semester_id,
    )
    return session.execute(stmt).scalar_one_or_none()


def card_number_taken(session: Session, card_number: str) -> bool:
    """Whether a card with this number already exists."""
    stmt = select(RegistrationCard.id).where(RegistrationCard.card_number == card_number)
    return session.execute(stmt).first() is not None


def latest_payment(session: Session, user_id: str, semester_id: str) -> Payment | None:
    """Most recent payment a student made for a semester."""
    stmt = (
        select(Payment)
        .where(Payment.user_id == user_id, Payment.semester_id == semester_id)
        .order_by(Payment.paid_at.desc())
        .limit(1)
    )
    return session.execute(stmt).scalar_one_or_none()


def registrar_emails(session: Session) -> list[str]:
    """Email addresses of every user with the REGISTRAR role."""
    stmt = select(User.email).where(User.role == UserRole.REGISTRAR.value).order_by(User.email)
    return list(session.execute(stmt).scalars().all())


def pending_registrations(session: Session) -> list[Registration]:
    """Registrations awaiting review, newest first."""
    stmt = _with_details(
        select(Registration)
        .where(Registration.status == RegistrationStatus.PENDING.value)
        .order_by(Registration.created_at.desc())
    )
    return list(session.execute(stmt).scalars().all())


def semester_registrations(session: Session, semester_id: str) -> list[Registration]:
    """All registrations of a semester, newest first."""
    stmt = _with_details(
        select(Registration)
        .where(Registration.semester_id == semester_id)
        .order_by(Registration.created_at.desc())
    )
    return list(session.execute(stmt).scalars().all())


def list_registrations(
    session: Session,
    status: RegistrationStatus | None = None,
    semester_id: str | None = None,
    user_id: str | None = None,
    page: int = 1,
    page_size: int = 10,
) -> Page:
    """Filter registrations and return one page, newest first.

    The total is computed with a separate count query over the same filters.
    """
    conditions = []
    if status is not None:
        conditions.append(Registration.status == status.value)
    if semester_id is not None:
        conditions.append(Registration.semester_id == semester_id)
    if user_id is not None:
        conditions.append(Registration.user_id == user_id)

    count_stmt = select(func.count(Registration.id))
    stmt = select(Registration)
    if conditions:
        count_stmt = count_stmt.where(*conditions)
        stmt = stmt.where(*conditions)
    total = session.execute(count_stmt).scalar_one()

    stmt = _with_details(
        stmt.order_by(Registration.created_at.desc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    )
    items = list(session.execute(stmt).scalars().all())

    return Page(items=items, total=total, page=page, page_size=page_size)


def registration_stats(session: Session) -> RegistrationStats:
    """Counts by status and by semester, plus the most recent registrations."""
    by_status = {s.value: 0 for s in RegistrationStatus}
    status_rows = session.execute(
        select(Registration.status, func.count(Registration.id)).group_by(Registration.status)
    ).all()
    for status, count in status_rows:
        by_status[status] = count

    semester_rows = session.execute(
        select(Semester.id, Semester.name, func.count(Registration.id).label("n"))
        .join(Registration, Registration.semester_id == Semester.id)
        .group_by(Semester.id, Semester.name)
        .order_by(func.count(Registration.id).desc(), Semester.name)
    ).all()
    by_semester = [
        SemesterCount(semester_id=sid, semester_name=name, count=n)
        for sid, name, n in semester_rows
    ]

    recent_stmt = _with_details(
        select(Registration).order_by(Registration.created_at.desc()).limit(RECENT_LIMIT)
    )
    recent = list(session.execute(recent_stmt).scalars().all())

    return RegistrationStats(
        total=sum(by_status.values()),
        by_status=by_status,
        by_semester=by_semester,
        recent=recent,
    )
