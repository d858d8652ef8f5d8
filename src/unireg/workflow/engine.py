"""RegistrationWorkflow - semester registration state machine."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, ParamSpec

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from unireg.notifier import templates
from unireg.notifier.outbox import QUEUED_KEY, Outbox
from unireg.state_store.models import (
    OPEN_REGISTRATION_STATES,
    Course,
    CourseUpload,
    CourseUploadStatus,
    Registration,
    RegistrationCard,
    RegistrationStatus,
    Semester,
    User,
    utcnow,
)
from unireg.workflow import queries
from unireg.workflow.cards import generate_card_number
from unireg.workflow.exceptions import (
    AlreadyRegisteredError,
    CardIssueError,
    CreditLimitExceededError,
    DuplicateCourseError,
    EmptyRegistrationError,
    ErrorCode,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    WorkflowError,
)
from unireg.workflow.models import ActionResult, Actor

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from unireg.api.events import EventManager
    from unireg.state_store import StateStore

logger = logging.getLogger(__name__)

P = ParamSpec("P")

DEFAULT_MAX_CREDIT_HOURS = 24
DEFAULT_REJECTION_REASON = "Registration rejected by registrar"
DEFAULT_COURSE_REJECTION_REASON = "Course rejected by registrar"
MAX_CARD_ATTEMPTS = 10
MAX_PAGE_SIZE = 100


def action(
    failure_message: str,
) -> Callable[[Callable[P, ActionResult]], Callable[P, ActionResult]]:
    """Turn workflow and persistence errors raised by an operation into results.

    WorkflowErrors become a failed result with their own code and message.
    SQLAlchemy errors are logged with traceback and reported as INTERNAL
    with ``failure_message``.
    """

    def decorator(func: Callable[P, ActionResult]) -> Callable[P, ActionResult]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> ActionResult:
            try:
                return func(*args, **kwargs)
            except WorkflowError as e:
                logger.info("%s refused: %s (%s)", func.__name__, e, e.code)
                return ActionResult.fail(e.code, str(e))
            except SQLAlchemyError as e:
                logger.exception("%s failed: %s", func.__name__, e)
                return ActionResult.fail(ErrorCode.INTERNAL, failure_message)

        return wrapper

    return decorator


def _queued_email_ids(session: Session) -> list[str]:
    """IDs of the outbox rows queued in ``session``."""
    return list(session.info.get(QUEUED_KEY, ()))


def _dashboard_paths(user_id: str) -> list[str]:
    return [
        "/dashboard/approvals",
        f"/dashboard/students/{user_id}",
        "/dashboard/registration",
    ]


class RegistrationWorkflow:
    """Drives semester registrations through their lifecycle.

    DRAFT -> PENDING -> APPROVED | REJECTED, and DRAFT | PENDING -> CANCELLED.
    Each transition commits its status change, dependent course-upload
    changes, card issuance, and queued notification emails in a single
    transaction. Email delivery and UI invalidation events happen only after
    that commit and can never undo or fail it.
    """

    def __init__(
        self,
        state_store: StateStore,
        outbox: Outbox,
        event_manager: EventManager | None = None,
        max_credit_hours: int = DEFAULT_MAX_CREDIT_HOURS,
        app_url: str = "http://localhost:3000",
        deliver_immediately: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the workflow.

        Args:
            state_store: StateStore providing transactions.
            outbox: Outbox that queues and delivers notification emails.
            event_manager: Receives cache-invalidation events (optional).
            max_credit_hours: Credit-hour cap per registration.
            app_url: Portal URL used for links in emails.
            deliver_immediately: Send the emails a transition queued right after it commits.
            clock: Returns seconds since the epoch; used for card numbers.
        """
        self.state_store = state_store
        self.outbox = outbox
        self.event_manager = event_manager
        self.max_credit_hours = max_credit_hours
        self.app_url = app_url.rstrip("/")
        self.deliver_immediately = deliver_immediately
        self._clock = clock

    # --- Student transitions ---

    @action("Failed to register for semester")
    def register_for_semester(self, user_id: str, semester_id: str) -> ActionResult:
        """Create a DRAFT registration for a student and semester."""
        try:
            with self.state_store.transaction() as session:
                if session.get(User, user_id) is None:
                    raise NotFoundError("User not found")
                if session.get(Semester, semester_id) is None:
                    raise NotFoundError("Semester not found")
                if queries.find_registration(session, user_id, semester_id) is not None:
                    raise AlreadyRegisteredError("Already registered for this semester")

                registration = Registration(user_id=user_id, semester_id=semester_id)
                session.add(registration)
                session.flush()
                registration = self._reload(session, registration.id)
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same pair
            raise AlreadyRegisteredError("Already registered for this semester") from e

        logger.info(
            "Registration %s created for user %s, semester %s",
            registration.id,
            user_id,
            semester_id,
        )
        self._invalidate(registration, ["/dashboard/registration"])
        return ActionResult.ok("Registered for semester", registration=registration)

    @action("Failed to add course")
    def add_course_to_registration(self, registration_id: str, course_id: str) -> ActionResult:
        """Add a course to a DRAFT registration as a PENDING course upload."""
        with self.state_store.transaction() as session:
            registration = self._get_registration(session, registration_id)
            if registration.registration_status != RegistrationStatus.DRAFT:
                raise InvalidStateError("Courses can only be added to a draft registration")

            course = session.get(Course, course_id)
            if course is None:
                raise NotFoundError("Course not found")
            if any(u.course_id == course_id for u in registration.course_uploads):
                raise DuplicateCourseError("Course already added to this registration")

            total = registration.total_credits + course.credits
            if total > self.max_credit_hours:
                raise CreditLimitExceededError(
                    f"Adding this course would exceed the maximum of "
                    f"{self.max_credit_hours} credits"
                )

            upload = CourseUpload(
                registration_id=registration.id,
                course_id=course.id,
                user_id=registration.user_id,
                semester_id=registration.semester_id,
            )
            upload.course = course
            registration.course_uploads.append(upload)
            session.flush()
            registration = self._reload(session, registration.id)

        logger.info("Course %s added to registration %s", course.code, registration_id)
        self._invalidate(registration, ["/dashboard/registration"])
        return ActionResult.ok(
            "Course added to registration",
            course_upload=upload,
            registration=registration,
            total_credits=registration.total_credits,
        )

    @action("Failed to remove course")
    def remove_course_from_registration(self, course_upload_id: str) -> ActionResult:
        """Delete a course upload while its registration is still DRAFT."""
        with self.state_store.transaction() as session:
            upload = session.get(CourseUpload, course_upload_id)
            if upload is None:
                raise NotFoundError("Course upload not found")

            registration = self._get_registration(session, upload.registration_id)
            if registration.registration_status != RegistrationStatus.DRAFT:
                raise InvalidStateError("Cannot remove a course from a submitted registration")

            registration.course_uploads.remove(upload)
            session.flush()
            registration = self._reload(session, registration.id)

        logger.info("Course upload %s removed from %s", course_upload_id, registration.id)
        self._invalidate(registration, ["/dashboard/registration"])
        return ActionResult.ok("Course removed from registration", registration=registration)

    @action("Failed to submit registration")
    def submit_registration(self, registration_id: str) -> ActionResult:
        """Submit a DRAFT registration for review and notify the registrars."""
        with self.state_store.transaction() as session:
            registration = self._get_registration(session, registration_id)
            if not registration.course_uploads:
                raise EmptyRegistrationError("Registration must have at least one course")
            if registration.registration_status != RegistrationStatus.DRAFT:
                raise InvalidStateError("Only a draft registration can be submitted")

            registration.registration_status = RegistrationStatus.PENDING
            registration.submitted_at = utcnow()

            student = registration.user
            Outbox.enqueue(
                session,
                templates.registration_submitted_for_registrars(
                    registrar_emails=queries.registrar_emails(session),
                    student_name=student.name,
                    semester_name=registration.semester.name,
                    course_count=len(registration.course_uploads),
                    submitted_at=registration.submitted_at,
                    app_url=self.app_url,
                ),
            )
            Outbox.enqueue(
                session,
                templates.registration_submitted_for_student(
                    student_email=student.email,
                    student_name=student.name,
                    semester_name=registration.semester.name,
                    registration_id=registration.id,
                    app_url=self.app_url,
                ),
            )
            queued = _queued_email_ids(session)
            session.flush()
            registration = self._reload(session, registration.id)

        logger.info("Registration %s submitted", registration_id)
        self._after_commit(registration, queued)
        return ActionResult.ok("Registration submitted for approval", registration=registration)

    # --- Review transitions ---

    @action("Failed to approve registration")
    def approve_registration(self, registration_id: str, actor: Actor | None) -> ActionResult:
        """Approve a registration, issue its card, and approve pending courses."""
        actor = self._require_reviewer(actor)

        with self.state_store.transaction() as session:
            registration = self._get_registration(session, registration_id)
            if not registration.course_uploads:
                raise EmptyRegistrationError("Registration must have at least one course")
            self._require_open(registration, "approve")

            registration.registration_status = RegistrationStatus.APPROVED
            registration.rejection_reason = None
            registration.reviewed_by_id = actor.id
            registration.reviewed_at = utcnow()

            card = queries.find_card(session, registration.user_id, registration.semester_id)
            if card is None:
                card = self._issue_card(session, registration.user_id, registration.semester_id)

            for upload in registration.course_uploads:
                if upload.upload_status == CourseUploadStatus.PENDING:
                    upload.upload_status = CourseUploadStatus.APPROVED

            Outbox.enqueue(
                session,
                templates.registration_approved(
                    student_email=registration.user.email,
                    student_name=registration.user.name,
                    semester_name=registration.semester.name,
                    card_number=card.card_number,
                    registration_id=registration.id,
                    app_url=self.app_url,
                ),
            )
            queued = _queued_email_ids(session)
            session.flush()
            registration = self._reload(session, registration.id)

        logger.info(
            "Registration %s approved by %s (card %s)",
            registration_id,
            actor.id,
            card.card_number,
        )
        self._after_commit(registration, queued)
        return ActionResult.ok(
            "Registration approved",
            registration=registration,
            registration_card=card,
        )

    @action("Failed to reject registration")
    def reject_registration(
        self,
        registration_id: str,
        actor: Actor | None,
        rejection_reason: str | None = DEFAULT_REJECTION_REASON,
    ) -> ActionResult:
        """Reject a registration and every course still pending in it."""
        actor = self._require_reviewer(actor)
        reason = rejection_reason if rejection_reason and rejection_reason.strip() else None
        reason = reason or DEFAULT_REJECTION_REASON

        with self.state_store.transaction() as session:
            registration = self._get_registration(session, registration_id)
            self._require_open(registration, "reject")

            registration.registration_status = RegistrationStatus.REJECTED
            registration.rejection_reason = reason
            registration.reviewed_by_id = actor.id
            registration.reviewed_at = utcnow()

            for upload in registration.course_uploads:
                if upload.upload_status == CourseUploadStatus.PENDING:
                    upload.upload_status = CourseUploadStatus.REJECTED

            Outbox.enqueue(
                session,
                templates.registration_rejected(
                    student_email=registration.user.email,
                    student_name=registration.user.name,
                    semester_name=registration.semester.name,
                    reason=reason,
                    app_url=self.app_url,
                ),
            )
            queued = _queued_email_ids(session)
            session.flush()
            registration = self._reload(session, registration.id)

        logger.info("Registration %s rejected by %s: %s", registration_id, actor.id, reason)
        self._after_commit(registration, queued)
        return ActionResult.ok("Registration rejected", registration=registration)

    @action("Failed to cancel registration")
    def cancel_registration(self, registration_id: str, actor: Actor | None) -> ActionResult:
        """Cancel a DRAFT or PENDING registration and all of its courses.

        Allowed for the owning student, registrars, and admins.
        """
        if actor is None:
            raise UnauthorizedError("Unauthorized")

        with self.state_store.transaction() as session:
            registration = self._get_registration(session, registration_id)
            if not actor.can_review and actor.id != registration.user_id:
                raise UnauthorizedError("Not allowed to cancel this registration")
            if registration.registration_status not in OPEN_REGISTRATION_STATES:
                raise InvalidStateError("Cannot cancel an approved or rejected registration")

            registration.registration_status = RegistrationStatus.CANCELLED
            for upload in registration.course_uploads:
                upload.upload_status = CourseUploadStatus.CANCELLED

            Outbox.enqueue(
                session,
                templates.registration_cancelled(
                    student_email=registration.user.email,
                    student_name=registration.user.name,
                    semester_name=registration.semester.name,
                    app_url=self.app_url,
                ),
            )
            queued = _queued_email_ids(session)
            session.flush()
            registration = self._reload(session, registration.id)

        logger.info("Registration %s cancelled by %s", registration_id, actor.id)
        self._after_commit(registration, queued)
        return ActionResult.ok("Registration cancelled", registration=registration)

    @action("Failed to approve course")
    def approve_course_upload(self, course_upload_id: str, actor: Actor | None) -> ActionResult:
        """Approve one pending course of a submitted registration."""
        self._require_reviewer(actor)

        with self.state_store.transaction() as session:
            upload = self._get_reviewable_upload(session, course_upload_id)
            upload.upload_status = CourseUploadStatus.APPROVED
            upload.rejection_reason = None
            session.flush()
            registration = self._reload(session, upload.registration_id)

        logger.info("Course upload %s approved", course_upload_id)
        self._after_commit(registration)
        return ActionResult.ok(
            "Course approved", course_upload=upload, registration=registration
        )

    @action("Failed to reject course")
    def reject_course_upload(
        self,
        course_upload_id: str,
        actor: Actor | None,
        reason: str | None = DEFAULT_COURSE_REJECTION_REASON,
    ) -> ActionResult:
        """Reject one pending course of a submitted registration."""
        self._require_reviewer(actor)
        reason = reason if reason and reason.strip() else DEFAULT_COURSE_REJECTION_REASON

        with self.state_store.transaction() as session:
            upload = self._get_reviewable_upload(session, course_upload_id)
            upload.upload_status = CourseUploadStatus.REJECTED
            upload.rejection_reason = reason

            student = session.get(User, upload.user_id)
            Outbox.enqueue(
                session,
                templates.course_rejected(
                    student_email=student.email if student else "",
                    student_name=student.name if student else "Student",
                    course_title=upload.course.title,
                    reason=reason,
                    app_url=self.app_url,
                ),
            )
            queued = _queued_email_ids(session)
            session.flush()
            registration = self._reload(session, upload.registration_id)

        logger.info("Course upload %s rejected: %s", course_upload_id, reason)
        self._after_commit(registration, queued)
        return ActionResult.ok(
            "Course rejected", course_upload=upload, registration=registration
        )

    # --- Queries ---

    @action("Failed to fetch registration card")
    def get_registration_card(self, user_id: str, semester_id: str) -> ActionResult:
        """Get the card for a student and semester.

        Without an issued card the registration and its courses are still
        returned so a slip can be previewed before approval.
        """
        with self.state_store.transaction() as session:
            card = queries.find_card(session, user_id, semester_id)
            registration = queries.find_registration(session, user_id, semester_id)
            if card is None and registration is None:
                raise NotFoundError("No registration found for this semester")
            payment = queries.latest_payment(session, user_id, semester_id)

        return ActionResult.ok(
            registration_card=card,
            registration=registration,
            payment=payment,
        )

    @action("Failed to fetch student registration")
    def get_student_registration(self, user_id: str, semester_id: str) -> ActionResult:
        """Get one student's registration for a semester with its total credits."""
        with self.state_store.transaction() as session:
            registration = queries.find_registration(session, user_id, semester_id)
            if registration is None:
                raise NotFoundError("No registration found for this semester")

        return ActionResult.ok(
            registration=registration,
            total_credits=registration.total_credits,
        )

    @action("Failed to fetch registration")
    def get_registration(self, registration_id: str) -> ActionResult:
        """Get a registration by ID."""
        with self.state_store.transaction() as session:
            registration = self._get_registration(session, registration_id)

        return ActionResult.ok(
            registration=registration,
            total_credits=registration.total_credits,
        )

    @action("Failed to fetch course upload")
    def get_course_upload(self, course_upload_id: str) -> ActionResult:
        """Get a course upload by ID with its course."""
        with self.state_store.transaction() as session:
            upload = session.get(CourseUpload, course_upload_id)
            if upload is None:
                raise NotFoundError("Course upload not found")
            _ = upload.course

        return ActionResult.ok(course_upload=upload)

    @action("Failed to fetch pending registrations")
    def get_all_pending_registrations(self) -> ActionResult:
        """All registrations awaiting review, newest first."""
        with self.state_store.transaction() as session:
            registrations = queries.pending_registrations(session)
        return ActionResult.ok(registrations=registrations)

    @action("Failed to fetch registrations")
    def get_all_registrations(
        self,
        status: RegistrationStatus | None = None,
        semester_id: str | None = None,
        user_id: str | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> ActionResult:
        """Filtered, paginated listing of registrations, newest first."""
        if page < 1:
            raise InvalidArgumentError("page must be at least 1")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise InvalidArgumentError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

        with self.state_store.transaction() as session:
            result = queries.list_registrations(
                session,
                status=status,
                semester_id=semester_id,
                user_id=user_id,
                page=page,
                page_size=page_size,
            )
        return ActionResult.ok(page=result)

    @action("Failed to fetch semester registrations")
    def get_semester_registrations(self, semester_id: str) -> ActionResult:
        """All registrations of one semester, newest first."""
        with self.state_store.transaction() as session:
            if session.get(Semester, semester_id) is None:
                raise NotFoundError("Semester not found")
            registrations = queries.semester_registrations(session, semester_id)
        return ActionResult.ok(registrations=registrations)

    @action("Failed to fetch registration stats")
    def get_registration_stats(self) -> ActionResult:
        """Counts by status and semester plus the 5 most recent registrations."""
        with self.state_store.transaction() as session:
            stats = queries.registration_stats(session)
        return ActionResult.ok(stats=stats)

    # --- Helpers ---

    def _get_registration(self, session: Session, registration_id: str) -> Registration:
        registration = queries.load_registration(session, registration_id)
        if registration is None:
            raise NotFoundError("Registration not found")
        return registration

    def _reload(self, session: Session, registration_id: str) -> Registration:
        registration = queries.load_registration(session, registration_id, refresh=True)
        if registration is None:
            raise NotFoundError("Registration not found")
        return registration

    def _get_reviewable_upload(self, session: Session, course_upload_id: str) -> CourseUpload:
        upload = session.get(CourseUpload, course_upload_id)
        if upload is None:
            raise NotFoundError("Course upload not found")
        if upload.upload_status != CourseUploadStatus.PENDING:
            raise InvalidStateError("Only a pending course can be reviewed")
        if upload.registration.registration_status != RegistrationStatus.PENDING:
            raise InvalidStateError("Courses can only be reviewed on a submitted registration")
        # Loaded here so the payload stays usable after the session closes
        _ = upload.course
        return upload

    @staticmethod
    def _require_reviewer(actor: Actor | None) -> Actor:
        if actor is None:
            raise UnauthorizedError("Unauthorized")
        if not actor.can_review:
            raise ForbiddenError("Only registrars and admins can review registrations")
        return actor

    @staticmethod
    def _require_open(registration: Registration, verb: str) -> None:
        if registration.registration_status not in OPEN_REGISTRATION_STATES:
            raise InvalidStateError(
                f"Cannot {verb} a registration that is {registration.status.lower()}"
            )

    def _issue_card(self, session: Session, user_id: str, semester_id: str) -> RegistrationCard:
        now_ms = int(self._clock() * 1000)
        for attempt in range(MAX_CARD_ATTEMPTS):
            card_number = generate_card_number(user_id, semester_id, now_ms + attempt)
            if not queries.card_number_taken(session, card_number):
                card = RegistrationCard(
                    user_id=user_id,
                    semester_id=semester_id,
                    card_number=card_number,
                )
                session.add(card)
                return card
            logger.warning("Card number %s already issued, retrying", card_number)
        raise CardIssueError("Could not generate a unique registration card number")

    def _after_commit(self, registration: Registration, queued: Sequence[str] = ()) -> None:
        self._deliver(queued)
        self._invalidate(registration, _dashboard_paths(registration.user_id))

    def _deliver(self, queued: Sequence[str]) -> None:
        if not self.deliver_immediately or not queued:
            return
        try:
            self.outbox.deliver(queued)
        except Exception as e:  # noqa: BLE001 - email never fails a committed transition
            logger.exception("Email delivery after commit failed: %s", e)

    def _invalidate(self, registration: Registration, paths: list[str]) -> None:
        if self.event_manager is None:
            return
        self.event_manager.emit_registration_updated(
            registration_id=registration.id,
            user_id=registration.user_id,
            status=registration.status,
            paths=paths,
        )
