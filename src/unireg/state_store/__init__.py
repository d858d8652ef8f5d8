"""State Store - Persistent storage for registrations and reference data."""

from unireg.state_store.exceptions import (
    CourseExistsError,
    CourseNotFoundError,
    SemesterNotFoundError,
    StateStoreError,
    UserExistsError,
    UserNotFoundError,
)
from unireg.state_store.models import (
    OPEN_REGISTRATION_STATES,
    Course,
    CourseUpload,
    CourseUploadStatus,
    OutboxEmail,
    OutboxStatus,
    Payment,
    Registration,
    RegistrationCard,
    RegistrationStatus,
    Semester,
    User,
    UserRole,
)
from unireg.state_store.store import StateStore

__all__ = [
    "OPEN_REGISTRATION_STATES",
    "Course",
    "CourseExistsError",
    "CourseNotFoundError",
    "CourseUpload",
    "CourseUploadStatus",
    "OutboxEmail",
    "OutboxStatus",
    "Payment",
    "Registration",
    "RegistrationCard",
    "RegistrationStatus",
    "Semester",
    "SemesterNotFoundError",
    "StateStore",
    "StateStoreError",
    "User",
    "UserExistsError",
    "UserNotFoundError",
    "UserRole",
]
