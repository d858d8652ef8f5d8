"""Pydantic models for REST API."""

from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    message: str | None = None
    data: T | None = None
    error: str | None = None


# Request models


class RegisterRequest(BaseModel):
    """Request model for registering a student for a semester."""

    user_id: str = Field(..., min_length=1, max_length=36)
    semester_id: str = Field(..., min_length=1, max_length=36)


class AddCourseRequest(BaseModel):
    """Request model for adding a course to a registration."""

    course_id: str = Field(..., min_length=1, max_length=36)


class RejectRequest(BaseModel):
    """Request model for rejecting a registration or course upload."""

    reason: str | None = Field(default=None, max_length=2000)


# Reference data models


class UserSummary(BaseModel):
    """Response model for the user owning a registration."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: str


class SemesterSummary(BaseModel):
    """Response model for a semester."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    start_date: date | None
    end_date: date | None
    is_current: bool


class CourseSummary(BaseModel):
    """Response model for a course."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    title: str
    credits: int


# Registration models


class CourseUploadResponse(BaseModel):
    """Response model for a course upload."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    registration_id: str
    course_id: str
    user_id: str
    semester_id: str
    status: str
    rejection_reason: str | None
    course: CourseSummary
    created_at: datetime
    updated_at: datetime


class RegistrationResponse(BaseModel):
    """Response model for a registration with its courses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    semester_id: str
    status: str
    rejection_reason: str | None
    submitted_at: datetime | None
    reviewed_by_id: str | None
    reviewed_at: datetime | None
    total_credits: int
    user: UserSummary
    semester: SemesterSummary
    course_uploads: list[CourseUploadResponse]
    created_at: datetime
    updated_at: datetime


def registration_to_response(registration: Any) -> RegistrationResponse:
    """Convert a Registration model to RegistrationResponse."""
    return RegistrationResponse.model_validate(registration)


def course_upload_to_response(upload: Any) -> CourseUploadResponse:
    """Convert a CourseUpload model to CourseUploadResponse."""
    return CourseUploadResponse.model_validate(upload)


class RegistrationCardResponse(BaseModel):
    """Response model for an issued registration card."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    semester_id: str
    card_number: str
    issued_date: datetime


class PaymentResponse(BaseModel):
    """Response model for a payment."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: float
    reference: str
    paid_at: datetime


class ApprovalResponse(BaseModel):
    """Response model for an approved registration and its card."""

    registration: RegistrationResponse
    registration_card: RegistrationCardResponse


class CardSlipResponse(BaseModel):
    """Response model for a registration card lookup.

    ``registration_card`` is None until the registration is approved.
    """

    registration_card: RegistrationCardResponse | None
    registration: RegistrationResponse | None
    payment: PaymentResponse | None


class PageResponse(BaseModel):
    """Response model for a page of registrations."""

    items: list[RegistrationResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


def page_to_response(page: Any) -> PageResponse:
    """Convert a workflow Page to PageResponse."""
    return PageResponse(
        items=[registration_to_response(r) for r in page.items],
        total=page.total,
        page=page.page,
        page_size=page.page_size,
        total_pages=page.total_pages,
    )


class SemesterCountResponse(BaseModel):
    """Response model for a per-semester registration count."""

    model_config = ConfigDict(from_attributes=True)

    semester_id: str
    semester_name: str
    count: int


class StatsResponse(BaseModel):
    """Response model for registration statistics."""

    total: int
    by_status: dict[str, int]
    by_semester: list[SemesterCountResponse]
    recent: list[RegistrationResponse]


def stats_to_response(stats: Any) -> StatsResponse:
    """Convert RegistrationStats to StatsResponse."""
    return StatsResponse(
        total=stats.total,
        by_status=stats.by_status,
        by_semester=[SemesterCountResponse.model_validate(s) for s in stats.by_semester],
        recent=[registration_to_response(r) for r in stats.recent],
    )


class FlushResponse(BaseModel):
    """Response model for an outbox flush."""

    model_config = ConfigDict(from_attributes=True)

    sent: list[str]
    failed: list[str]
