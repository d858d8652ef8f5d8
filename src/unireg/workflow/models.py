"""Data models for the Workflow module."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from unireg.state_store.models import UserRole

if TYPE_CHECKING:
    from unireg.state_store import Registration
    from unireg.workflow.exceptions import ErrorCode

REVIEWER_ROLES = frozenset({UserRole.REGISTRAR, UserRole.ADMIN})


@dataclass(frozen=True)
class Actor:
    """The user a request acts on behalf of.

    Attributes:
        id: The user's unique ID.
        role: The user's portal role.
    """

    id: str
    role: UserRole

    @property
    def can_review(self) -> bool:
        """Whether the actor may approve or reject registrations."""
        return self.role in REVIEWER_ROLES


@dataclass
class ActionResult:
    """Uniform result of a workflow operation.

    Attributes:
        success: Whether the operation took effect.
        message: Human-readable outcome, suitable for a toast.
        error: Failure reason when ``success`` is False.
        payload: Operation-specific data (registration, card, page, ...).
    """

    success: bool
    message: str | None = None
    error: ErrorCode | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str | None = None, **payload: Any) -> ActionResult:
        """Build a successful result."""
        return cls(success=True, message=message, payload=payload)

    @classmethod
    def fail(cls, error: ErrorCode, message: str) -> ActionResult:
        """Build a failed result."""
        return cls(success=False, message=message, error=error)

    def __getitem__(self, key: str) -> Any:
        return self.payload[key]

    def get(self, key: str, default: Any = None) -> Any:
        """Get a payload value."""
        return self.payload.get(key, default)


@dataclass
class Page:
    """One page of a paginated listing."""

    items: list[Registration]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        """Number of pages needed for ``total`` items."""
        return math.ceil(self.total / self.page_size) if self.total else 0


@dataclass
class SemesterCount:
    """Number of registrations in one semester."""

    semester_id: str
    semester_name: str
    count: int


@dataclass
class RegistrationStats:
    """Aggregated registration counts for dashboards.

    Attributes:
        total: Number of registrations.
        by_status: Count per status; every status is present.
        by_semester: Count per semester, largest first.
        recent: The most recently created registrations.
    """

    total: int
    by_status: dict[str, int]
    by_semester: list[SemesterCount]
    recent: list[Registration]
