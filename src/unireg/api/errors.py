"""Mapping of workflow results and access checks onto HTTP errors."""

from __future__ import annotations

from fastapi import status

from unireg.state_store import UserRole
from unireg.workflow import ActionResult, Actor, ErrorCode

HTTP_STATUS_BY_ERROR: dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.ALREADY_REGISTERED: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_COURSE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.EMPTY_REGISTRATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.CREDIT_LIMIT_EXCEEDED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_ARGUMENT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

STAFF_ROLES = frozenset({UserRole.STAFF, UserRole.REGISTRAR, UserRole.ADMIN})


class ActionFailedError(Exception):
    """A workflow operation or access check failed; rendered by the app's handler."""

    def __init__(self, error: ErrorCode, message: str | None) -> None:
        super().__init__(message or error.value)
        self.error = error
        self.message = message or error.value

    @property
    def status_code(self) -> int:
        """HTTP status for this failure."""
        return HTTP_STATUS_BY_ERROR.get(self.error, status.HTTP_500_INTERNAL_SERVER_ERROR)


def unwrap(result: ActionResult) -> ActionResult:
    """Return a successful result or raise ActionFailedError."""
    if not result.success:
        raise ActionFailedError(result.error or ErrorCode.INTERNAL, result.message)
    return result


def require_actor(actor: Actor | None) -> Actor:
    """Require a session."""
    if actor is None:
        raise ActionFailedError(ErrorCode.UNAUTHORIZED, "Unauthorized")
    return actor


def require_owner(actor: Actor | None, user_id: str) -> Actor:
    """Require the actor to be the student ``user_id`` or a registrar/admin."""
    actor = require_actor(actor)
    if actor.id != user_id and not actor.can_review:
        raise ActionFailedError(ErrorCode.FORBIDDEN, "Not allowed to act for this student")
    return actor


def require_reviewer(actor: Actor | None) -> Actor:
    """Require a registrar or admin."""
    actor = require_actor(actor)
    if not actor.can_review:
        raise ActionFailedError(ErrorCode.FORBIDDEN, "Registrar or admin role required")
    return actor


def require_staff(actor: Actor | None) -> Actor:
    """Require any non-student role."""
    actor = require_actor(actor)
    if actor.role not in STAFF_ROLES:
        raise ActionFailedError(ErrorCode.FORBIDDEN, "Staff role required")
    return actor
