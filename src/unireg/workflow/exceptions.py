"""Exceptions for the registration workflow.

Operations raise these internally; the operation boundary turns them into a
failed ActionResult carrying the matching ErrorCode.
"""

from enum import StrEnum


class ErrorCode(StrEnum):
    """Machine-readable failure reason of a workflow operation."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    DUPLICATE_COURSE = "DUPLICATE_COURSE"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    EMPTY_REGISTRATION = "EMPTY_REGISTRATION"
    CREDIT_LIMIT_EXCEEDED = "CREDIT_LIMIT_EXCEEDED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL = "INTERNAL"


class WorkflowError(Exception):
    """Base exception for workflow errors."""

    code = ErrorCode.INTERNAL


class NotFoundError(WorkflowError):
    """A registration, course upload, course, user, or semester is missing."""

    code = ErrorCode.NOT_FOUND


class InvalidStateError(WorkflowError):
    """The transition is not permitted from the current state."""

    code = ErrorCode.INVALID_STATE


class DuplicateCourseError(WorkflowError):
    """The course is already part of the registration."""

    code = ErrorCode.DUPLICATE_COURSE


class AlreadyRegisteredError(WorkflowError):
    """The student already has a registration for the semester."""

    code = ErrorCode.ALREADY_REGISTERED


class EmptyRegistrationError(WorkflowError):
    """The registration has no courses."""

    code = ErrorCode.EMPTY_REGISTRATION


class CreditLimitExceededError(WorkflowError):
    """Adding the course would exceed the credit-hour cap."""

    code = ErrorCode.CREDIT_LIMIT_EXCEEDED


class InvalidArgumentError(WorkflowError):
    """An argument is out of range (e.g. page number)."""

    code = ErrorCode.INVALID_ARGUMENT


class UnauthorizedError(WorkflowError):
    """No session, or the actor may not act on this registration."""

    code = ErrorCode.UNAUTHORIZED


class ForbiddenError(WorkflowError):
    """The actor's role does not allow the operation."""

    code = ErrorCode.FORBIDDEN


class CardIssueError(WorkflowError):
    """No unique registration card number could be generated."""

    code = ErrorCode.INTERNAL
