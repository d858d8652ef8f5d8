"""Workflow - Registration lifecycle, card issuance and reporting queries."""

from unireg.workflow.cards import CARD_NUMBER_PATTERN, generate_card_number
from unireg.workflow.engine import (
    DEFAULT_REJECTION_REASON,
    RegistrationWorkflow,
)
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
from unireg.workflow.models import (
    ActionResult,
    Actor,
    Page,
    RegistrationStats,
    SemesterCount,
)

__all__ = [
    "CARD_NUMBER_PATTERN",
    "DEFAULT_REJECTION_REASON",
    "ActionResult",
    "Actor",
    "AlreadyRegisteredError",
    "CardIssueError",
    "CreditLimitExceededError",
    "DuplicateCourseError",
    "EmptyRegistrationError",
    "ErrorCode",
    "ForbiddenError",
    "InvalidArgumentError",
    "InvalidStateError",
    "NotFoundError",
    "Page",
    "RegistrationStats",
    "RegistrationWorkflow",
    "SemesterCount",
    "UnauthorizedError",
    "WorkflowError",
    "generate_card_number",
]
