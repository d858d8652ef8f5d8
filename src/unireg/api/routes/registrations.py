"""Registration endpoints."""

from fastapi import APIRouter, Query, status

from unireg.api.dependencies import ActorDep, WorkflowDep
from unireg.api.errors import require_owner, require_reviewer, unwrap
from unireg.api.models import (
    AddCourseRequest,
    APIResponse,
    ApprovalResponse,
    PageResponse,
    RegisterRequest,
    RegistrationCardResponse,
    RegistrationResponse,
    RejectRequest,
    StatsResponse,
    page_to_response,
    registration_to_response,
    stats_to_response,
)
from unireg.state_store import RegistrationStatus
from unireg.workflow import DEFAULT_REJECTION_REASON, RegistrationWorkflow

router = APIRouter(prefix="/registrations", tags=["registrations"])


def _owner_of(workflow: RegistrationWorkflow, registration_id: str) -> str:
    result = unwrap(workflow.get_registration(registration_id))
    return result["registration"].user_id


@router.post(
    "",
    response_model=APIResponse[RegistrationResponse],
    status_code=status.HTTP_201_CREATED,
)
def register_for_semester(
    request: RegisterRequest, workflow: WorkflowDep, actor: ActorDep
) -> APIResponse[RegistrationResponse]:
    """Register a student for a semester."""
    require_owner(actor, request.user_id)
    result = unwrap(workflow.register_for_semester(request.user_id, request.semester_id))
    return APIResponse(
        message=result.message, data=registration_to_response(result["registration"])
    )


@router.get("", response_model=APIResponse[PageResponse])
def list_registrations(
    workflow: WorkflowDep,
    actor: ActorDep,
    status_filter: RegistrationStatus | None = Query(
        default=None, alias="status", description="Filter by status"
    ),
    semester_id: str | None = Query(default=None, description="Filter by semester ID"),
    user_id: str | None = Query(default=None, description="Filter by student ID"),
    page: int = Query(default=1),
    page_size: int = Query(default=10),
) -> APIResponse[PageResponse]:
    """List registrations with optional filters.

    Students only see their own registrations.
    """
    if user_id is not None:
        require_owner(actor, user_id)
    else:
        require_reviewer(actor)
    result = unwrap(
        workflow.get_all_registrations(
            status=status_filter,
            semester_id=semester_id,
            user_id=user_id,
            page=page,
            page_size=page_size,
        )
    )
    return APIResponse(data=page_to_response(result["page"]))


@router.get("/pending", response_model=APIResponse[list[RegistrationResponse]])
def list_pending_registrations(
    workflow: WorkflowDep, actor: ActorDep
) -> APIResponse[list[RegistrationResponse]]:
    """List registrations awaiting review."""
    require_reviewer(actor)
    result = unwrap(workflow.get_all_pending_registrations())
    return APIResponse(data=[registration_to_response(r) for r in result["registrations"]])


@router.get("/stats", response_model=APIResponse[StatsResponse])
def get_registration_stats(workflow: WorkflowDep, actor: ActorDep) -> APIResponse[StatsResponse]:
    """Get registration counts for dashboards."""
    require_reviewer(actor)
    result = unwrap(workflow.get_registration_stats())
    return APIResponse(data=stats_to_response(result["stats"]))


@router.get("/{registration_id}", response_model=APIResponse[RegistrationResponse])
def get_registration(
    registration_id: str, workflow: WorkflowDep, actor: ActorDep
) -> APIResponse[RegistrationResponse]:
    """Get a registration by ID."""
    result = unwrap(workflow.get_registration(registration_id))
    registration = result["registration"]
    require_owner(actor, registration.user_id)
    return APIResponse(data=registration_to_response(registration))


@router.post(
    "/{registration_id}/courses",
    response_model=APIResponse[RegistrationResponse],
    status_code=status.HTTP_201_CREATED,
)
def add_course(
    registration_id: str,
    request: AddCourseRequest,
    workflow: WorkflowDep,
    actor: ActorDep,
) -> APIResponse[RegistrationResponse]:
    """Add a course to a draft registration."""
    require_owner(actor, _owner_of(workflow, registration_id))
    result = unwrap(workflow.add_course_to_registration(registration_id, request.course_id))
    return APIResponse(
        message=result.message, data=registration_to_response(result["registration"])
    )


@router.post("/{registration_id}/submit", response_model=APIResponse[RegistrationResponse])
def submit_registration(
    registration_id: str, workflow: WorkflowDep, actor: ActorDep
) -> APIResponse[RegistrationResponse]:
    """Submit a draft registration for review."""
    require_owner(actor, _owner_of(workflow, registration_id))
    result = unwrap(workflow.submit_registration(registration_id))
    return APIResponse(
        message=result.message, data=registration_to_response(result["registration"])
    )


@router.post("/{registration_id}/approve", response_model=APIResponse[ApprovalResponse])
def approve_registration(
    registration_id: str, workflow: WorkflowDep, actor: ActorDep
) -> APIResponse[ApprovalResponse]:
    """Approve a registration and issue its card."""
    result = unwrap(workflow.approve_registration(registration_id, actor))
    return APIResponse(
        message=result.message,
        data=ApprovalResponse(
            registration=registration_to_response(result["registration"]),
            registration_card=RegistrationCardResponse.model_validate(
                result["registration_card"]
            ),
        ),
    )


@router.post("/{registration_id}/reject", response_model=APIResponse[RegistrationResponse])
def reject_registration(
    registration_id: str,
    workflow: WorkflowDep,
    actor: ActorDep,
    request: RejectRequest | None = None,
) -> APIResponse[RegistrationResponse]:
    """Reject a registration."""
    reason = request.reason if request is not None else None
    result = unwrap(
        workflow.reject_registration(registration_id, actor, reason or DEFAULT_REJECTION_REASON)
    )
    return APIResponse(
        message=result.message, data=registration_to_response(result["registration"])
    )


@router.post("/{registration_id}/cancel", response_model=APIResponse[RegistrationResponse])
def cancel_registration(
    registration_id: str, workflow: WorkflowDep, actor: ActorDep
) -> APIResponse[RegistrationResponse]:
    """Cancel a draft or pending registration."""
    result = unwrap(workflow.cancel_registration(registration_id, actor))
    return APIResponse(
        message=result.message, data=registration_to_response(result["registration"])
    )
