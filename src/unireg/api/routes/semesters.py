"""Semester endpoints."""

from fastapi import APIRouter

from unireg.api.dependencies import ActorDep, WorkflowDep
from unireg.api.errors import require_reviewer, unwrap
from unireg.api.models import APIResponse, RegistrationResponse, registration_to_response

router = APIRouter(prefix="/semesters", tags=["semesters"])


@router.get(
    "/{semester_id}/registrations",
    response_model=APIResponse[list[RegistrationResponse]],
)
def list_semester_registrations(
    semester_id: str, workflow: WorkflowDep, actor: ActorDep
) -> APIResponse[list[RegistrationResponse]]:
    """List all registrations of a semester."""
    require_reviewer(actor)
    result = unwrap(workflow.get_semester_registrations(semester_id))
    return APIResponse(data=[registration_to_response(r) for r in result["registrations"]])
