"""Course upload endpoints."""

from fastapi import APIRouter

from unireg.api.dependencies import ActorDep, WorkflowDep
from unireg.api.errors import require_owner, unwrap
from unireg.api.models import (
    APIResponse,
    CourseUploadResponse,
    RegistrationResponse,
    RejectRequest,
    course_upload_to_response,
    registration_to_response,
)

router = APIRouter(prefix="/course-uploads", tags=["course-uploads"])


@router.delete("/{course_upload_id}", response_model=APIResponse[RegistrationResponse])
def remove_course(
    course_upload_id: str, workflow: WorkflowDep, actor: ActorDep
) -> APIResponse[RegistrationResponse]:
    """Remove a course from a draft registration."""
    upload = unwrap(workflow.get_course_upload(course_upload_id))["course_upload"]
    require_owner(actor, upload.user_id)
    result = unwrap(workflow.remove_course_from_registration(course_upload_id))
    return APIResponse(
        message=result.message, data=registration_to_response(result["registration"])
    )


@router.post("/{course_upload_id}/approve", response_model=APIResponse[CourseUploadResponse])
def approve_course(
    course_upload_id: str, workflow: WorkflowDep, actor: ActorDep
) -> APIResponse[CourseUploadResponse]:
    """Approve a single pending course."""
    result = unwrap(workflow.approve_course_upload(course_upload_id, actor))
    return APIResponse(
        message=result.message, data=course_upload_to_response(result["course_upload"])
    )


@router.post("/{course_upload_id}/reject", response_model=APIResponse[CourseUploadResponse])
def reject_course(
    course_upload_id: str,
    workflow: WorkflowDep,
    actor: ActorDep,
    request: RejectRequest | None = None,
) -> APIResponse[CourseUploadResponse]:
    """Reject a single pending course."""
    reason = request.reason if request is not None else None
    result = unwrap(workflow.reject_course_upload(course_upload_id, actor, reason))
    return APIResponse(
        message=result.message, data=course_upload_to_response(result["course_upload"])
    )
