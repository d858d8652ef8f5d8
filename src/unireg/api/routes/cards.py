"""Registration card endpoint."""

from fastapi import APIRouter, Query

from unireg.api.dependencies import ActorDep, WorkflowDep
from unireg.api.errors import require_owner, unwrap
from unireg.api.models import (
    APIResponse,
    CardSlipResponse,
    PaymentResponse,
    RegistrationCardResponse,
    registration_to_response,
)

router = APIRouter(prefix="/registration-cards", tags=["registration-cards"])


@router.get("", response_model=APIResponse[CardSlipResponse])
def get_registration_card(
    workflow: WorkflowDep,
    actor: ActorDep,
    user_id: str = Query(..., description="Student ID"),
    semester_id: str = Query(..., description="Semester ID"),
) -> APIResponse[CardSlipResponse]:
    """Get a student's registration card, registration and latest payment."""
    require_owner(actor, user_id)
    result = unwrap(workflow.get_registration_card(user_id, semester_id))

    card = result["registration_card"]
    registration = result["registration"]
    payment = result["payment"]
    return APIResponse(
        data=CardSlipResponse(
            registration_card=RegistrationCardResponse.model_validate(card) if card else None,
            registration=registration_to_response(registration) if registration else None,
            payment=PaymentResponse.model_validate(payment) if payment else None,
        )
    )
