"""Outbox endpoint."""

from fastapi import APIRouter, Query

from unireg.api.dependencies import ActorDep, OutboxDep
from unireg.api.errors import require_staff
from unireg.api.models import APIResponse, FlushResponse

router = APIRouter(prefix="/outbox", tags=["outbox"])


@router.post("/flush", response_model=APIResponse[FlushResponse])
def flush_outbox(
    outbox: OutboxDep,
    actor: ActorDep,
    limit: int = Query(default=50, ge=1, le=500),
) -> APIResponse[FlushResponse]:
    """Deliver queued notification emails now."""
    require_staff(actor)
    result = outbox.flush(limit=limit)
    return APIResponse(
        message=f"{len(result.sent)} sent, {len(result.failed)} failed",
        data=FlushResponse.model_validate(result),
    )
