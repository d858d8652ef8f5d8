"""Server-Sent Events (SSE) endpoint."""

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from unireg.api.dependencies import EventManagerDep

router = APIRouter(prefix="/events", tags=["events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # nginx must not buffer the stream
}


@router.get("/stream")
async def event_stream(
    event_manager: EventManagerDep,
    user_id: str | None = Query(default=None, description="Only events about this student"),
) -> StreamingResponse:
    """Stream registration_updated events.

    Dashboards re-fetch the views listed in each event's ``paths``.
    """
    subscriber = event_manager.subscribe(user_id)
    return StreamingResponse(
        event_manager.stream(subscriber),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
