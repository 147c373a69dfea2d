"""Edit endpoint - per-requirement inline edits, as JSON or an event stream."""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from api.dependencies import get_edit_service
from api.streaming import SSE_HEADERS, stream_edit_events
from services import EditService
from services.models import EditRequest, EditResponse

router = APIRouter()


@router.post("/ai-edit", response_model=EditResponse)
def ai_edit(
    body: EditRequest,
    svc: EditService = Depends(get_edit_service),
):
    """Resolve requirements against the document.

    With ``stream=true`` the response is ``text/event-stream`` carrying
    ``progress`` events followed by ``done`` or ``error``.
    """
    if body.stream:
        return StreamingResponse(
            stream_edit_events(svc, body),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )
    return svc.run_edit(body)
