import logging

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from chatgate.handlers import GatewayHandler

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/chat", tags=["chat"])
@router.post("/", tags=["chat"], include_in_schema=False)
async def chat(request: Request):
    """
    Stream a model reply to the posted conversation history.

    The body is a JSON array of ``{role, content: [{text}]}`` turns. The
    response body is a sequence of concatenated JSON values with no
    delimiter: relayed provider events, then at most one ``{"error": ...}``.
    Failures found before streaming starts are returned as a single
    ``{"error": ...}`` body with a 4xx/5xx status.
    """
    handler = GatewayHandler(request.app.state.gateway)
    request.state.request_id = handler.request_id

    body = await request.body()
    await handler.prepare(request.headers.get("authorization"), body)

    return StreamingResponse(
        handler.stream(),
        media_type="application/json",
        headers={
            "X-Request-ID": handler.request_id,
            "X-Accel-Buffering": "no",
            "Cache-Control": "no-cache",
        },
    )
