"""
AI chat API - streams a plain-text answer grounded in the public catalog.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from .deps import get_container
from .schemas import ChatRequest
from ..core.container import AppContainer

router = APIRouter()


@router.post("/chat")
async def chat(
    request: ChatRequest,
    container: AppContainer = Depends(get_container),
):
    """Stream the assistant's reply.

    Errors before the first chunk map to normal error responses; after that
    the stream just ends.
    """
    history = [turn.model_dump() for turn in request.history]
    messages = await container.assistant.prepare(request.message, history)

    reply = container.assistant.stream_reply(messages)
    try:
        first = await reply.__anext__()
    except StopAsyncIteration:
        first = ""

    async def body():
        if first:
            yield first
        async for chunk in reply:
            yield chunk

    return StreamingResponse(body(), media_type="text/plain; charset=utf-8")
