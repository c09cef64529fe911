"""Chat endpoints with streaming support."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from src.pipelines.inference.exceptions import (
    InferenceTimeoutError,
    LLMError,
    SessionError,
)
from src.pipelines.inference.pipeline import ConversationOrchestrator

from ..dependencies import get_orchestrator
from ..models.schemas import ChatRequest, ChatResponse, ErrorResponse
from ..streaming import SSE_HEADERS, stream_events

router = APIRouter(prefix="/assistant", tags=["chat"])
logger = logging.getLogger(__name__)


def _error_detail(error) -> dict:
    return ErrorResponse(
        error_code=error.error_code or "INFERENCE_ERROR",
        message=error.message,
        details=error.details or None
    ).model_dump(exclude_none=True)


@router.api_route("/chat", methods=["GET", "POST"])
async def chat_stream(
    chat_id: str = Query(..., alias="chatId", min_length=1),
    message: str = Query(..., min_length=1),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator)
) -> StreamingResponse:
    """Stream a reply as server-sent events ending with ``data: [complete]``."""
    logger.info(f"Stream request: session={chat_id}, message={message[:50]}...")

    if not chat_id.strip() or not message.strip():
        raise HTTPException(
            status_code=400,
            detail={"error_code": "INVALID_REQUEST", "message": "chatId and message must not be blank"}
        )

    if not orchestrator.settings.enable_streaming:
        raise HTTPException(
            status_code=503,
            detail={"error_code": "STREAMING_DISABLED", "message": "Streaming is disabled"}
        )

    return StreamingResponse(
        stream_events(orchestrator.chat(chat_id, message)),
        media_type="text/event-stream",
        headers=SSE_HEADERS
    )


@router.post(
    "/call",
    response_model=ChatResponse,
    responses={502: {"model": ErrorResponse}, 504: {"model": ErrorResponse}}
)
async def chat_call(
    request: ChatRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator)
) -> ChatResponse:
    """Send a message and get the complete reply (non-streaming)."""
    logger.info(f"Chat request: session={request.chat_id}, message={request.message[:50]}...")

    try:
        reply = await orchestrator.call(request.chat_id, request.message)
    except SessionError as e:
        raise HTTPException(status_code=400, detail=_error_detail(e))
    except InferenceTimeoutError as e:
        logger.error(f"Chat timeout: {str(e)}")
        raise HTTPException(status_code=504, detail=_error_detail(e))
    except LLMError as e:
        logger.error(f"Chat error: {str(e)}")
        raise HTTPException(status_code=502, detail=_error_detail(e))

    logger.info(f"Chat response generated: session={request.chat_id}, length={len(reply.content)}")

    return ChatResponse(
        chat_id=reply.session_id,
        content=reply.content,
        state=reply.state,
        metadata=reply.metadata.model_dump()
    )
