"""Session history endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from src.pipelines.inference.conversation.store import ConversationStore
from src.pipelines.inference.exceptions import SessionError

from ..dependencies import get_conversation_store
from ..models.schemas import MessageResponse, SessionMessagesResponse

router = APIRouter(prefix="/assistant", tags=["sessions"])


@router.get("/sessions/{chat_id}/messages", response_model=SessionMessagesResponse)
async def get_session_messages(
    chat_id: str,
    conversation_store: ConversationStore = Depends(get_conversation_store)
) -> SessionMessagesResponse:
    """Get the stored turns of a session, oldest first.

    Unknown sessions return an empty list; sessions are created lazily on
    their first message.
    """
    try:
        turns = conversation_store.get(chat_id)
    except SessionError as e:
        raise HTTPException(
            status_code=400,
            detail={"error_code": "INVALID_SESSION", "message": e.message}
        )

    messages = [
        MessageResponse(role=t.role.value, content=t.content, timestamp=t.timestamp)
        for t in turns
    ]

    return SessionMessagesResponse(chat_id=chat_id, messages=messages, total=len(messages))
