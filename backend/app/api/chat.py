"""Chat API endpoints for the health advisor."""

import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_advisor_service, get_conversation_store, get_current_user_id
from app.schemas.chat import ChatRequest, ChatResponse, ResponseMetadataSchema
from app.services.advisor import AdvisorService, MalformedResponseError
from app.services.stores import ConversationWriter

logger = logging.getLogger("healthadvisor.api.chat")

router = APIRouter(prefix="/chat", tags=["Chat"])

TITLE_CHARS = 30


def conversation_title(message: str) -> str:
    """Title a new conversation after the opening message."""
    title = message[:TITLE_CHARS].strip()
    if len(message) > TITLE_CHARS:
        title += "..."
    return f"{title} - {datetime.now(UTC):%Y-%m-%d}"


@router.post("/messages", response_model=ChatResponse)
async def send_message(
    request: ChatRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    advisor: Annotated[AdvisorService, Depends(get_advisor_service)],
    conversations: Annotated[ConversationWriter, Depends(get_conversation_store)],
):
    """Send a message to the health advisor and return its answer.

    A conversation id the caller does not own starts a new conversation.
    Provider outages come back as a normal answer with ``metadata.fallback``
    set; only an unrecognized provider response is reported as an error.
    """
    conversation_id = await conversations.open_conversation(
        user_id,
        request.conversation_id,
        title=conversation_title(request.message),
    )
    if request.conversation_id and conversation_id != request.conversation_id:
        logger.warning(
            "Conversation %s not found for user; started %s",
            request.conversation_id,
            conversation_id,
        )

    await conversations.append_turn(conversation_id, "user", request.message)

    try:
        response = await advisor.send_message(request.message, user_id, conversation_id)
    except MalformedResponseError as exc:
        logger.error("Malformed provider response: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="The advisor returned an unexpected response",
        ) from exc

    await conversations.append_turn(
        conversation_id,
        "assistant",
        response.content,
        model_used=response.metadata.model,
    )

    return ChatResponse(
        content=response.content,
        conversation_id=conversation_id,
        metadata=ResponseMetadataSchema(**response.metadata.to_dict()),
    )
