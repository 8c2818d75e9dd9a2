"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.logging import user_id_var
from app.services.advisor import AdvisorService
from app.services.stores import (
    ConversationStore,
    HealthRecordStore,
    InMemoryConversationStore,
    InMemoryHealthRecordStore,
    SQLConversationStore,
    SQLHealthRecordStore,
)


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
) -> str:
    """Identity of the caller, set by the upstream authentication layer."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user identity",
        )
    user_id = x_user_id.strip()
    user_id_var.set(user_id)
    return user_id


def get_health_store(
    db: Annotated[AsyncSession | None, Depends(get_db)],
) -> HealthRecordStore:
    if db is None:
        return InMemoryHealthRecordStore()
    return SQLHealthRecordStore(db)


_local_conversations = InMemoryConversationStore()


def get_conversation_store(
    db: Annotated[AsyncSession | None, Depends(get_db)],
) -> SQLConversationStore | InMemoryConversationStore:
    """Conversation store for the request; history is kept in process without a database."""
    if db is None:
        return _local_conversations
    return SQLConversationStore(db)


def get_advisor_service(
    health_store: Annotated[HealthRecordStore, Depends(get_health_store)],
    conversation_store: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> AdvisorService:
    return AdvisorService.from_settings(
        settings,
        health_store=health_store,
        conversation_store=conversation_store,
    )
