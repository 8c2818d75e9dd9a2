"""Stores for health records and conversation history.

The advisory pipeline only reads. Conversation turns are written by the chat
endpoint around each advisor call.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Optional, Protocol
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import ChatConversation, ChatMessage
from app.models import HealthEntry as HealthEntryModel
from app.services.advisor.types import ConversationTurn, HealthEntry, HealthEntryType


class HealthRecordStore(Protocol):
    async def get_recent(
        self,
        user_id: str,
        category: HealthEntryType,
        limit: int,
    ) -> list[HealthEntry]:
        """Return up to ``limit`` entries of one category, newest first."""
        ...


class ConversationStore(Protocol):
    async def get_recent(
        self,
        conversation_id: str,
        user_id: str,
        limit: int,
    ) -> list[ConversationTurn]:
        """Return up to ``limit`` most recent turns, oldest first.

        Conversations owned by another user read as empty.
        """
        ...


class ConversationWriter(Protocol):
    async def open_conversation(
        self,
        user_id: str,
        conversation_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> str:
        """Return ``conversation_id`` if the user owns it, else a new conversation's id."""
        ...

    async def append_turn(
        self,
        conversation_id: str,
        role: str,
        content: str,
        model_used: Optional[str] = None,
    ) -> ConversationTurn:
        ...


class SQLHealthRecordStore:
    """Health record store backed by SQLAlchemy."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_recent(
        self,
        user_id: str,
        category: HealthEntryType,
        limit: int,
    ) -> list[HealthEntry]:
        if limit <= 0:
            return []

        query = (
            select(HealthEntryModel)
            .where(HealthEntryModel.user_id == user_id)
            .where(HealthEntryModel.entry_type == category.value)
            .order_by(HealthEntryModel.recorded_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return [
            HealthEntry(
                entry_type=category,
                timestamp=row.recorded_at,
                data=dict(row.data or {}),
            )
            for row in result.scalars().all()
        ]


class SQLConversationStore:
    """Conversation history store backed by SQLAlchemy."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_recent(
        self,
        conversation_id: str,
        user_id: str,
        limit: int,
    ) -> list[ConversationTurn]:
        if limit <= 0:
            return []

        query = (
            select(ChatMessage)
            .join(ChatConversation, ChatMessage.conversation_id == ChatConversation.id)
            .where(ChatMessage.conversation_id == conversation_id)
            .where(ChatConversation.user_id == user_id)
            .order_by(ChatMessage.sent_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        rows = list(result.scalars().all())
        rows.reverse()
        return [
            ConversationTurn(role=row.role, content=row.content, timestamp=row.sent_at)
            for row in rows
        ]

    async def open_conversation(
        self,
        user_id: str,
        conversation_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> str:
        if conversation_id:
            result = await self.db.execute(
                select(ChatConversation.id)
                .where(ChatConversation.id == conversation_id)
                .where(ChatConversation.user_id == user_id)
            )
            if result.scalar_one_or_none() is not None:
                return conversation_id

        conversation = ChatConversation(id=str(uuid4()), user_id=user_id, title=title)
        self.db.add(conversation)
        await self.db.flush()
        return conversation.id

    async def append_turn(
        self,
        conversation_id: str,
        role: str,
        content: str,
        model_used: Optional[str] = None,
    ) -> ConversationTurn:
        message = ChatMessage(
            conversation_id=conversation_id,
            role=role,
            content=content,
            sent_at=datetime.now(UTC),
            model_used=model_used,
        )
        self.db.add(message)
        await self.db.flush()
        return ConversationTurn(role=role, content=content, timestamp=message.sent_at)


class InMemoryHealthRecordStore:
    """In-memory health record store for tests and local demos."""

    def __init__(self):
        self._entries: dict[str, list[HealthEntry]] = {}

    def add_entry(
        self,
        user_id: str,
        entry_type: HealthEntryType,
        data: dict[str, Any],
        timestamp: datetime | None = None,
    ) -> HealthEntry:
        entry = HealthEntry(
            entry_type=entry_type,
            timestamp=timestamp or datetime.now(UTC),
            data=dict(data),
        )
        self._entries.setdefault(user_id, []).append(entry)
        return entry

    async def get_recent(
        self,
        user_id: str,
        category: HealthEntryType,
        limit: int,
    ) -> list[HealthEntry]:
        if limit <= 0:
            return []
        entries = [
            e for e in self._entries.get(user_id, []) if e.entry_type == category
        ]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit]

    def clear(self) -> None:
        self._entries.clear()


class InMemoryConversationStore:
    """In-memory conversation store for tests and local demos."""

    def __init__(self):
        self._owners: dict[str, str] = {}
        self._titles: dict[str, Optional[str]] = {}
        self._turns: dict[str, list[ConversationTurn]] = {}

    def create_conversation(
        self,
        user_id: str,
        conversation_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> str:
        conversation_id = conversation_id or str(uuid4())
        self._owners[conversation_id] = user_id
        self._titles[conversation_id] = title
        self._turns.setdefault(conversation_id, [])
        return conversation_id

    def add_turn(
        self,
        conversation_id: str,
        role: str,
        content: str,
        timestamp: datetime | None = None,
    ) -> ConversationTurn:
        turn = ConversationTurn(
            role=role,
            content=content,
            timestamp=timestamp or datetime.now(UTC),
        )
        self._turns.setdefault(conversation_id, []).append(turn)
        return turn

    async def get_recent(
        self,
        conversation_id: str,
        user_id: str,
        limit: int,
    ) -> list[ConversationTurn]:
        if limit <= 0 or self._owners.get(conversation_id) != user_id:
            return []
        turns = sorted(self._turns.get(conversation_id, []), key=lambda t: t.timestamp)
        return turns[-limit:]

    async def open_conversation(
        self,
        user_id: str,
        conversation_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> str:
        if conversation_id and self._owners.get(conversation_id) == user_id:
            return conversation_id
        return self.create_conversation(user_id, title=title)

    async def append_turn(
        self,
        conversation_id: str,
        role: str,
        content: str,
        model_used: Optional[str] = None,
    ) -> ConversationTurn:
        return self.add_turn(conversation_id, role, content)

    def get_title(self, conversation_id: str) -> Optional[str]:
        return self._titles.get(conversation_id)

    def clear(self) -> None:
        self._owners.clear()
        self._titles.clear()
        self._turns.clear()
