"""Context assembly for advisor prompts.

Summarizes a user's recent meals, lab results, symptoms and conversation
turns into a short block of text that is sent to the LLM as a system message.
"""

import json
import logging
from typing import Optional

from app.services.advisor.errors import ContextUnavailableError
from app.services.advisor.types import (
    ConversationTurn,
    HealthContextSnapshot,
    HealthEntry,
    HealthEntryType,
)
from app.services.stores import ConversationStore, HealthRecordStore

logger = logging.getLogger("healthadvisor.advisor.context")

CONTEXT_HEADER = "USER HEALTH CONTEXT:"
NOT_SPECIFIED = "Not specified"
TURN_PREVIEW_CHARS = 100


def _format_timestamp(entry: HealthEntry) -> str:
    return entry.timestamp.strftime("%Y-%m-%d %H:%M")


def _format_meal(entry: HealthEntry) -> str:
    return f"{_format_timestamp(entry)}: {entry.data.get('description', '')}"


def _format_lab_result(entry: HealthEntry) -> str:
    test_date = entry.data.get("test_date")
    if hasattr(test_date, "strftime"):
        date_str = test_date.strftime("%Y-%m-%d")
    elif test_date:
        date_str = str(test_date)
    else:
        date_str = entry.timestamp.strftime("%Y-%m-%d")
    results = json.dumps(entry.data.get("results") or {}, default=str)
    return f"{entry.data.get('test_type', '')} ({date_str}): {results}"


def _format_symptom(entry: HealthEntry) -> str:
    duration = entry.data.get("duration") or NOT_SPECIFIED
    return (
        f"{entry.data.get('description', '')} "
        f"(Severity: {entry.data.get('severity', '')}, "
        f"Duration: {duration}, "
        f"Reported: {_format_timestamp(entry)})"
    )


def _format_turn(turn: ConversationTurn) -> str:
    preview = turn.content[:TURN_PREVIEW_CHARS]
    if len(turn.content) > TURN_PREVIEW_CHARS:
        preview += "..."
    return f"{turn.role}: {preview}"


class ContextAssembler:
    """Builds the health context block for one advisor request.

    Reads only; never writes to the stores. A failed read degrades to an
    empty context so the user can keep chatting.
    """

    def __init__(
        self,
        health_store: HealthRecordStore,
        conversation_store: Optional[ConversationStore] = None,
        health_entry_limit: int = 5,
        conversation_limit: int = 10,
    ):
        """Initialize the assembler.

        Args:
            health_store: Source of recent meals, lab results and symptoms
            conversation_store: Source of prior conversation turns
            health_entry_limit: Entries to include per health category
            conversation_limit: Conversation turns to include
        """
        self.health_store = health_store
        self.conversation_store = conversation_store
        self.health_entry_limit = health_entry_limit
        self.conversation_limit = conversation_limit

    async def build_context(
        self,
        user_id: str,
        conversation_id: Optional[str] = None,
    ) -> str:
        """Build the formatted context string for a user.

        Args:
            user_id: User whose records are summarized
            conversation_id: Conversation whose recent turns are included

        Returns:
            Context text, or an empty string when nothing is available
        """
        try:
            snapshot = await self.get_snapshot(user_id)
            turns = await self.get_recent_turns(conversation_id, user_id)
            sections = self.format_sections(snapshot, turns)
        except ContextUnavailableError:
            logger.exception("Error building context for user %s", user_id)
            return ""
        except Exception:
            logger.exception("Error formatting context for user %s", user_id)
            return ""

        if not sections:
            logger.debug("No health context available for user %s", user_id)
            return ""

        context = "\n".join([CONTEXT_HEADER, *sections])
        logger.debug(
            "Context built for user %s: %d sections, %d chars",
            user_id,
            len(sections),
            len(context),
        )
        return context

    async def get_snapshot(self, user_id: str) -> HealthContextSnapshot:
        """Read the most recent entries of each health category.

        The reads run one after another; a SQL store shares a single
        ``AsyncSession``, which cannot serve overlapping queries.
        """
        limit = self.health_entry_limit
        try:
            meals = await self.health_store.get_recent(user_id, HealthEntryType.MEAL, limit)
            labs = await self.health_store.get_recent(
                user_id, HealthEntryType.LAB_RESULT, limit
            )
            symptoms = await self.health_store.get_recent(
                user_id, HealthEntryType.SYMPTOM, limit
            )
        except Exception as exc:
            raise ContextUnavailableError(f"Health records unavailable: {exc}") from exc

        return HealthContextSnapshot(
            recent_meals=list(meals)[:limit],
            recent_lab_results=list(labs)[:limit],
            recent_symptoms=list(symptoms)[:limit],
        )

    async def get_recent_turns(
        self,
        conversation_id: Optional[str],
        user_id: str,
    ) -> list[ConversationTurn]:
        """Read recent turns of a conversation the user owns, oldest first."""
        if not conversation_id or self.conversation_store is None:
            return []
        if self.conversation_limit <= 0:
            return []

        try:
            turns = await self.conversation_store.get_recent(
                conversation_id, user_id, self.conversation_limit
            )
        except Exception as exc:
            raise ContextUnavailableError(
                f"Conversation history unavailable: {exc}"
            ) from exc

        ordered = sorted(turns, key=lambda t: t.timestamp)
        return ordered[-self.conversation_limit:]

    def format_sections(
        self,
        snapshot: HealthContextSnapshot,
        turns: list[ConversationTurn],
    ) -> list[str]:
        """Format one section per non-empty category."""
        sections = []

        if snapshot.recent_meals:
            sections.append(
                "Recent meals: "
                + "; ".join(_format_meal(e) for e in snapshot.recent_meals)
            )

        if snapshot.recent_lab_results:
            sections.append(
                "Recent lab results: "
                + "; ".join(_format_lab_result(e) for e in snapshot.recent_lab_results)
            )

        if snapshot.recent_symptoms:
            sections.append(
                "Recent symptoms: "
                + "; ".join(_format_symptom(e) for e in snapshot.recent_symptoms)
            )

        if turns:
            sections.append(
                "Recent conversation: " + " | ".join(_format_turn(t) for t in turns)
            )

        return sections
