"""Value types shared across the advisory pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class HealthEntryType(str, Enum):
    """Categories of health records used for context."""

    MEAL = "meal"
    LAB_RESULT = "lab_result"
    SYMPTOM = "symptom"


class ChatRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class HealthEntry:
    """A health record prepared for display.

    ``data`` holds the type-specific fields: ``description`` and ``meal_type``
    for meals, ``test_type``, ``test_date``, ``results`` and ``notes`` for lab
    results, ``description``, ``severity`` and ``duration`` for symptoms.
    """

    entry_type: HealthEntryType
    timestamp: datetime
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthContextSnapshot:
    """Recent health entries for one user, built fresh per request."""

    recent_meals: list[HealthEntry] = field(default_factory=list)
    recent_lab_results: list[HealthEntry] = field(default_factory=list)
    recent_symptoms: list[HealthEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.recent_meals or self.recent_lab_results or self.recent_symptoms)


@dataclass(frozen=True)
class ConversationTurn:
    """A prior message in a conversation."""

    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime


@dataclass(frozen=True)
class PromptMessage:
    """A role-tagged message sent to the completion provider."""

    role: ChatRole
    content: str

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class ResponseMetadata:
    """Metadata attached to an advisor response."""

    processed_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    model: str | None = None
    token_usage: dict[str, Any] | None = None
    fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"processed_at": self.processed_at}
        if self.model is not None:
            data["model"] = self.model
        if self.token_usage is not None:
            data["token_usage"] = self.token_usage
        if self.fallback:
            data["fallback"] = True
        return data


@dataclass
class LLMResponse:
    """Final advisor answer returned to the caller."""

    content: str
    metadata: ResponseMetadata = field(default_factory=ResponseMetadata)
