"""Pydantic schemas for Chat API."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    """Request to chat with the health advisor."""

    message: str = Field(..., min_length=1, max_length=2000)
    conversation_id: str | None = None

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


class ResponseMetadataSchema(BaseModel):
    """Metadata about how the answer was produced."""

    processed_at: str
    model: str | None = None
    token_usage: dict[str, Any] | None = None
    fallback: bool = False


class ChatResponse(BaseModel):
    """Response from the health advisor."""

    content: str
    conversation_id: str | None = None
    metadata: ResponseMetadataSchema
