"""Pydantic schemas for API request/response validation."""

from app.schemas.chat import (
    ChatRequest,
    ChatResponse,
    ResponseMetadataSchema,
)

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ResponseMetadataSchema",
]
