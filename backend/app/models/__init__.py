from app.models.base import Base, TimestampMixin
from app.models.conversation import ChatConversation, ChatMessage
from app.models.health_entry import HealthEntry

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Health records
    "HealthEntry",
    # Chat
    "ChatConversation",
    "ChatMessage",
]
