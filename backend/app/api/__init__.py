"""API Routes for the Health Advisor backend."""

from app.api import chat, health

__all__ = [
    "chat",
    "health",
]
