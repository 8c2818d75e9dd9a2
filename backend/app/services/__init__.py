"""Business logic services for the Health Advisor backend.

This package intentionally avoids eager imports to prevent circular import
chains during application startup.
"""

from importlib import import_module

__all__ = [
    # Stores
    "HealthRecordStore",
    "ConversationStore",
    "SQLHealthRecordStore",
    "SQLConversationStore",
    "InMemoryHealthRecordStore",
    "InMemoryConversationStore",
    # Advisor
    "AdvisorService",
    "LLMResponse",
]

_LAZY_IMPORTS = {
    "HealthRecordStore": ("app.services.stores", "HealthRecordStore"),
    "ConversationStore": ("app.services.stores", "ConversationStore"),
    "SQLHealthRecordStore": ("app.services.stores", "SQLHealthRecordStore"),
    "SQLConversationStore": ("app.services.stores", "SQLConversationStore"),
    "InMemoryHealthRecordStore": ("app.services.stores", "InMemoryHealthRecordStore"),
    "InMemoryConversationStore": ("app.services.stores", "InMemoryConversationStore"),
    "AdvisorService": ("app.services.advisor", "AdvisorService"),
    "LLMResponse": ("app.services.advisor", "LLMResponse"),
}


def __getattr__(name: str):
    target = _LAZY_IMPORTS.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = target
    return getattr(import_module(module_name), attr_name)
