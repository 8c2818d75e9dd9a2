"""LLM advisory pipeline.

Context assembly, prompt building, provider dispatch with retry,
safety filtering and fallback handling for the health advisor chat.
"""

from importlib import import_module

__all__ = [
    "AdvisorService",
    "ContextAssembler",
    "PromptBuilder",
    "RequestDispatcher",
    "ProviderConfig",
    "RetryPolicy",
    "ResponseProcessor",
    "FallbackProvider",
    "LLMResponse",
    "MalformedResponseError",
    "ProviderUnavailableError",
]

_LAZY_IMPORTS = {
    "AdvisorService": ("app.services.advisor.service", "AdvisorService"),
    "ContextAssembler": ("app.services.advisor.context", "ContextAssembler"),
    "PromptBuilder": ("app.services.advisor.prompts", "PromptBuilder"),
    "RequestDispatcher": ("app.services.advisor.dispatcher", "RequestDispatcher"),
    "ProviderConfig": ("app.services.advisor.dispatcher", "ProviderConfig"),
    "RetryPolicy": ("app.services.advisor.dispatcher", "RetryPolicy"),
    "ResponseProcessor": ("app.services.advisor.response", "ResponseProcessor"),
    "FallbackProvider": ("app.services.advisor.fallback", "FallbackProvider"),
    "LLMResponse": ("app.services.advisor.types", "LLMResponse"),
    "MalformedResponseError": ("app.services.advisor.errors", "MalformedResponseError"),
    "ProviderUnavailableError": ("app.services.advisor.errors", "ProviderUnavailableError"),
}


def __getattr__(name: str):
    target = _LAZY_IMPORTS.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = target
    return getattr(import_module(module_name), attr_name)
