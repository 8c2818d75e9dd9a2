"""Failure modes of the advisory pipeline."""


class AdvisorError(Exception):
    """Base class for advisory pipeline failures."""


class ContextUnavailableError(AdvisorError):
    """Health or conversation history could not be read."""


class TransientProviderError(AdvisorError):
    """A single provider attempt failed and may succeed on retry."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderUnavailableError(AdvisorError):
    """The provider kept failing until the attempt budget ran out."""

    def __init__(self, message: str, attempts: int, last_error: Exception | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class MalformedResponseError(AdvisorError):
    """The provider answered successfully but with an unrecognized body."""
