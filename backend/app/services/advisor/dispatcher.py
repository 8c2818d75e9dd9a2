"""HTTP dispatch to the completion provider with bounded retry.

Each call walks an explicit state machine::

    ATTEMPTING -> SUCCESS
    ATTEMPTING -> RETRYING -> ATTEMPTING
    ATTEMPTING -> EXHAUSTED

``RetryPolicy.max_retries`` is the total number of HTTP attempts, counting
the first one. The blocking request runs in a worker thread and backoff uses
``asyncio.sleep`` so concurrent calls are never held up by one another.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

import requests

from app.config import Settings
from app.services.advisor.errors import (
    MalformedResponseError,
    ProviderUnavailableError,
    TransientProviderError,
)
from app.services.advisor.types import PromptMessage

logger = logging.getLogger("healthadvisor.advisor.dispatcher")


@dataclass(frozen=True)
class ProviderConfig:
    """Connection and sampling settings for the completion provider."""

    base_url: str
    api_key: str
    model: str
    timeout_ms: int = 30000
    max_tokens: int = 1500
    temperature: float = 0.5
    top_p: float = 1.0
    frequency_penalty: float = 0.1
    presence_penalty: float = 0.1

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderConfig":
        return cls(
            base_url=settings.llm_provider_url or "",
            api_key=settings.llm_provider_api_key or "",
            model=settings.llm_model,
            timeout_ms=settings.llm_timeout_ms,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            top_p=settings.llm_top_p,
            frequency_penalty=settings.llm_frequency_penalty,
            presence_penalty=settings.llm_presence_penalty,
        )

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff parameters."""

    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000
    jitter_ms: int = 1000

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.base_delay_ms < 0 or self.jitter_ms < 0:
            raise ValueError("delays must not be negative")
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must not be lower than base_delay_ms")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.llm_max_retries,
            base_delay_ms=settings.llm_retry_base_delay_ms,
            max_delay_ms=settings.llm_retry_max_delay_ms,
            jitter_ms=settings.llm_retry_jitter_ms,
        )

    def delay_ms(self, attempt_index: int, jitter: float = 0.0) -> float:
        """Backoff after the failed attempt ``attempt_index`` (0-based)."""
        jitter = min(max(jitter, 0.0), float(self.jitter_ms))
        return min(self.base_delay_ms * 2**attempt_index + jitter, self.max_delay_ms)


class DispatchState(str, Enum):
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


@dataclass
class RetryAttempt:
    """Bookkeeping for one attempt inside a single dispatch."""

    attempt_index: int
    delay_ms: float = 0.0
    error: Exception | None = None


def next_state_after_failure(attempt_index: int, policy: RetryPolicy) -> DispatchState:
    """State to enter after attempt ``attempt_index`` failed."""
    if attempt_index + 1 < policy.max_retries:
        return DispatchState.RETRYING
    return DispatchState.EXHAUSTED


class RequestDispatcher:
    """Sends prompt messages to the provider and returns the raw JSON body."""

    def __init__(
        self,
        config: ProviderConfig,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        """Initialize the dispatcher.

        Args:
            config: Provider connection and sampling settings
            retry_policy: Attempt budget and backoff; defaults to 3 attempts
            sleep: Coroutine used to wait between attempts, in seconds
            rng: Random source for jitter
        """
        self.config = config
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def build_payload(self, messages: list[PromptMessage], user_id: str) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [m.to_payload() for m in messages],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "frequency_penalty": self.config.frequency_penalty,
            "presence_penalty": self.config.presence_penalty,
            "user": user_id,
        }

    def backoff_delay_ms(self, attempt_index: int) -> float:
        jitter = self._rng.uniform(0, self.retry_policy.jitter_ms)
        return self.retry_policy.delay_ms(attempt_index, jitter)

    async def dispatch(self, messages: list[PromptMessage], user_id: str) -> dict[str, Any]:
        """Send one completion request, retrying transient failures.

        Raises:
            ProviderUnavailableError: every attempt failed
            MalformedResponseError: a 2xx response was not a JSON object
        """
        payload = self.build_payload(messages, user_id)
        policy = self.retry_policy
        attempt = RetryAttempt(attempt_index=0)
        state = DispatchState.ATTEMPTING

        while True:
            if state is DispatchState.ATTEMPTING:
                logger.debug(
                    "LLM request attempt %d/%d",
                    attempt.attempt_index + 1,
                    policy.max_retries,
                )
                try:
                    body = await self._post(payload)
                except TransientProviderError as exc:
                    attempt.error = exc
                    logger.warning(
                        "LLM request failed (attempt %d/%d, status=%s): %s",
                        attempt.attempt_index + 1,
                        policy.max_retries,
                        exc.status_code,
                        exc,
                    )
                    state = next_state_after_failure(attempt.attempt_index, policy)
                    continue
                state = DispatchState.SUCCESS
                return body

            if state is DispatchState.RETRYING:
                attempt.delay_ms = self.backoff_delay_ms(attempt.attempt_index)
                logger.debug("Retrying LLM request in %.0fms", attempt.delay_ms)
                await self._sleep(attempt.delay_ms / 1000)
                attempt = RetryAttempt(attempt_index=attempt.attempt_index + 1)
                state = DispatchState.ATTEMPTING
                continue

            logger.error(
                "LLM provider unavailable after %d attempts: %s",
                policy.max_retries,
                attempt.error,
            )
            raise ProviderUnavailableError(
                "Unable to communicate with LLM provider after multiple attempts",
                attempts=attempt.attempt_index + 1,
                last_error=attempt.error,
            )

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = self.config.base_url
        headers = self.config.headers
        timeout = self.config.timeout_ms / 1000

        def _request() -> dict[str, Any]:
            try:
                response = requests.post(
                    url,
                    json=payload,
                    headers=headers,
                    timeout=timeout,
                )
            except requests.Timeout as exc:
                raise TransientProviderError(f"Provider request timed out: {exc}") from exc
            except requests.RequestException as exc:
                raise TransientProviderError(f"Provider request failed: {exc}") from exc

            if not 200 <= response.status_code < 300:
                snippet = response.text.strip().replace("\n", " ")[:240]
                raise TransientProviderError(
                    f"Provider returned HTTP {response.status_code}: {snippet}",
                    status_code=response.status_code,
                )

            try:
                body = response.json()
            except ValueError as exc:
                raise MalformedResponseError("Provider response is not valid JSON") from exc

            if not isinstance(body, dict):
                raise MalformedResponseError("Provider response is not a JSON object")
            return body

        return await asyncio.to_thread(_request)
