"""Advisor service: the entry point of the LLM advisory pipeline."""

from __future__ import annotations

import logging
from typing import Optional

from app.config import Settings
from app.services.advisor.context import ContextAssembler
from app.services.advisor.dispatcher import ProviderConfig, RequestDispatcher, RetryPolicy
from app.services.advisor.errors import ProviderUnavailableError
from app.services.advisor.fallback import FallbackProvider
from app.services.advisor.prompts import PromptBuilder
from app.services.advisor.response import ResponseProcessor
from app.services.advisor.types import LLMResponse
from app.services.stores import ConversationStore, HealthRecordStore

logger = logging.getLogger("healthadvisor.advisor")


class AdvisorService:
    """Answers a user's message with context-aware, safety-filtered advice.

    Pipeline:
    1. Assemble context from recent health records and conversation turns
    2. Build the prompt messages
    3. Dispatch to the completion provider with retry
    4. Filter the completion and add the disclaimer

    Provider outages never raise; they produce the fallback response.
    ``MalformedResponseError`` does propagate since it signals a contract
    mismatch with the provider.
    """

    def __init__(
        self,
        context_assembler: ContextAssembler,
        dispatcher: RequestDispatcher,
        prompt_builder: Optional[PromptBuilder] = None,
        response_processor: Optional[ResponseProcessor] = None,
        fallback_provider: Optional[FallbackProvider] = None,
    ):
        self.context_assembler = context_assembler
        self.dispatcher = dispatcher
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.response_processor = response_processor or ResponseProcessor(
            default_model=dispatcher.config.model
        )
        self.fallback_provider = fallback_provider or FallbackProvider()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        health_store: HealthRecordStore,
        conversation_store: Optional[ConversationStore] = None,
    ) -> "AdvisorService":
        """Wire the pipeline from application settings."""
        assembler = ContextAssembler(
            health_store=health_store,
            conversation_store=conversation_store,
            health_entry_limit=settings.context_health_entry_limit,
            conversation_limit=settings.context_conversation_limit,
        )
        dispatcher = RequestDispatcher(
            config=ProviderConfig.from_settings(settings),
            retry_policy=RetryPolicy.from_settings(settings),
        )
        return cls(context_assembler=assembler, dispatcher=dispatcher)

    async def send_message(
        self,
        message: str,
        user_id: str,
        conversation_id: Optional[str] = None,
    ) -> LLMResponse:
        """Send a user message through the pipeline.

        Args:
            message: The user's new message
            user_id: User the context is built for; forwarded to the provider
            conversation_id: Conversation whose recent turns are included

        Returns:
            Processed advisor response, or the fallback response when the
            provider is unavailable
        """
        logger.info(
            "Sending message to LLM (user=%s, conversation=%s)",
            user_id,
            conversation_id or "new",
        )

        context = await self.context_assembler.build_context(user_id, conversation_id)
        messages = self.prompt_builder.build(message, context)

        try:
            body = await self.dispatcher.dispatch(messages, user_id)
        except ProviderUnavailableError as exc:
            logger.warning(
                "Using fallback response after %d failed attempts (user=%s)",
                exc.attempts,
                user_id,
            )
            return self.fallback_provider.get_response()

        response = self.response_processor.process(body)
        logger.info(
            "LLM response processed (user=%s, conversation=%s)",
            user_id,
            conversation_id or "new",
        )
        return response
