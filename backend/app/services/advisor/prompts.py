"""System preambles and prompt assembly for the health advisor."""

from app.services.advisor.types import ChatRole, PromptMessage

BASE_PREAMBLE = """You are a helpful health advisor that provides general wellness information based on the user's health data.
You must NOT provide medical diagnosis, prescribe medication, or give treatment advice.
Always encourage users to consult healthcare professionals for medical concerns.
Use the provided health context to give personalized wellness advice, but be clear about your limitations.
Be conversational, empathetic, and focus on evidence-based information."""

NO_CONTEXT_PREAMBLE = """You are a helpful health advisor that provides general wellness information.
You do not have access to the user's health information, so your responses are general in nature.
You must NOT provide medical diagnosis, prescribe medication, or give treatment advice.
Always encourage users to consult healthcare professionals for medical concerns."""


class PromptBuilder:
    """Turns a user message and optional context into provider messages."""

    def build(self, message: str, context: str = "") -> list[PromptMessage]:
        """Build the ordered message list.

        Always one leading system preamble and one trailing user message;
        a non-empty context adds a second system message between them.
        """
        if not context or not context.strip():
            return [
                PromptMessage(role=ChatRole.SYSTEM, content=NO_CONTEXT_PREAMBLE),
                PromptMessage(role=ChatRole.USER, content=message),
            ]

        return [
            PromptMessage(role=ChatRole.SYSTEM, content=BASE_PREAMBLE),
            PromptMessage(role=ChatRole.SYSTEM, content=context),
            PromptMessage(role=ChatRole.USER, content=message),
        ]
