"""Static response used when the completion provider cannot be reached."""

from app.services.advisor.response import add_disclaimer
from app.services.advisor.types import LLMResponse, ResponseMetadata

FALLBACK_MESSAGE = (
    "I apologize, but I'm currently unable to provide a personalized response. "
    "Our service is experiencing technical difficulties. Please try again in a few "
    "minutes. If you have an urgent health concern, please contact your healthcare "
    "provider directly."
)


class FallbackProvider:
    """Produces the degraded, non-personalized advisor response."""

    def get_response(self) -> LLMResponse:
        return LLMResponse(
            content=add_disclaimer(FALLBACK_MESSAGE),
            metadata=ResponseMetadata(fallback=True),
        )
