"""Post-processing of provider completions.

Extracts the completion text, rewrites medical-claim language through an
ordered chain of safety rules and makes sure a disclaimer is present.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from app.services.advisor.errors import MalformedResponseError
from app.services.advisor.types import LLMResponse, ResponseMetadata

logger = logging.getLogger("healthadvisor.advisor.response")

DISCLAIMER_TEXT = (
    "IMPORTANT: This information is for general wellness purposes only and not a "
    "substitute for professional medical advice, diagnosis, or treatment. Always "
    "consult qualified healthcare providers with questions about your health conditions."
)

DISCLAIMER_EQUIVALENTS = (
    DISCLAIMER_TEXT,
    "not a substitute for professional medical advice",
    "not medical advice",
    "consult healthcare professionals",
)


@dataclass(frozen=True)
class SafetyRule:
    """A single case-insensitive rewrite applied to completion text."""

    pattern: re.Pattern
    replacement: str

    @classmethod
    def for_terms(cls, terms: tuple[str, ...], replacement: str) -> "SafetyRule":
        alternatives = "|".join(re.escape(term) for term in terms)
        return cls(
            pattern=re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE),
            replacement=replacement,
        )

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


# Order matters: later rules see text already rewritten by earlier ones.
SAFETY_RULES: tuple[SafetyRule, ...] = (
    SafetyRule.for_terms(
        ("diagnose", "diagnosis", "diagnoses", "diagnosing"),
        "potentially indicate",
    ),
    SafetyRule.for_terms(
        ("prescribe", "prescription", "treatment plan"),
        "consider discussing with your doctor",
    ),
    SafetyRule.for_terms(
        ("cure", "treat", "heal"),
        "potentially help with",
    ),
    SafetyRule.for_terms(
        ("should take", "must take", "need to take"),
        "might consider discussing with your doctor",
    ),
)


def apply_safety_rules(text: str, rules: tuple[SafetyRule, ...] = SAFETY_RULES) -> str:
    """Run ``text`` through each rule in order."""
    for rule in rules:
        text = rule.apply(text)
    return text


def has_disclaimer(text: str) -> bool:
    return any(phrase in text for phrase in DISCLAIMER_EQUIVALENTS)


def add_disclaimer(text: str) -> str:
    """Append the disclaimer unless an equivalent phrase is already present."""
    if has_disclaimer(text):
        return text
    return f"{text}\n\n{DISCLAIMER_TEXT}"


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def extract_content(body: Any) -> str:
    """Pull completion text out of a provider response body.

    Checks ``choices[0].message.content``, then ``choices[0].text``,
    then a top-level ``content`` field.

    Raises:
        MalformedResponseError: no recognizable content field
    """
    if not isinstance(body, dict):
        raise MalformedResponseError("Provider response is not a JSON object")

    choices = body.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        first = choices[0]
        message = first.get("message")
        if isinstance(message, dict):
            content = _non_empty_str(message.get("content"))
            if content:
                return content
        content = _non_empty_str(first.get("text"))
        if content:
            return content

    content = _non_empty_str(body.get("content"))
    if content:
        return content

    raise MalformedResponseError("Invalid response format from LLM provider")


class ResponseProcessor:
    """Turns a raw provider body into a safe advisor response."""

    def __init__(
        self,
        default_model: Optional[str] = None,
        rules: tuple[SafetyRule, ...] = SAFETY_RULES,
    ):
        self.default_model = default_model
        self.rules = rules

    def process(self, body: Any) -> LLMResponse:
        try:
            content = extract_content(body)
        except MalformedResponseError:
            keys = sorted(body) if isinstance(body, dict) else type(body).__name__
            logger.error("Invalid LLM response format (keys=%s)", keys)
            raise

        content = add_disclaimer(apply_safety_rules(content, self.rules))

        usage = body.get("usage")
        return LLMResponse(
            content=content,
            metadata=ResponseMetadata(
                model=body.get("model") or self.default_model,
                token_usage=usage if isinstance(usage, dict) else None,
            ),
        )
