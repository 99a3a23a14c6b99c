"""Fast-path pattern classifier for directly phrased shopping commands."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from voice_shop.commands import Command, CommandAction
from voice_shop.models import Intent, IntentResponse

BROWSE_CATEGORIES = ("electronics", "clothing", "books", "games", "home", "sports")
_CATEGORY_GROUP = "|".join(BROWSE_CATEGORIES)

_SEARCH_PATTERNS = (
    re.compile(r"^(search|find|look for|show me|get me)\s+"),
    re.compile(r"^i (want|need|am looking for)\s+"),
    re.compile(r"where can i find"),
    re.compile(r"do you have"),
)
_SEARCH_PREFIXES = (
    "search for",
    "search",
    "find",
    "look for",
    "show me",
    "get me",
    "i want",
    "i need",
    "i am looking for",
    "where can i find",
    "do you have",
)
_CART_PATTERNS = (
    re.compile(r"^(show|view|open|check)\s+(my\s+)?cart$"),
    re.compile(r"^(go to|navigate to)\s+cart$"),
    re.compile(r"^cart$"),
    re.compile(r"^what'?s in my cart"),
    re.compile(r"^my cart$"),
)
_BROWSE_PATTERNS = (
    re.compile(rf"^(browse|show|view)\s+({_CATEGORY_GROUP})"),
    re.compile(rf"^({_CATEGORY_GROUP})\s+section$"),
    re.compile(rf"^go to\s+({_CATEGORY_GROUP})$"),
)
_CHECKOUT_PATTERNS = (
    re.compile(r"^(checkout|check out)$"),
    re.compile(r"^(go to|navigate to)\s+checkout$"),
    re.compile(r"^(proceed to|start)\s+checkout$"),
    re.compile(r"^buy now$"),
    re.compile(r"^purchase$"),
)
_COMPLEXITY_PATTERNS = (
    # several steps in one utterance
    re.compile(r"\band\b.*\b(then|also|after|next)\b"),
    re.compile(r"\b(then|also|after|next)\b"),
    # conditionals
    re.compile(r"\bif\b.*\bthen\b"),
    re.compile(r"\bunless\b"),
    re.compile(r"\bwhen\b.*\bthen\b"),
    # comparisons
    re.compile(r"\b(compare|versus|vs|better than|cheaper than|similar to)\b"),
    # pronouns that need a referent
    re.compile(r"\b(this|that|it|these|those)\b"),
    re.compile(r"\b(recommend|suggest|what should|which one|help me choose)\b"),
    re.compile(r".{50,}"),
    re.compile(r"\b(why|how|what if|should i|can you explain)\b"),
)


@dataclass(slots=True)
class ClassificationResult:
    """Outcome of the fast path.

    ``intent`` is set only for direct commands; everything else is handed to
    the AI service with ``requires_ai`` set.
    """

    is_direct_command: bool
    confidence: float
    intent: IntentResponse | None = None
    requires_ai: bool = False
    reason: str | None = None


class IntentClassifier:
    """Deterministic regex classifier. Never raises and never blocks."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("voice_shop.intents.classifier")

    def classify_intent(self, text: str) -> ClassificationResult:
        normalized = " ".join(text.split())
        lowered = normalized.lower()

        if not lowered:
            return ClassificationResult(
                is_direct_command=False,
                confidence=0.2,
                requires_ai=True,
                reason="Empty utterance, needs AI analysis",
            )

        if self.is_complex(lowered):
            self._logger.debug("classifier_complex", extra={"text": normalized})
            return ClassificationResult(
                is_direct_command=False,
                confidence=0.3,
                requires_ai=True,
                reason="Complex or ambiguous command requires AI analysis",
            )

        direct = self._match_direct(normalized, lowered)
        if direct is not None:
            self._logger.debug("classifier_direct", extra={"action": direct.intent.action})
            return ClassificationResult(is_direct_command=True, confidence=direct.confidence, intent=direct)

        return ClassificationResult(
            is_direct_command=False,
            confidence=0.2,
            requires_ai=True,
            reason="Unknown command pattern, needs AI analysis",
        )

    @staticmethod
    def is_complex(lowered: str) -> bool:
        return any(pattern.search(lowered) for pattern in _COMPLEXITY_PATTERNS)

    def _match_direct(self, text: str, lowered: str) -> IntentResponse | None:
        if any(pattern.search(lowered) for pattern in _SEARCH_PATTERNS):
            query = extract_search_query(text)
            return _direct_response(
                CommandAction.SEARCH_PRODUCTS,
                0.95,
                {"query": query},
                f'I\'ll search for "{query}" for you.',
                ["view_results", "apply_filters"],
            )
        if any(pattern.search(lowered) for pattern in _CART_PATTERNS):
            return _direct_response(
                CommandAction.VIEW_CART,
                0.95,
                {},
                "I'll show you your cart.",
                ["checkout", "continue_shopping"],
            )
        if any(pattern.search(lowered) for pattern in _BROWSE_PATTERNS):
            category = extract_category(lowered)
            return _direct_response(
                CommandAction.BROWSE_CATEGORY,
                0.9,
                {"category": category},
                f"I'll show you {category} products.",
                ["apply_filters", "sort_products"],
            )
        if any(pattern.search(lowered) for pattern in _CHECKOUT_PATTERNS):
            return _direct_response(
                CommandAction.CHECKOUT,
                0.95,
                {},
                "I'll take you to checkout.",
                ["complete_purchase"],
            )
        return None


def extract_search_query(text: str) -> str:
    lowered = text.lower()
    for prefix in _SEARCH_PREFIXES:
        if lowered.startswith(prefix):
            query = text[len(prefix) :].strip()
            return query or text
    return text


def extract_category(lowered: str) -> str:
    for category in BROWSE_CATEGORIES:
        if category in lowered:
            return category
    return "products"


def _direct_response(
    action: CommandAction,
    confidence: float,
    parameters: dict[str, str],
    response_text: str,
    suggested: list[str],
) -> IntentResponse:
    return IntentResponse(
        intent=Intent(action=action.value, confidence=confidence, entities=dict(parameters)),
        commands=[Command.build(action, parameters, confidence=confidence)],
        response_text=response_text,
        confidence=confidence,
        suggested_actions=suggested,
    )
