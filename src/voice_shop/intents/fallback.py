"""Deterministic intent used whenever the AI path cannot answer."""

from __future__ import annotations

import re

from voice_shop.commands import Command, CommandAction
from voice_shop.models import Intent, IntentResponse

GENERIC_CLARIFICATION = (
    "I'm not sure what you'd like to do. You can try saying 'search for products', "
    "'show my cart', or ask for help."
)
ADD_CLARIFICATION = "Which product would you like to add to your cart?"

_SEARCH_WORDS_RE = re.compile(r"search|find|look for", re.IGNORECASE)


def create_fallback_response(text: str) -> IntentResponse:
    """Substring rules that always yield a coherent, actionable response."""
    lowered = text.lower()

    if "search" in lowered or "find" in lowered or "look for" in lowered:
        query = " ".join(_SEARCH_WORDS_RE.sub("", text).split())
        return IntentResponse(
            intent=Intent(action=CommandAction.SEARCH_PRODUCTS.value, confidence=0.8, entities={"query": query}),
            commands=[Command.build(CommandAction.SEARCH_PRODUCTS, {"query": query}, confidence=0.8)],
            response_text=f'I\'ll search for "{query}" for you.',
            confidence=0.8,
            suggested_actions=["view_results", "apply_filters"],
        )

    if "cart" in lowered and ("show" in lowered or "view" in lowered):
        return IntentResponse(
            intent=Intent(action=CommandAction.VIEW_CART.value, confidence=0.9),
            commands=[Command.build(CommandAction.VIEW_CART, confidence=0.9)],
            response_text="I'll show you your cart.",
            confidence=0.9,
            suggested_actions=["checkout", "continue_shopping"],
        )

    if "add" in lowered:
        return IntentResponse(
            intent=Intent(
                action=CommandAction.ADD_TO_CART.value,
                confidence=0.6,
                clarification_needed=True,
                clarification_question=ADD_CLARIFICATION,
            ),
            response_text=ADD_CLARIFICATION,
            confidence=0.6,
            requires_clarification=True,
            clarification_question=ADD_CLARIFICATION,
            suggested_actions=["specify_product", "browse_products"],
        )

    return IntentResponse(
        intent=Intent(
            action="unknown",
            confidence=0.5,
            clarification_needed=True,
            clarification_question=GENERIC_CLARIFICATION,
        ),
        response_text=GENERIC_CLARIFICATION,
        confidence=0.5,
        requires_clarification=True,
        clarification_question=GENERIC_CLARIFICATION,
        suggested_actions=["search_products", "view_cart", "browse_categories"],
    )
