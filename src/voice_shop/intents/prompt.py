"""Prompt construction for the AI intent endpoint."""

from __future__ import annotations

import json
from typing import Sequence

from voice_shop.models import ConversationEntry, PageContext

DEFAULT_ACTIONS = "search, add_to_cart, navigate, filter"

RESPONSE_SCHEMA_EXAMPLE = {
    "intent": {
        "action": "primary_action",
        "confidence": 0.95,
        "entities": {"product_name": "extracted product", "quantity": 1, "size": "M", "color": "red"},
        "clarificationNeeded": False,
        "clarificationQuestion": "optional question",
    },
    "entities": [
        {"type": "product", "value": "sneakers", "confidence": 0.9, "position": {"start": 5, "end": 13}},
    ],
    "commands": [
        {
            "action": "search_products",
            "parameters": {"query": "red sneakers"},
            "confidence": 0.9,
            "requiresConfirmation": False,
        }
    ],
    "responseText": "I'll search for red sneakers for you.",
    "confidence": 0.95,
    "requiresClarification": False,
    "clarificationQuestion": None,
    "suggestedActions": ["view_results", "apply_filters", "sort_by_price"],
}

ACTION_GUIDE = """AVAILABLE ACTIONS:
- search_products: Search for products by name, category, or description (parameters: query)
- add_to_cart: Add product to shopping cart (parameters: productId or productName, quantity, size, color)
- remove_from_cart: Remove item from cart (parameters: itemId or productName)
- update_quantity: Change the quantity of a cart item (parameters: itemId or productName, quantity)
- view_cart: Navigate to cart page and show cart contents
- browse_category: Browse products in a specific category (parameters: category)
- view_product: Navigate to product detail page (parameters: productId or productName)
- navigate_to: Go to a page (parameters: page = home, cart, checkout, products, login, profile, orders)
- apply_filter: Filter the listing (parameters: category, size, color, brand, price_range, rating)
- checkout: Start checkout process
- help: Explain what the assistant can do (parameters: topic)

ENTITY TYPES:
- product: Product names or categories
- quantity: Numbers for quantities
- size: Clothing/shoe sizes (XS, S, M, L, XL, or numeric)
- color: Color names
- brand: Brand names
- price_range: Price ranges (under $50, $100-200, etc.)
- page: Page names (home, cart, checkout, etc.)"""

RULES = """CONTEXT AWARENESS RULES:
1. If user says "this" or "it" on a product page, refer to the current product
2. If user says "add to cart" without specifying product, use current product if on product page
3. If user says "show my cart", navigate to cart page
4. Consider conversation history for pronoun resolution
5. Use page context to disambiguate vague commands
6. Set requiresConfirmation on destructive commands such as removing items or clearing the cart

CONFIDENCE SCORING:
- 0.9-1.0: Very confident, execute immediately
- 0.7-0.89: Confident, but confirm if action is destructive
- 0.5-0.69: Moderate confidence, ask for clarification
- 0.0-0.49: Low confidence, request rephrasing

Respond ONLY with valid JSON, no additional text."""


def _or_na(value: object) -> str:
    if value is None or value == "" or value == {}:
        return "N/A"
    return str(value)


def describe_context(context: PageContext) -> str:
    cart_lines = [
        f"  - {item.name} (id {item.id}) x{item.quantity} @ ${item.price:.2f}" for item in context.cart_items
    ]
    filters = ", ".join(f"{key}={value}" for key, value in context.filters.items())
    lines = [
        f"- Current Page: {context.current_page}",
        f"- Route: {context.route}",
        f"- Product ID: {_or_na(context.product_id)}",
        f"- Product Name: {_or_na(context.product_name)}",
        f"- Product Price: {_or_na(context.product_price)}",
        f"- Cart Items: {len(context.cart_items)} items",
        *cart_lines,
        f"- Search Query: {_or_na(context.search_query)}",
        f"- Active Filters: {_or_na(filters)}",
        f"- Available Actions: {', '.join(context.available_actions) or DEFAULT_ACTIONS}",
    ]
    return "\n".join(lines)


def describe_history(history: Sequence[ConversationEntry], window: int = 3) -> str:
    recent = list(history)[-window:] if window > 0 else []
    if not recent:
        return "(no previous turns)"
    return "\n".join(f'User: "{entry.user_input}" | Assistant: "{entry.system_response}"' for entry in recent)


def build_analysis_prompt(
    text: str,
    context: PageContext,
    history: Sequence[ConversationEntry] = (),
    *,
    window: int = 3,
) -> str:
    """Render the single prompt sent to the model for one utterance."""
    schema = json.dumps(RESPONSE_SCHEMA_EXAMPLE, indent=2)
    return "\n\n".join(
        [
            "You are an advanced e-commerce voice assistant. "
            "Analyze the user's voice command and provide a structured response.",
            f"CONTEXT:\n{describe_context(context)}",
            f"CONVERSATION HISTORY:\n{describe_history(history, window)}",
            f'USER COMMAND: "{text}"',
            f"TASK: Analyze the user's intent and provide a JSON response with the following structure:\n\n{schema}",
            ACTION_GUIDE,
            RULES,
        ]
    )


__all__ = ["build_analysis_prompt", "describe_context", "describe_history"]
