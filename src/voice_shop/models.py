"""Core data model shared by the voice command pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

if TYPE_CHECKING:
    from voice_shop.commands import Command

DEFAULT_CLARIFICATION = "Could you tell me a bit more about what you'd like to do?"


def clamp_confidence(value: Any, default: float = 0.5) -> float:
    """Coerce ``value`` into a confidence within [0, 1]."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return max(0.0, min(1.0, number))


@dataclass(slots=True)
class Transcript:
    """One recognition result for an utterance."""

    text: str
    confidence: float
    is_final: bool
    alternatives: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.confidence = clamp_confidence(self.confidence, default=0.0)


@dataclass(slots=True)
class CartItem:
    id: str
    name: str
    price: float
    quantity: int = 1
    size: str | None = None
    color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "name": self.name, "price": self.price, "quantity": self.quantity}
        if self.size:
            payload["size"] = self.size
        if self.color:
            payload["color"] = self.color
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CartItem:
        return cls(
            id=str(payload.get("id") or payload.get("productId") or ""),
            name=str(payload.get("name", "")),
            price=float(payload.get("price") or 0.0),
            quantity=int(payload.get("quantity") or 1),
            size=payload.get("size"),
            color=payload.get("color"),
        )


@dataclass(slots=True)
class PageContext:
    """Point-in-time snapshot of the storefront state a command runs against."""

    current_page: str = "home"
    route: str = "/"
    product_id: str | None = None
    product_name: str | None = None
    product_price: float | None = None
    cart_items: list[CartItem] = field(default_factory=list)
    search_query: str | None = None
    filters: dict[str, str] = field(default_factory=dict)
    available_actions: list[str] = field(default_factory=list)
    user_id: str | None = None

    @property
    def cart_is_empty(self) -> bool:
        return not self.cart_items


@dataclass(slots=True)
class Intent:
    action: str
    confidence: float
    entities: dict[str, Any] = field(default_factory=dict)
    clarification_needed: bool = False
    clarification_question: str | None = None

    def __post_init__(self) -> None:
        self.confidence = clamp_confidence(self.confidence)
        if self.clarification_needed and not (self.clarification_question or "").strip():
            self.clarification_question = DEFAULT_CLARIFICATION


@dataclass(slots=True)
class Entity:
    type: str
    value: str
    confidence: float
    start: int | None = None
    end: int | None = None

    def __post_init__(self) -> None:
        self.confidence = clamp_confidence(self.confidence)


@dataclass(slots=True)
class IntentResponse:
    """Classification outcome: what was understood, what to run, what to say."""

    intent: Intent
    commands: list[Command] = field(default_factory=list)
    response_text: str = ""
    confidence: float = 0.5
    entities: list[Entity] = field(default_factory=list)
    requires_clarification: bool = False
    clarification_question: str | None = None
    suggested_actions: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.confidence = clamp_confidence(self.confidence)
        if self.requires_clarification and not (self.clarification_question or "").strip():
            self.clarification_question = self.intent.clarification_question or DEFAULT_CLARIFICATION
        if not self.response_text.strip():
            self.response_text = self.clarification_question or "I'll help you with that."


@dataclass(slots=True)
class ConversationEntry:
    user_input: str
    system_response: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class NavigationAction:
    """Logical navigation request handed to the routing collaborator."""

    path: str
    params: dict[str, str] = field(default_factory=dict)

    def url(self) -> str:
        if not self.params:
            return self.path
        return f"{self.path}?{urlencode({key: str(value) for key, value in self.params.items()})}"


@dataclass(slots=True)
class ExecutionResult:
    success: bool
    message: str
    data: Any = None
    errors: list[str] = field(default_factory=list)
    navigation_action: NavigationAction | None = None
    next_actions: list[str] = field(default_factory=list)
    requires_user_action: bool = False


@dataclass(slots=True)
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    missing_parameters: list[str] = field(default_factory=list)
    suggested_fixes: list[str] = field(default_factory=list)

    def reject(self, error: str, *, missing: str | None = None, fix: str | None = None) -> ValidationResult:
        """Record a blocking problem and return ``self`` for chaining."""
        self.is_valid = False
        self.errors.append(error)
        if missing:
            self.missing_parameters.append(missing)
        if fix:
            self.suggested_fixes.append(fix)
        return self
