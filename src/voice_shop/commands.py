"""Executable commands and their per-action parameter types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Union

from voice_shop.models import clamp_confidence


class CommandAction(str, Enum):
    SEARCH_PRODUCTS = "search_products"
    ADD_TO_CART = "add_to_cart"
    REMOVE_FROM_CART = "remove_from_cart"
    VIEW_CART = "view_cart"
    BROWSE_CATEGORY = "browse_category"
    VIEW_PRODUCT = "view_product"
    CHECKOUT = "checkout"
    SEARCH = "search"
    NAVIGATE_TO = "navigate_to"
    NAVIGATE = "navigate"
    APPLY_FILTER = "apply_filter"
    UPDATE_QUANTITY = "update_quantity"
    SHOW_CART = "show_cart"
    HELP = "help"
    REPEAT = "repeat"
    STOP = "stop"
    CANCEL = "cancel"


SHOPPING_ACTIONS = frozenset(
    {
        CommandAction.SEARCH_PRODUCTS,
        CommandAction.ADD_TO_CART,
        CommandAction.REMOVE_FROM_CART,
        CommandAction.VIEW_CART,
        CommandAction.BROWSE_CATEGORY,
        CommandAction.VIEW_PRODUCT,
        CommandAction.CHECKOUT,
    }
)

FILTER_KEYS = ("category", "size", "color", "brand", "price_range", "rating")


def _text(payload: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _quantity(payload: Mapping[str, Any]) -> int | None:
    value = payload.get("quantity")
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        # Unparsable or fractional quantities are rejected by validation.
        return 0
    if not number.is_integer():
        return 0
    return int(number)


@dataclass(slots=True)
class SearchParams:
    query: str = ""
    category: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> SearchParams:
        return cls(
            query=_text(payload, "query", "search", "product_name", "productName") or "",
            category=_text(payload, "category"),
        )


@dataclass(slots=True)
class AddToCartParams:
    product_id: str | None = None
    product_name: str | None = None
    quantity: int | None = None
    size: str | None = None
    color: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> AddToCartParams:
        return cls(
            product_id=_text(payload, "productId", "product_id", "itemId", "item_id"),
            product_name=_text(payload, "productName", "product_name", "product", "name"),
            quantity=_quantity(payload),
            size=_text(payload, "size"),
            color=_text(payload, "color"),
        )


@dataclass(slots=True)
class CartItemRef:
    item_id: str | None = None
    product_name: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> CartItemRef:
        return cls(
            item_id=_text(payload, "itemId", "item_id", "productId", "product_id"),
            product_name=_text(payload, "productName", "product_name", "product", "name"),
        )


@dataclass(slots=True)
class UpdateQuantityParams:
    item_id: str | None = None
    product_name: str | None = None
    quantity: int | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> UpdateQuantityParams:
        ref = CartItemRef.from_mapping(payload)
        return cls(item_id=ref.item_id, product_name=ref.product_name, quantity=_quantity(payload))


@dataclass(slots=True)
class NavigateParams:
    page: str | None = None
    params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> NavigateParams:
        page = _text(payload, "page", "destination", "target")
        extra = payload.get("params") or {}
        return cls(
            page=page.lower() if page else None,
            params={str(key): str(value) for key, value in dict(extra).items()} if isinstance(extra, Mapping) else {},
        )


@dataclass(slots=True)
class FilterParams:
    filters: dict[str, str] = field(default_factory=dict)
    unrecognized: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> FilterParams:
        filters: dict[str, str] = {}
        unrecognized: dict[str, str] = {}
        for key, value in payload.items():
            if value is None or str(value).strip() == "":
                continue
            target = filters if key in FILTER_KEYS else unrecognized
            target[str(key)] = str(value).strip()
        return cls(filters=filters, unrecognized=unrecognized)


@dataclass(slots=True)
class CategoryParams:
    category: str = ""

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> CategoryParams:
        return cls(category=_text(payload, "category", "name") or "")


@dataclass(slots=True)
class ProductRef:
    product_id: str | None = None
    product_name: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> ProductRef:
        return cls(
            product_id=_text(payload, "productId", "product_id", "id"),
            product_name=_text(payload, "productName", "product_name", "product", "name"),
        )


@dataclass(slots=True)
class HelpParams:
    topic: str = "general"

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> HelpParams:
        return cls(topic=(_text(payload, "topic") or "general").lower())


@dataclass(slots=True)
class NoParams:
    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> NoParams:
        return cls()


@dataclass(slots=True)
class UnknownParams:
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> UnknownParams:
        return cls(raw=dict(payload))


CommandParameters = Union[
    SearchParams,
    AddToCartParams,
    CartItemRef,
    UpdateQuantityParams,
    NavigateParams,
    FilterParams,
    CategoryParams,
    ProductRef,
    HelpParams,
    NoParams,
    UnknownParams,
]

PARAMETER_TYPES: dict[CommandAction, type] = {
    CommandAction.SEARCH_PRODUCTS: SearchParams,
    CommandAction.SEARCH: SearchParams,
    CommandAction.ADD_TO_CART: AddToCartParams,
    CommandAction.REMOVE_FROM_CART: CartItemRef,
    CommandAction.UPDATE_QUANTITY: UpdateQuantityParams,
    CommandAction.NAVIGATE_TO: NavigateParams,
    CommandAction.NAVIGATE: NavigateParams,
    CommandAction.APPLY_FILTER: FilterParams,
    CommandAction.BROWSE_CATEGORY: CategoryParams,
    CommandAction.VIEW_PRODUCT: ProductRef,
    CommandAction.HELP: HelpParams,
    CommandAction.VIEW_CART: NoParams,
    CommandAction.SHOW_CART: NoParams,
    CommandAction.CHECKOUT: NoParams,
    CommandAction.REPEAT: NoParams,
    CommandAction.STOP: NoParams,
    CommandAction.CANCEL: NoParams,
}


def parse_action(action: str) -> CommandAction | None:
    try:
        return CommandAction(action.strip().lower())
    except ValueError:
        return None


@dataclass(slots=True)
class Command:
    """A single directly executable action.

    ``action`` keeps the raw identifier so unrecognised actions survive a
    round trip through the pipeline; ``kind`` is the parsed enum member or
    ``None`` for those.
    """

    action: str
    parameters: CommandParameters = field(default_factory=NoParams)
    confidence: float = 1.0
    requires_confirmation: bool = False

    def __post_init__(self) -> None:
        self.confidence = clamp_confidence(self.confidence)

    @property
    def kind(self) -> CommandAction | None:
        return parse_action(self.action)

    @property
    def is_shopping(self) -> bool:
        return self.kind in SHOPPING_ACTIONS

    @classmethod
    def build(
        cls,
        action: str | CommandAction,
        parameters: Mapping[str, Any] | None = None,
        *,
        confidence: float = 1.0,
        requires_confirmation: bool = False,
    ) -> Command:
        raw_action = action.value if isinstance(action, CommandAction) else str(action or "").strip()
        kind = parse_action(raw_action)
        param_type = PARAMETER_TYPES.get(kind, UnknownParams) if kind else UnknownParams
        return cls(
            action=kind.value if kind else raw_action,
            parameters=param_type.from_mapping(parameters or {}),
            confidence=confidence,
            requires_confirmation=requires_confirmation,
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Command:
        parameters = payload.get("parameters")
        return cls.build(
            str(payload.get("action") or ""),
            parameters if isinstance(parameters, Mapping) else {},
            confidence=clamp_confidence(payload.get("confidence"), default=0.5),
            requires_confirmation=bool(payload.get("requiresConfirmation", payload.get("requires_confirmation", False))),
        )
