"""Point-in-time page context snapshots for classification and execution."""

from __future__ import annotations

import logging
import re

from voice_shop.cart import CartRepository
from voice_shop.catalog import ProductCatalog
from voice_shop.models import PageContext
from voice_shop.navigation import ViewState, ViewStateProvider

BASE_ACTIONS = ("search", "navigate_to", "show_cart")

PAGE_ACTIONS: dict[str, tuple[str, ...]] = {
    "product_detail": ("add_to_cart", "show_details", "show_recommendations"),
    "product_listing": ("apply_filter", "sort_products", "add_to_cart"),
    "cart": ("checkout", "remove_from_cart", "update_quantity", "clear_cart"),
    "checkout": ("complete_purchase", "edit_shipping", "apply_coupon"),
}

FILTER_PARAMS = ("category", "size", "color", "brand", "price_range", "rating", "sort")

_PRODUCT_ROUTE_RE = re.compile(r"^/product/([^/]+)/?$")


def page_type_for_path(path: str) -> str:
    """Map a route path onto one of the known page identifiers."""
    normalized = "/" + path.strip().strip("/").lower()
    if _PRODUCT_ROUTE_RE.match(normalized):
        return "product_detail"
    if normalized == "/products" or normalized.startswith("/products/"):
        return "product_listing"
    for page in ("cart", "checkout", "login"):
        if normalized == f"/{page}" or normalized.startswith(f"/{page}/"):
            return page
    return "home"


def available_actions(page: str) -> list[str]:
    return [*BASE_ACTIONS, *PAGE_ACTIONS.get(page, ())]


class ContextExtractor:
    """Builds a fresh :class:`PageContext` from the view, cart and catalog.

    Only reads its collaborators. Any failure while reading collapses to a
    minimal context so callers can always proceed.
    """

    def __init__(
        self,
        view: ViewStateProvider,
        cart: CartRepository,
        catalog: ProductCatalog | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._view = view
        self._cart = cart
        self._catalog = catalog
        self._logger = logger or logging.getLogger("voice_shop.context")

    def extract_page_context(self) -> PageContext:
        page = "home"
        try:
            state = self._view.view_state()
            page = page_type_for_path(state.path)
            return self._build(state, page)
        except Exception:  # noqa: BLE001
            self._logger.exception("context_extraction_failed", extra={"page": page})
            return PageContext(current_page=page, available_actions=available_actions(page))

    def _build(self, state: ViewState, page: str) -> PageContext:
        context = PageContext(
            current_page=page,
            route=state.path,
            cart_items=self._cart.items(),
            search_query=state.query.get("search") or state.query.get("q") or None,
            filters={key: state.query[key] for key in FILTER_PARAMS if state.query.get(key)},
            available_actions=available_actions(page),
            user_id=state.user_id,
        )
        if page == "product_detail":
            self._fill_product(context, state)
        return context

    def _fill_product(self, context: PageContext, state: ViewState) -> None:
        match = _PRODUCT_ROUTE_RE.match(state.path)
        product_id = match.group(1) if match else None
        displayed = state.displayed_product
        if displayed is not None and (product_id is None or displayed.id == product_id):
            context.product_id = displayed.id
            context.product_name = displayed.name
            context.product_price = displayed.price
        else:
            context.product_id = product_id

        if context.product_id and self._catalog is not None and context.product_name is None:
            product = self._catalog.get(context.product_id)
            if product is not None:
                context.product_name = product.name
                context.product_price = product.price if context.product_price is None else context.product_price
