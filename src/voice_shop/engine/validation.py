"""Per-action preconditions checked before a command runs."""

from __future__ import annotations

from typing import Callable

from voice_shop.commands import (
    FILTER_KEYS,
    AddToCartParams,
    CartItemRef,
    CategoryParams,
    Command,
    CommandAction,
    FilterParams,
    NavigateParams,
    ProductRef,
    SearchParams,
    UpdateQuantityParams,
)
from voice_shop.models import PageContext, ValidationResult
from voice_shop.navigation import PAGE_PATHS

VALID_PAGES = tuple(PAGE_PATHS)
MAX_QUANTITY_WITHOUT_WARNING = 10

Rule = Callable[[Command, PageContext, ValidationResult], None]


def _validate_search(command: Command, context: PageContext, result: ValidationResult) -> None:
    params = command.parameters
    query = params.query.strip() if isinstance(params, SearchParams) else ""
    if not query:
        result.reject(
            "Search query is required",
            missing="query",
            fix="Please specify what you want to search for",
        )
    elif len(query) < 2:
        result.warnings.append("Search query is very short, results may be limited")


def _check_quantity(quantity: int | None, result: ValidationResult) -> None:
    if quantity is None:
        return
    if quantity <= 0:
        result.reject("Invalid quantity specified", fix="Quantity must be a positive number")
    elif quantity > MAX_QUANTITY_WITHOUT_WARNING:
        result.warnings.append("Large quantity requested - please confirm")


def _validate_add_to_cart(command: Command, context: PageContext, result: ValidationResult) -> None:
    params = command.parameters
    if not isinstance(params, AddToCartParams):
        params = AddToCartParams()
    on_product_page = context.current_page == "product_detail" and bool(context.product_id)
    if not on_product_page and not (params.product_id or params.product_name):
        result.reject(
            "Product identification required",
            missing="productId or productName",
            fix="Please specify which product to add or navigate to a product page first",
        )
    _check_quantity(params.quantity, result)


def _validate_navigation(command: Command, context: PageContext, result: ValidationResult) -> None:
    params = command.parameters
    page = params.page if isinstance(params, NavigateParams) else None
    if not page:
        result.reject(
            "Navigation target is required",
            missing="page",
            fix=f"Please specify where to go: {', '.join(VALID_PAGES)}",
        )
        return
    if page not in VALID_PAGES:
        result.reject(f"Invalid navigation target: {page}", fix=f"Valid pages are: {', '.join(VALID_PAGES)}")
    if page == "checkout":
        _require_items_for_checkout(context, result)


def _require_items_for_checkout(context: PageContext, result: ValidationResult) -> None:
    if context.cart_is_empty:
        result.reject("Cannot proceed to checkout with empty cart", fix="Please add items to your cart first")


def _validate_checkout(command: Command, context: PageContext, result: ValidationResult) -> None:
    _require_items_for_checkout(context, result)


def _validate_filter(command: Command, context: PageContext, result: ValidationResult) -> None:
    params = command.parameters if isinstance(command.parameters, FilterParams) else FilterParams()
    if context.current_page not in ("product_listing", "home"):
        result.warnings.append("Filters work best on product listing pages")
    for key in params.unrecognized:
        result.warnings.append(f"Unrecognized filter: {key}")
    if not params.filters:
        result.reject(
            "At least one filter parameter is required",
            fix=f"Available filters: {', '.join(FILTER_KEYS)}",
        )


def _validate_remove(command: Command, context: PageContext, result: ValidationResult) -> None:
    if context.cart_is_empty:
        result.reject("Cart is empty - nothing to remove", fix="Add items to cart first")
        return
    params = command.parameters if isinstance(command.parameters, CartItemRef) else CartItemRef()
    if not (params.item_id or params.product_name):
        result.reject(
            "Item identification required for removal",
            missing="itemId or productName",
            fix="Please specify which item to remove",
        )


def _validate_update_quantity(command: Command, context: PageContext, result: ValidationResult) -> None:
    if context.cart_is_empty:
        result.reject("Cart is empty - no quantities to update", fix="Add items to cart first")
        return
    params = command.parameters if isinstance(command.parameters, UpdateQuantityParams) else UpdateQuantityParams()
    if params.quantity is None:
        result.reject("New quantity is required", missing="quantity", fix="Please say the new quantity")
    elif params.quantity < 0:
        result.reject("Invalid quantity - must be a non-negative number", fix="Quantity must be zero or more")
    elif params.quantity > MAX_QUANTITY_WITHOUT_WARNING:
        result.warnings.append("Large quantity requested - please confirm")
    if not (params.item_id or params.product_name):
        result.reject(
            "Item identification required",
            missing="itemId or productName",
            fix="Please specify which item to update",
        )


def _validate_browse(command: Command, context: PageContext, result: ValidationResult) -> None:
    params = command.parameters
    if not (isinstance(params, CategoryParams) and params.category.strip()):
        result.reject("Category is required", missing="category", fix="Please name a category to browse")


def _validate_view_product(command: Command, context: PageContext, result: ValidationResult) -> None:
    params = command.parameters if isinstance(command.parameters, ProductRef) else ProductRef()
    if not (params.product_id or params.product_name or context.product_id):
        result.reject(
            "Product identification required",
            missing="productId or productName",
            fix="Please say which product you want to see",
        )


def _always_valid(command: Command, context: PageContext, result: ValidationResult) -> None:
    return None


RULES: dict[CommandAction, Rule] = {
    CommandAction.SEARCH: _validate_search,
    CommandAction.SEARCH_PRODUCTS: _validate_search,
    CommandAction.ADD_TO_CART: _validate_add_to_cart,
    CommandAction.NAVIGATE_TO: _validate_navigation,
    CommandAction.NAVIGATE: _validate_navigation,
    CommandAction.APPLY_FILTER: _validate_filter,
    CommandAction.REMOVE_FROM_CART: _validate_remove,
    CommandAction.UPDATE_QUANTITY: _validate_update_quantity,
    CommandAction.BROWSE_CATEGORY: _validate_browse,
    CommandAction.VIEW_PRODUCT: _validate_view_product,
    CommandAction.CHECKOUT: _validate_checkout,
    CommandAction.VIEW_CART: _always_valid,
    CommandAction.SHOW_CART: _always_valid,
    CommandAction.HELP: _always_valid,
    CommandAction.REPEAT: _always_valid,
    CommandAction.STOP: _always_valid,
    CommandAction.CANCEL: _always_valid,
}


class CommandValidationEngine:
    """Pure checks of a command against the current page context."""

    def validate_command(self, command: Command, context: PageContext) -> ValidationResult:
        result = ValidationResult()
        if not command.action:
            return result.reject("Command action is required")
        kind = command.kind
        if kind is None:
            result.warnings.append(f"Unknown command action: {command.action}")
            return result
        RULES[kind](command, context, result)
        return result
