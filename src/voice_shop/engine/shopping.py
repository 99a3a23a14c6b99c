"""Shopping-domain command handling against the catalog and cart."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from voice_shop.cart import CartRepository
from voice_shop.catalog import Product, ProductCatalog
from voice_shop.commands import (
    AddToCartParams,
    CartItemRef,
    CategoryParams,
    Command,
    CommandAction,
    ProductRef,
    SearchParams,
)
from voice_shop.models import CartItem, NavigationAction, PageContext

ALL_PRODUCTS_CATEGORIES = ("products", "all", "everything")


class CartMutationKind(str, Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(slots=True)
class CartMutation:
    """A cart change the execution engine should apply."""

    kind: CartMutationKind
    item: CartItem
    item_id: str | None = None
    product_name: str | None = None


@dataclass(slots=True)
class ShoppingResult:
    success: bool
    message: str
    data: dict[str, Any] | None = None
    navigation_action: NavigationAction | None = None
    products: list[Product] = field(default_factory=list)
    mutation: CartMutation | None = None


class ShoppingCommandHandler:
    """Resolves shopping commands. Reads the catalog and cart, never writes."""

    def __init__(
        self,
        catalog: ProductCatalog,
        cart: CartRepository,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._catalog = catalog
        self._cart = cart
        self._logger = logger or logging.getLogger("voice_shop.engine.shopping")

    def handle_shopping_command(self, command: Command, context: PageContext) -> ShoppingResult:
        kind = command.kind
        params = command.parameters
        if kind is CommandAction.SEARCH_PRODUCTS and isinstance(params, SearchParams):
            return self.search_products(params.query, params.category)
        if kind is CommandAction.ADD_TO_CART and isinstance(params, AddToCartParams):
            return self.add_to_cart(params, context)
        if kind is CommandAction.REMOVE_FROM_CART and isinstance(params, CartItemRef):
            return self.remove_from_cart(params)
        if kind is CommandAction.VIEW_CART:
            return self.view_cart()
        if kind is CommandAction.BROWSE_CATEGORY and isinstance(params, CategoryParams):
            return self.browse_category(params.category)
        if kind is CommandAction.VIEW_PRODUCT and isinstance(params, ProductRef):
            return self.view_product(params, context)
        if kind is CommandAction.CHECKOUT:
            return self.checkout()
        return ShoppingResult(success=False, message="I'm not sure how to handle that shopping request.")

    def search_products(self, query: str, category: str | None = None) -> ShoppingResult:
        query = query.strip()
        if not query:
            return ShoppingResult(
                success=False,
                message="I couldn't understand what you'd like to search for. Please specify a product.",
            )
        matches = self._catalog.search(query, category=category, limit=20)
        self._logger.debug("catalog_searched", extra={"query": query, "matches": len(matches)})
        if not matches:
            return ShoppingResult(
                success=False,
                message=f'I couldn\'t find any products matching "{query}". Would you like to try a different search?',
            )
        params = {"search": query}
        if category:
            params["category"] = category
        return ShoppingResult(
            success=True,
            message=f'I found {len(matches)} products matching "{query}".',
            data={"query": query, "results": [product.summary() for product in matches]},
            navigation_action=NavigationAction("/products", params),
            products=matches,
        )

    def add_to_cart(self, params: AddToCartParams, context: PageContext) -> ShoppingResult:
        quantity = params.quantity if params.quantity and params.quantity > 0 else 1
        item = self._resolve_item(params, context)
        if item is None:
            return ShoppingResult(
                success=False,
                message="I couldn't find that product. Please try again with a different product.",
            )
        item.quantity = quantity
        item.size = params.size
        item.color = params.color
        return ShoppingResult(
            success=True,
            message=f"Added {item.name} to your cart.",
            data={"product": item.to_dict(), "quantity": quantity},
            mutation=CartMutation(kind=CartMutationKind.ADD, item=item),
        )

    def remove_from_cart(self, params: CartItemRef) -> ShoppingResult:
        found = self._cart.find(item_id=params.item_id, product_name=params.product_name)
        if found is None:
            return ShoppingResult(success=False, message="I couldn't find that product in your cart.")
        item, _ = found
        return ShoppingResult(
            success=True,
            message=f"Removed {item.name} from your cart.",
            data={"productId": item.id},
            mutation=CartMutation(
                kind=CartMutationKind.REMOVE,
                item=item,
                item_id=params.item_id,
                product_name=params.product_name,
            ),
        )

    def view_cart(self) -> ShoppingResult:
        items = self._cart.items()
        return ShoppingResult(
            success=True,
            message="Here's your shopping cart.",
            data={"items": [item.to_dict() for item in items], "total": self._cart.total()},
            navigation_action=NavigationAction("/cart"),
        )

    def browse_category(self, category: str) -> ShoppingResult:
        normalized = category.strip().lower()
        if normalized in ALL_PRODUCTS_CATEGORIES:
            products = self._catalog.search("")
            return ShoppingResult(
                success=True,
                message="Showing all products.",
                navigation_action=NavigationAction("/products"),
                products=products,
            )
        available = self._catalog.categories()
        if normalized not in available:
            return ShoppingResult(
                success=False,
                message=f'I couldn\'t find the category "{category}". Available categories are: {", ".join(available)}.',
                data={"available_categories": available},
            )
        products = self._catalog.search("", category=normalized)
        return ShoppingResult(
            success=True,
            message=f"Showing products in the {category} category.",
            navigation_action=NavigationAction("/products", {"category": normalized}),
            products=products,
        )

    def view_product(self, params: ProductRef, context: PageContext) -> ShoppingResult:
        product = None
        if params.product_id:
            product = self._catalog.get(params.product_id)
        if product is None and params.product_name:
            product = self._catalog.find_by_name(params.product_name)
        if product is None and not (params.product_id or params.product_name) and context.product_id:
            product = self._catalog.get(context.product_id)
        if product is None:
            return ShoppingResult(
                success=False,
                message="I couldn't find that product. Please try again with a different product.",
            )
        return ShoppingResult(
            success=True,
            message=f"Here's the {product.name}.",
            data={"product": product.summary()},
            navigation_action=NavigationAction(f"/product/{product.id}"),
            products=[product],
        )

    def checkout(self) -> ShoppingResult:
        if self._cart.is_empty():
            return ShoppingResult(
                success=False,
                message="Your cart is empty. Add some items before checking out.",
            )
        return ShoppingResult(
            success=True,
            message="Taking you to checkout.",
            data={"total": self._cart.total(), "items": self._cart.item_count()},
            navigation_action=NavigationAction("/checkout"),
        )

    def _resolve_item(self, params: AddToCartParams, context: PageContext) -> CartItem | None:
        product = None
        if params.product_id:
            product = self._catalog.get(params.product_id)
        if product is None and params.product_name:
            product = self._catalog.find_by_name(params.product_name)
        if product is not None:
            return CartItem(id=product.id, name=product.name, price=product.price)

        if params.product_id or params.product_name:
            return None
        if context.current_page == "product_detail" and context.product_id:
            current = self._catalog.get(context.product_id)
            if current is not None:
                return CartItem(id=current.id, name=current.name, price=current.price)
            if context.product_name:
                return CartItem(id=context.product_id, name=context.product_name, price=context.product_price or 0.0)
        return None
