import asyncio

from voice_shop.cart import CartRepository, InMemoryCartStore
from voice_shop.catalog import InMemoryProductCatalog
from voice_shop.commands import Command
from voice_shop.engine import (
    CommandExecutionEngine,
    Notification,
    NotificationCenter,
    NotificationType,
    ShoppingCommandHandler,
)
from voice_shop.models import CartItem, PageContext
from voice_shop.navigation import RouterState


class Harness:
    def __init__(self, items: list[CartItem] | None = None) -> None:
        self.cart = CartRepository(InMemoryCartStore(items))
        self.router = RouterState()
        self.notifications: list[Notification] = []
        center = NotificationCenter()
        center.register_notification_callback(self.notifications.append)
        self.engine = CommandExecutionEngine(
            cart=self.cart,
            navigator=self.router,
            shopping=ShoppingCommandHandler(InMemoryProductCatalog(), self.cart),
            notifications=center,
        )

    def run(self, action: str, parameters: dict | None = None, context: PageContext | None = None):
        context = context or PageContext(cart_items=self.cart.items())
        return asyncio.run(self.engine.execute_command(Command.build(action, parameters), context))


def test_search_navigates_to_filtered_listing() -> None:
    harness = Harness()

    result = harness.run("search_products", {"query": "wireless headphones"})

    assert result.success is True
    assert result.message == 'I found 2 products matching "wireless headphones".'
    assert harness.router.current_url == "/products?search=wireless+headphones"
    assert harness.notifications[-1].title == "Shopping Action"
    assert harness.notifications[-1].duration_ms == 3000


def test_search_without_matches_reports_failure_without_navigation() -> None:
    harness = Harness()

    result = harness.run("search_products", {"query": "submarine"})

    assert result.success is False
    assert result.next_actions == ["search products", "view cart", "browse categories"]
    assert harness.router.history == []
    assert harness.notifications[-1].type is NotificationType.WARNING


def test_remove_then_undo_restores_exact_item() -> None:
    original = CartItem(id="p1", name="iPhone", price=1199.99, quantity=1)
    harness = Harness([original])

    result = harness.run("remove_from_cart", {"itemId": "p1"})

    assert result.success is True
    assert harness.cart.items() == []
    notification = harness.notifications[-1]
    assert notification.title == "Item Removed"
    undo = notification.action("Undo")
    assert undo is not None

    undo.callback()

    assert harness.cart.items() == [original]


def test_add_to_cart_uses_product_on_detail_page() -> None:
    harness = Harness()
    context = PageContext(current_page="product_detail", route="/product/p6", product_id="p6")

    result = harness.run("add_to_cart", {"quantity": 2, "size": "10"}, context)

    assert result.success is True
    [item] = harness.cart.items()
    assert (item.id, item.quantity, item.size) == ("p6", 2, "10")
    assert harness.notifications[-1].message == "Nike Air Max 270 Running Shoes (10) added to cart"
    harness.notifications[-1].action("View Cart").callback()
    assert harness.router.current_url == "/cart"


def test_navigate_to_checkout_with_empty_cart_never_navigates() -> None:
    harness = Harness()

    result = harness.run("navigate_to", {"page": "checkout"})

    assert result.success is False
    assert result.errors == ["Cannot proceed to checkout with empty cart"]
    assert result.next_actions == ["Please add items to your cart first"]
    assert harness.router.history == []


def test_shopping_checkout_refuses_empty_cart() -> None:
    harness = Harness()

    result = harness.run("checkout")

    assert result.success is False
    assert result.message == "Your cart is empty. Add some items before checking out."
    assert harness.router.history == []


def test_update_quantity_to_zero_removes_item() -> None:
    harness = Harness([CartItem(id="p8", name="PlayStation 5 Console", price=499.99, quantity=2)])

    result = harness.run("update_quantity", {"productName": "playstation", "quantity": 0})

    assert result.success is True
    assert result.message == "PlayStation 5 Console removed from cart"
    assert harness.cart.is_empty()


def test_apply_filter_keeps_current_search() -> None:
    harness = Harness()
    context = PageContext(current_page="product_listing", route="/products", search_query="shoes")

    result = harness.run("apply_filter", {"color": "red"}, context)

    assert result.success is True
    assert harness.router.view_state().query == {"search": "shoes", "color": "red"}


def test_browse_unknown_category_lists_available_ones() -> None:
    harness = Harness()

    result = harness.run("browse_category", {"category": "books"})

    assert result.success is False
    assert "electronics, fashion, home" in result.message


def test_help_repeat_and_unknown_commands() -> None:
    harness = Harness()

    assert "Search for [product]" in harness.run("help", {"topic": "search"}).message
    assert harness.run("repeat").data == {"repeat": True}
    unknown = harness.run("dance")
    assert unknown.success is False
    assert unknown.message == "Unknown command: dance"


def test_handler_exception_becomes_failed_result() -> None:
    harness = Harness()

    class ExplodingNavigator:
        def navigate(self, action) -> None:
            raise RuntimeError("router offline")

    harness.engine._navigator = ExplodingNavigator()

    result = harness.run("show_cart")

    assert result.success is False
    assert result.message == "An error occurred while executing the command"
    assert result.errors == ["router offline"]
