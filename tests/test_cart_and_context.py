import json
from pathlib import Path

import pytest

from voice_shop.cart import CartRepository, InMemoryCartStore, JsonCartStore
from voice_shop.catalog import InMemoryProductCatalog
from voice_shop.context import ContextExtractor, page_type_for_path
from voice_shop.models import CartItem, NavigationAction
from voice_shop.navigation import RouterState


class FailingStore:
    def load(self) -> list[CartItem]:
        return [CartItem(id="p7", name="Instant Pot Duo 7-in-1 Pressure Cooker", price=89.99)]

    def save(self, items: list[CartItem]) -> None:
        raise OSError("disk full")


class BrokenView:
    def view_state(self):
        raise RuntimeError("view unavailable")


def test_json_store_persists_cart_between_repositories(tmp_path: Path) -> None:
    path = tmp_path / "cart" / "cart.json"
    cart = CartRepository(JsonCartStore(path))
    cart.add(CartItem(id="p2", name="Sony WH-1000XM5 Wireless Headphones", price=349.99))
    cart.add(CartItem(id="p2", name="Sony WH-1000XM5 Wireless Headphones", price=349.99, quantity=2))
    cart.add(CartItem(id="p6", name="Nike Air Max 270 Running Shoes", price=150.0, size="10"))

    reloaded = CartRepository(JsonCartStore(path))

    assert [(item.id, item.quantity) for item in reloaded.items()] == [("p2", 3), ("p6", 1)]
    assert json.loads(path.read_text(encoding="utf-8"))[1]["size"] == "10"
    assert reloaded.total() == 1199.97


def test_failed_save_leaves_cart_unchanged() -> None:
    cart = CartRepository(FailingStore())

    with pytest.raises(OSError):
        cart.clear()

    assert [item.id for item in cart.items()] == ["p7"]


def test_find_by_position_and_name_and_subscribe() -> None:
    cart = CartRepository(
        InMemoryCartStore(
            [
                CartItem(id="p1", name="Apple iPhone 15 Pro Max", price=1199.99),
                CartItem(id="p8", name="PlayStation 5 Console", price=499.99),
            ]
        )
    )
    snapshots: list[list[CartItem]] = []
    unsubscribe = cart.subscribe(snapshots.append)

    assert cart.find(item_id="2")[0].id == "p8"
    assert cart.find(product_name="IPHONE")[1] == 0
    cart.update_quantity(3, item_id="p8")
    unsubscribe()
    cart.clear()

    assert len(snapshots) == 1
    assert snapshots[0][1].quantity == 3


def test_catalog_search_and_lookup() -> None:
    catalog = InMemoryProductCatalog()

    assert [product.id for product in catalog.search("headphones")] == ["p2", "p5"]
    assert [product.id for product in catalog.search("", category="home")] == ["p7"]
    assert catalog.find_by_name("macbook").id == "p3"
    assert catalog.categories() == ["electronics", "fashion", "home"]


@pytest.mark.parametrize(
    ("path", "page"),
    [
        ("/", "home"),
        ("/product/p2", "product_detail"),
        ("/products", "product_listing"),
        ("/cart", "cart"),
        ("/checkout", "checkout"),
        ("/wishlist", "home"),
    ],
)
def test_page_type_for_path(path: str, page: str) -> None:
    assert page_type_for_path(path) == page


def test_context_reads_product_page_and_cart() -> None:
    router = RouterState()
    cart = CartRepository()
    cart.add(CartItem(id="p1", name="Apple iPhone 15 Pro Max", price=1199.99))
    extractor = ContextExtractor(router, cart, InMemoryProductCatalog())

    router.navigate(NavigationAction("/product/p3"))
    context = extractor.extract_page_context()

    assert context.current_page == "product_detail"
    assert context.product_id == "p3"
    assert context.product_name == "MacBook Air M2"
    assert context.product_price == 1099.99
    assert [item.id for item in context.cart_items] == ["p1"]
    assert "add_to_cart" in context.available_actions


def test_context_reads_listing_query_and_filters() -> None:
    router = RouterState("/products?search=shoes&color=red&sort=price")
    extractor = ContextExtractor(router, CartRepository())

    context = extractor.extract_page_context()

    assert context.current_page == "product_listing"
    assert context.search_query == "shoes"
    assert context.filters == {"color": "red", "sort": "price"}
    assert context.cart_is_empty


def test_context_extraction_never_raises() -> None:
    context = ContextExtractor(BrokenView(), CartRepository()).extract_page_context()

    assert context.current_page == "home"
    assert context.available_actions == ["search", "navigate_to", "show_cart"]
