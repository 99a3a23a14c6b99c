from voice_shop.commands import Command
from voice_shop.engine import CommandValidationEngine
from voice_shop.models import CartItem, PageContext

IPHONE = CartItem(id="p1", name="Apple iPhone 15 Pro Max", price=1199.99)


def _validate(action: str, parameters: dict | None = None, **context):
    return CommandValidationEngine().validate_command(Command.build(action, parameters), PageContext(**context))


def test_checkout_navigation_with_empty_cart_is_rejected() -> None:
    result = _validate("navigate_to", {"page": "checkout"})

    assert result.is_valid is False
    assert result.errors == ["Cannot proceed to checkout with empty cart"]
    assert result.suggested_fixes == ["Please add items to your cart first"]


def test_checkout_navigation_with_items_is_allowed() -> None:
    result = _validate("navigate_to", {"page": "Checkout"}, cart_items=[IPHONE])

    assert result.is_valid is True


def test_unknown_page_and_missing_target() -> None:
    unknown = _validate("navigate", {"page": "spaceship"})
    missing = _validate("navigate_to")

    assert unknown.errors == ["Invalid navigation target: spaceship"]
    assert missing.missing_parameters == ["page"]


def test_search_requires_query_and_warns_when_short() -> None:
    empty = _validate("search", {"query": "  "})
    short = _validate("search_products", {"query": "x"})

    assert empty.is_valid is False
    assert empty.missing_parameters == ["query"]
    assert short.is_valid is True
    assert short.warnings == ["Search query is very short, results may be limited"]


def test_add_to_cart_rules() -> None:
    anonymous = _validate("add_to_cart", {"quantity": 1})
    on_product_page = _validate("add_to_cart", {}, current_page="product_detail", product_id="p2")
    zero = _validate("add_to_cart", {"productName": "ps5", "quantity": 0})
    garbled = _validate("add_to_cart", {"productName": "ps5", "quantity": "lots"})
    bulk = _validate("add_to_cart", {"productName": "ps5", "quantity": 25})

    assert anonymous.errors == ["Product identification required"]
    assert on_product_page.is_valid is True
    assert zero.errors == ["Invalid quantity specified"]
    assert garbled.errors == ["Invalid quantity specified"]
    assert bulk.is_valid is True
    assert bulk.warnings == ["Large quantity requested - please confirm"]


def test_filter_rules() -> None:
    off_listing = _validate("apply_filter", {"color": "red", "mood": "happy"}, current_page="cart")
    nothing = _validate("apply_filter", {}, current_page="product_listing")

    assert off_listing.is_valid is True
    assert "Filters work best on product listing pages" in off_listing.warnings
    assert "Unrecognized filter: mood" in off_listing.warnings
    assert nothing.errors == ["At least one filter parameter is required"]


def test_cart_item_rules() -> None:
    remove_from_empty = _validate("remove_from_cart", {"itemId": "p1"})
    remove_unnamed = _validate("remove_from_cart", {}, cart_items=[IPHONE])
    update_without_quantity = _validate("update_quantity", {"itemId": "p1"}, cart_items=[IPHONE])
    update_to_zero = _validate("update_quantity", {"itemId": "p1", "quantity": 0}, cart_items=[IPHONE])

    assert remove_from_empty.errors == ["Cart is empty - nothing to remove"]
    assert remove_unnamed.missing_parameters == ["itemId or productName"]
    assert update_without_quantity.missing_parameters == ["quantity"]
    assert update_to_zero.is_valid is True


def test_unknown_and_empty_actions() -> None:
    unknown = _validate("dance")
    empty = _validate("")

    assert unknown.is_valid is True
    assert unknown.warnings == ["Unknown command action: dance"]
    assert empty.is_valid is False
    assert empty.errors == ["Command action is required"]


def test_fractional_quantity_is_rejected() -> None:
    fractional = _validate("add_to_cart", {"productName": "ps5", "quantity": "2.5"})
    whole = _validate("add_to_cart", {"productName": "ps5", "quantity": "2.0"})

    assert fractional.errors == ["Invalid quantity specified"]
    assert whole.is_valid is True
    assert Command.build("add_to_cart", {"productName": "ps5", "quantity": 2.5}).parameters.quantity == 0
