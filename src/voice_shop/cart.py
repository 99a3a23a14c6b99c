"""Client-side cart store owned by the execution engine."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Protocol

from voice_shop.models import CartItem

CartListener = Callable[[list[CartItem]], None]


class CartStore(Protocol):
    """Persistence contract for the cart item list."""

    def load(self) -> list[CartItem]:
        """Return the persisted cart, oldest item first."""

    def save(self, items: list[CartItem]) -> None:
        """Persist the full cart."""


class InMemoryCartStore:
    def __init__(self, items: list[CartItem] | None = None) -> None:
        self._items = [_copy(item) for item in items or []]

    def load(self) -> list[CartItem]:
        return [_copy(item) for item in self._items]

    def save(self, items: list[CartItem]) -> None:
        self._items = [_copy(item) for item in items]


class JsonCartStore:
    """JSON-file-backed cart persistence."""

    def __init__(self, file_path: str | Path) -> None:
        self._path = Path(file_path).expanduser()

    def load(self) -> list[CartItem]:
        if not self._path.exists():
            return []
        payload = json.loads(self._path.read_text(encoding="utf-8") or "[]")
        return [CartItem.from_dict(entry) for entry in payload if isinstance(entry, dict)]

    def save(self, items: list[CartItem]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps([item.to_dict() for item in items], indent=2), encoding="utf-8")
        tmp_path.replace(self._path)


def _copy(item: CartItem) -> CartItem:
    return CartItem(
        id=item.id,
        name=item.name,
        price=item.price,
        quantity=item.quantity,
        size=item.size,
        color=item.color,
    )


class CartRepository:
    """Single owner of the cart item list.

    Every mutation is persisted first and only then applied in memory, so a
    failing store leaves the cart exactly as it was. Subscribers receive a
    copy of the new item list after each successful change.
    """

    def __init__(self, store: CartStore | None = None, *, logger: logging.Logger | None = None) -> None:
        self._store = store or InMemoryCartStore()
        self._logger = logger or logging.getLogger("voice_shop.cart")
        self._items = self._store.load()
        self._listeners: list[CartListener] = []

    def items(self) -> list[CartItem]:
        return [_copy(item) for item in self._items]

    def is_empty(self) -> bool:
        return not self._items

    def total(self) -> float:
        return round(sum(item.price * item.quantity for item in self._items), 2)

    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def find(self, item_id: str | None = None, product_name: str | None = None) -> tuple[CartItem, int] | None:
        """Locate an item by id, 1-based position, or case-insensitive name substring."""
        if item_id:
            for index, item in enumerate(self._items):
                if item.id == item_id:
                    return _copy(item), index
            if item_id.isdigit():
                position = int(item_id) - 1
                if 0 <= position < len(self._items):
                    return _copy(self._items[position]), position
        if product_name:
            needle = product_name.strip().lower()
            for index, item in enumerate(self._items):
                if needle and needle in item.name.lower():
                    return _copy(item), index
        return None

    def add(self, item: CartItem) -> CartItem:
        updated = self.items()
        for existing in updated:
            if (existing.id, existing.size, existing.color) == (item.id, item.size, item.color):
                existing.quantity += item.quantity
                self._commit(updated, "cart_item_added", item_id=item.id)
                return _copy(existing)
        updated.append(_copy(item))
        self._commit(updated, "cart_item_added", item_id=item.id)
        return _copy(item)

    def remove(self, item_id: str | None = None, product_name: str | None = None) -> tuple[CartItem, int] | None:
        """Remove one item and return it with its former position."""
        found = self.find(item_id=item_id, product_name=product_name)
        if found is None:
            return None
        removed, index = found
        updated = self.items()
        del updated[index]
        self._commit(updated, "cart_item_removed", item_id=removed.id)
        return removed, index

    def restore(self, item: CartItem, index: int | None = None) -> None:
        """Re-insert a previously removed record at its original position."""
        updated = self.items()
        position = len(updated) if index is None else max(0, min(index, len(updated)))
        updated.insert(position, _copy(item))
        self._commit(updated, "cart_item_restored", item_id=item.id)

    def update_quantity(self, quantity: int, item_id: str | None = None, product_name: str | None = None) -> CartItem | None:
        found = self.find(item_id=item_id, product_name=product_name)
        if found is None:
            return None
        _, index = found
        updated = self.items()
        updated[index].quantity = quantity
        self._commit(updated, "cart_quantity_updated", item_id=updated[index].id, quantity=quantity)
        return _copy(updated[index])

    def clear(self) -> None:
        self._commit([], "cart_cleared")

    def subscribe(self, callback: CartListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _commit(self, updated: list[CartItem], event: str, **details: object) -> None:
        self._store.save(updated)
        self._items = updated
        self._logger.debug(event, extra={"cart_size": len(updated), **details})
        for listener in list(self._listeners):
            try:
                listener(self.items())
            except Exception:  # noqa: BLE001
                self._logger.exception("cart_listener_failed")
