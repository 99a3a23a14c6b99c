"""Navigation sink and the view state the assistant reads back."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol
from urllib.parse import parse_qsl, urlsplit

from voice_shop.models import NavigationAction

PAGE_PATHS: dict[str, str] = {
    "home": "/",
    "cart": "/cart",
    "checkout": "/checkout",
    "products": "/products",
    "login": "/login",
    "profile": "/profile",
    "orders": "/orders",
}


class NavigationSink(Protocol):
    """Receives logical navigation requests."""

    def navigate(self, action: NavigationAction) -> None: ...


@dataclass(slots=True)
class DisplayedProduct:
    """Product details currently rendered on screen, when known."""

    id: str
    name: str | None = None
    price: float | None = None


@dataclass(slots=True)
class ViewState:
    path: str = "/"
    query: dict[str, str] = field(default_factory=dict)
    displayed_product: DisplayedProduct | None = None
    user_id: str | None = None


class ViewStateProvider(Protocol):
    def view_state(self) -> ViewState: ...


class RouterState:
    """In-process router: records navigation and exposes the resulting view."""

    def __init__(
        self,
        path: str = "/",
        *,
        user_id: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._state = ViewState(user_id=user_id)
        self._history: list[str] = []
        self._listeners: list[Callable[[NavigationAction], None]] = []
        self._logger = logger or logging.getLogger("voice_shop.navigation")
        self._apply_url(path)

    @property
    def history(self) -> list[str]:
        return list(self._history)

    @property
    def current_url(self) -> str:
        return NavigationAction(self._state.path, dict(self._state.query)).url()

    def navigate(self, action: NavigationAction) -> None:
        url = action.url()
        self._apply_url(url)
        self._history.append(url)
        self._logger.info("navigated", extra={"url": url})
        for listener in list(self._listeners):
            listener(action)

    def on_navigate(self, callback: Callable[[NavigationAction], None]) -> Callable[[], None]:
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback) if callback in self._listeners else None

    def show_product(self, product_id: str, *, name: str | None = None, price: float | None = None) -> None:
        self._apply_url(f"/product/{product_id}")
        self._state.displayed_product = DisplayedProduct(id=product_id, name=name, price=price)

    def set_user(self, user_id: str | None) -> None:
        self._state.user_id = user_id

    def view_state(self) -> ViewState:
        return ViewState(
            path=self._state.path,
            query=dict(self._state.query),
            displayed_product=self._state.displayed_product,
            user_id=self._state.user_id,
        )

    def _apply_url(self, url: str) -> None:
        parts = urlsplit(url)
        path = parts.path or "/"
        self._state.path = path
        self._state.query = dict(parse_qsl(parts.query))
        product = self._state.displayed_product
        if product is not None and path != f"/product/{product.id}":
            self._state.displayed_product = None
