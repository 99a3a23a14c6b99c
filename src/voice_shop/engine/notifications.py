"""Notification fan-out to any number of UI observers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable


class NotificationType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(slots=True)
class NotificationAction:
    label: str
    callback: Callable[[], None]


@dataclass(slots=True)
class Notification:
    type: NotificationType
    title: str
    message: str
    duration_ms: int | None = None
    persistent: bool = False
    actions: list[NotificationAction] = field(default_factory=list)

    def action(self, label: str) -> NotificationAction | None:
        for candidate in self.actions:
            if candidate.label.lower() == label.lower():
                return candidate
        return None


NotificationCallback = Callable[[Notification], None]


class NotificationCenter:
    """Registry of notification observers.

    A failing observer is logged and skipped so the others still receive
    the notification.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._callbacks: list[NotificationCallback] = []
        self._logger = logger or logging.getLogger("voice_shop.engine.notifications")

    def register_notification_callback(self, callback: NotificationCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def _unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unregister

    def show_notification(self, notification: Notification) -> None:
        self._logger.debug(
            "notification_shown",
            extra={"type": notification.type.value, "title": notification.title},
        )
        for callback in list(self._callbacks):
            try:
                callback(notification)
            except Exception:  # noqa: BLE001
                self._logger.exception("notification_callback_failed", extra={"title": notification.title})
