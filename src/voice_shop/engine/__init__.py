"""Command validation and execution."""

from .execution import CommandExecutionEngine
from .notifications import Notification, NotificationAction, NotificationCenter, NotificationType
from .shopping import CartMutation, CartMutationKind, ShoppingCommandHandler, ShoppingResult
from .validation import CommandValidationEngine

__all__ = [
    "CartMutation",
    "CartMutationKind",
    "CommandExecutionEngine",
    "CommandValidationEngine",
    "Notification",
    "NotificationAction",
    "NotificationCenter",
    "NotificationType",
    "ShoppingCommandHandler",
    "ShoppingResult",
]
