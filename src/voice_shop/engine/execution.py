"""Side-effecting execution of validated commands."""

from __future__ import annotations

import logging

from voice_shop.cart import CartRepository
from voice_shop.commands import (
    Command,
    CommandAction,
    FilterParams,
    HelpParams,
    NavigateParams,
    SearchParams,
    UpdateQuantityParams,
)
from voice_shop.engine.notifications import (
    Notification,
    NotificationAction,
    NotificationCenter,
    NotificationType,
)
from voice_shop.engine.shopping import CartMutationKind, ShoppingCommandHandler, ShoppingResult
from voice_shop.engine.validation import CommandValidationEngine
from voice_shop.models import CartItem, ExecutionResult, NavigationAction, PageContext
from voice_shop.navigation import PAGE_PATHS, NavigationSink

SHOPPING_FAILURE_NEXT_ACTIONS = ["search products", "view cart", "browse categories"]

HELP_MESSAGES = {
    "general": (
        "I can help you shop, search for products, manage your cart, and more. "
        'Try saying "Search for headphones" or "Show my cart".'
    ),
    "search": 'You can search for products by saying "Search for [product]" or "Find [product]".',
    "cart": 'To manage your cart, try "Add [product] to cart", "Remove [product] from cart", or "Show my cart".',
    "checkout": 'To check out, say "Checkout" or "Complete my purchase".',
    "navigation": 'You can navigate by saying "Go to [page]" like "Go to home" or "Go to products".',
}


class CommandExecutionEngine:
    """Performs command side effects and reports a structured result.

    Shopping actions go to :class:`ShoppingCommandHandler`; the engine then
    applies the returned cart change, navigates and notifies. Everything
    else is validated and handled here. ``execute_command`` never raises.
    """

    def __init__(
        self,
        *,
        cart: CartRepository,
        navigator: NavigationSink,
        shopping: ShoppingCommandHandler,
        notifications: NotificationCenter | None = None,
        validator: CommandValidationEngine | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._cart = cart
        self._navigator = navigator
        self._shopping = shopping
        self._notifications = notifications or NotificationCenter()
        self._validator = validator or CommandValidationEngine()
        self._logger = logger or logging.getLogger("voice_shop.engine.execution")

    @property
    def notifications(self) -> NotificationCenter:
        return self._notifications

    async def execute_command(self, command: Command, context: PageContext) -> ExecutionResult:
        try:
            if command.is_shopping:
                result = self._execute_shopping(command, context)
            else:
                result = self._execute_direct(command, context)
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("command_execution_failed", extra={"action": command.action})
            return ExecutionResult(
                success=False,
                message="An error occurred while executing the command",
                errors=[str(exc) or type(exc).__name__],
            )
        self._logger.info(
            "command_executed",
            extra={"action": command.action, "success": result.success},
        )
        return result

    def _notify(
        self,
        type_: NotificationType,
        title: str,
        message: str,
        *,
        duration_ms: int | None = 3000,
        actions: list[NotificationAction] | None = None,
    ) -> None:
        self._notifications.show_notification(
            Notification(type=type_, title=title, message=message, duration_ms=duration_ms, actions=actions or [])
        )

    def _navigate(self, action: NavigationAction | None) -> None:
        if action is not None:
            self._navigator.navigate(action)

    def _execute_shopping(self, command: Command, context: PageContext) -> ExecutionResult:
        outcome = self._shopping.handle_shopping_command(command, context)
        if outcome.success and outcome.mutation is not None:
            return self._apply_mutation(outcome)

        self._navigate(outcome.navigation_action)
        self._notify(
            NotificationType.SUCCESS if outcome.success else NotificationType.WARNING,
            "Shopping Action",
            outcome.message,
        )
        return ExecutionResult(
            success=outcome.success,
            message=outcome.message,
            data=outcome.data,
            navigation_action=outcome.navigation_action,
            next_actions=[] if outcome.success else list(SHOPPING_FAILURE_NEXT_ACTIONS),
        )

    def _apply_mutation(self, outcome: ShoppingResult) -> ExecutionResult:
        mutation = outcome.mutation
        if mutation.kind is CartMutationKind.ADD:
            added = self._cart.add(mutation.item)
            details = " ".join(
                part for part in (f"({added.size})" if added.size else "", f"in {added.color}" if added.color else "") if part
            )
            label = f"{added.name} {details}".strip()
            self._notify(
                NotificationType.SUCCESS,
                "Added to Cart",
                f"{label} added to cart",
                actions=[NotificationAction("View Cart", lambda: self._navigator.navigate(NavigationAction("/cart")))],
            )
            return ExecutionResult(
                success=True,
                message=outcome.message,
                data={"item": mutation.item.to_dict(), "cart_size": len(self._cart.items())},
                next_actions=["View cart", "Continue shopping", "Proceed to checkout"],
            )

        removed = self._cart.remove(item_id=mutation.item_id, product_name=mutation.product_name)
        if removed is None:
            return ExecutionResult(
                success=False,
                message="Item not found in cart",
                next_actions=["Check cart contents", "Try a different item name"],
            )
        item, index = removed
        self._notify(
            NotificationType.SUCCESS,
            "Item Removed",
            f"{item.name} removed from cart",
            actions=[NotificationAction("Undo", self._undo_removal(item, index))],
        )
        return ExecutionResult(
            success=True,
            message=outcome.message,
            data={"removed_item": item.to_dict(), "cart_size": len(self._cart.items())},
            next_actions=["Continue shopping", "View cart", "Proceed to checkout"],
        )

    def _undo_removal(self, item: CartItem, index: int):
        def _undo() -> None:
            self._cart.restore(item, index)
            self._logger.info("cart_removal_undone", extra={"item_id": item.id})

        return _undo

    def _execute_direct(self, command: Command, context: PageContext) -> ExecutionResult:
        validation = self._validator.validate_command(command, context)
        if not validation.is_valid:
            return ExecutionResult(
                success=False,
                message="; ".join(validation.errors),
                errors=list(validation.errors),
                next_actions=list(validation.suggested_fixes),
            )
        if validation.warnings:
            self._notify(NotificationType.WARNING, "Command Warning", "; ".join(validation.warnings))

        kind = command.kind
        params = command.parameters
        if kind is CommandAction.SEARCH and isinstance(params, SearchParams):
            return self._search(params)
        if kind in (CommandAction.NAVIGATE_TO, CommandAction.NAVIGATE) and isinstance(params, NavigateParams):
            return self._navigate_to(params)
        if kind is CommandAction.APPLY_FILTER and isinstance(params, FilterParams):
            return self._apply_filter(params, context)
        if kind is CommandAction.UPDATE_QUANTITY and isinstance(params, UpdateQuantityParams):
            return self._update_quantity(params)
        if kind is CommandAction.SHOW_CART:
            return self._show_cart()
        if kind is CommandAction.HELP:
            topic = params.topic if isinstance(params, HelpParams) else "general"
            return ExecutionResult(
                success=True,
                message=HELP_MESSAGES.get(topic, HELP_MESSAGES["general"]),
                data={"topic": topic},
                next_actions=["search products", "view cart", "browse categories"],
            )
        if kind is CommandAction.REPEAT:
            return ExecutionResult(success=True, message="I'll repeat that for you.", data={"repeat": True})
        if kind in (CommandAction.STOP, CommandAction.CANCEL):
            return ExecutionResult(success=True, message="Ok, I'll stop.", data={"stop": True})
        return ExecutionResult(
            success=False,
            message=f"Unknown command: {command.action}",
            next_actions=["Try a different command", "Ask for help"],
        )

    def _search(self, params: SearchParams) -> ExecutionResult:
        query_params = {"search": params.query}
        if params.category:
            query_params["category"] = params.category
        action = NavigationAction("/products", query_params)
        self._navigate(action)
        suffix = f" in {params.category}" if params.category else ""
        self._notify(NotificationType.INFO, "Searching", f'Searching for "{params.query}"{suffix}', duration_ms=2000)
        return ExecutionResult(
            success=True,
            message=f'Searching for "{params.query}"',
            data={"query": params.query, "category": params.category, "url": action.url()},
            navigation_action=action,
            next_actions=["Apply filters", "Sort results", "Add items to cart"],
        )

    def _navigate_to(self, params: NavigateParams) -> ExecutionResult:
        path = PAGE_PATHS.get(params.page or "")
        if path is None:
            return ExecutionResult(
                success=False,
                message=f"Unknown page: {params.page}",
                next_actions=[f"Go to {page}" for page in PAGE_PATHS],
            )
        action = NavigationAction(path, dict(params.params))
        self._navigate(action)
        self._notify(NotificationType.INFO, "Navigating", f"Going to {params.page}", duration_ms=2000)
        return ExecutionResult(
            success=True,
            message=f"Navigating to {params.page}",
            data={"page": params.page, "url": action.url()},
            navigation_action=action,
        )

    def _apply_filter(self, params: FilterParams, context: PageContext) -> ExecutionResult:
        query: dict[str, str] = dict(context.filters)
        if context.search_query:
            query["search"] = context.search_query
        query.update(params.filters)
        path = context.route if context.current_page == "product_listing" else PAGE_PATHS["products"]
        action = NavigationAction(path, query)
        self._navigate(action)
        applied = ", ".join(f"{key}: {value}" for key, value in params.filters.items())
        self._notify(NotificationType.SUCCESS, "Filters Applied", f"Applied filters: {applied}")
        return ExecutionResult(
            success=True,
            message=f"Applied filters: {applied}",
            data=dict(params.filters),
            navigation_action=action,
            next_actions=["Clear filters", "Apply additional filters", "Sort results"],
        )

    def _update_quantity(self, params: UpdateQuantityParams) -> ExecutionResult:
        quantity = params.quantity or 0
        if quantity == 0:
            removed = self._cart.remove(item_id=params.item_id, product_name=params.product_name)
            updated = removed[0] if removed else None
        else:
            updated = self._cart.update_quantity(quantity, item_id=params.item_id, product_name=params.product_name)
        if updated is None:
            return ExecutionResult(
                success=False,
                message="Item not found in cart",
                next_actions=["Check cart contents", "Try a different item name"],
            )
        if quantity == 0:
            message = f"{updated.name} removed from cart"
        else:
            message = f"{updated.name} quantity updated to {quantity}"
        self._notify(NotificationType.SUCCESS, "Cart Updated", message)
        return ExecutionResult(
            success=True,
            message=message,
            data={"updated_item": updated.to_dict(), "cart_size": len(self._cart.items())},
            next_actions=["Continue shopping", "View cart", "Proceed to checkout"],
        )

    def _show_cart(self) -> ExecutionResult:
        action = NavigationAction(PAGE_PATHS["cart"])
        self._navigate(action)
        self._notify(NotificationType.INFO, "Opening Cart", "Showing your shopping cart", duration_ms=2000)
        return ExecutionResult(
            success=True,
            message="Opening shopping cart",
            navigation_action=action,
            next_actions=["Update quantities", "Remove items", "Proceed to checkout"],
        )
