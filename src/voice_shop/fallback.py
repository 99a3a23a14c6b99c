"""Ordered fallback over interchangeable strategies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, Protocol, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class NamedStrategy(Protocol):
    name: str


class FallbackExhaustedError(RuntimeError):
    """Every strategy failed; ``errors`` keeps each failure in attempt order."""

    def __init__(self, errors: list[tuple[str, BaseException]]) -> None:
        self.errors = errors
        names = ", ".join(name for name, _ in errors) or "none"
        super().__init__(f"All strategies failed ({names})")

    @property
    def last_error(self) -> BaseException | None:
        return self.errors[-1][1] if self.errors else None


@dataclass(slots=True)
class FallbackOutcome(Generic[R]):
    strategy: str
    value: R
    failures: list[tuple[str, BaseException]]


async def run_with_fallback(
    strategies: Iterable[T],
    attempt: Callable[[T], Awaitable[R]],
    *,
    logger: logging.Logger | None = None,
    event: str = "fallback_strategy_failed",
) -> FallbackOutcome[R]:
    """Try ``attempt`` on each strategy in order until one succeeds.

    Failures are logged and collected. Cancellation is never swallowed.
    """
    log = logger or logging.getLogger("voice_shop.fallback")
    failures: list[tuple[str, BaseException]] = []
    for strategy in strategies:
        name = getattr(strategy, "name", type(strategy).__name__)
        try:
            value = await attempt(strategy)
        except Exception as exc:  # noqa: BLE001
            failures.append((name, exc))
            log.warning(event, extra={"strategy": name, "error": f"{type(exc).__name__}: {exc}"})
            continue
        return FallbackOutcome(strategy=name, value=value, failures=failures)
    raise FallbackExhaustedError(failures)
