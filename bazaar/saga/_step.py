"""Step constructors."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from combinators import lift as L
from kungfu import LazyCoroResult

from bazaar.saga._types import Compensator, SagaStep


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "",
) -> SagaStep[T, E]:
    """Wrap an action that already returns a Result."""
    return SagaStep(action=action, compensate=compensate, name=name)


def from_async[T, E](
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "",
) -> SagaStep[T, E]:
    """
    Wrap a plain coroutine function; exceptions become Error(on_error(e)).

    Example:
        S.from_async(
            lambda: gateway.create_order(amount, "INR", receipt, {}),
            on_error=lift_error,
            name="gateway",
        )
    """
    return SagaStep(
        action=L.catching_async(action, on_error=on_error),
        compensate=compensate,
        name=name,
    )


__all__ = ("step", "from_async")
