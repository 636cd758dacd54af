"""
Saga types — named steps, the chain that links them, and outcomes.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from kungfu import LazyCoroResult

type Compensator[T] = Callable[[T], Awaitable[None]]
"""Undo for a completed step; receives that step's value."""

type Continuation = Callable[[Any], SagaStep[Any, Any]]


# ═══════════════════════════════════════════════════════════════════════════════
# Steps and chains
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None = None
    name: str = ""

    def then[U](self, f: Callable[[T], SagaStep[U, Any]]) -> Saga[U, Any]:
        return Saga(first=self, continuations=(f,))


@dataclass(frozen=True, slots=True)
class Saga[T, E]:
    """
    A first step plus continuations, each built from the previous value.

    Steps are created lazily, so a continuation sees exactly what the step
    before it produced:

        S.step(place, compensate=cancel, name="place")
        .then(lambda placed: S.from_async(lambda: pay(placed), on_error=..., name="pay"))
    """

    first: SagaStep[Any, Any]
    continuations: tuple[Continuation, ...] = ()

    def then[U](self, f: Callable[[T], SagaStep[U, Any]]) -> Saga[U, Any]:
        return Saga(first=self.first, continuations=(*self.continuations, f))

    def __len__(self) -> int:
        return 1 + len(self.continuations)


# ═══════════════════════════════════════════════════════════════════════════════
# Outcomes
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    value: T
    steps_executed: int
    compensators_recorded: int


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    """
    Failure of one step, after rollback.

    step_failed is 1-based. step_name is whatever the failing step was
    created with.
    """

    error: E
    step_failed: int
    step_name: str
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


__all__ = (
    "Compensator",
    "SagaStep",
    "Saga",
    "SagaResult",
    "SagaError",
)
