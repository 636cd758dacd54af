"""
Saga execution.

Steps run one after another. Each success with a compensator is pushed on an
undo stack; the first failure unwinds that stack newest-first and stops.
"""

from __future__ import annotations

import logging
from typing import Any

from kungfu import Error, Ok, Result

from bazaar.saga._types import Compensator, Saga, SagaError, SagaResult, SagaStep

logger = logging.getLogger(__name__)


class _Undo:
    __slots__ = ("name", "value", "compensate")

    def __init__(self, name: str, value: Any, compensate: Compensator[Any]) -> None:
        self.name = name
        self.value = value
        self.compensate = compensate


async def unwind(stack: list[_Undo]) -> tuple[int, int]:
    """Run compensators newest-first. A failing one is logged and skipped."""
    done = failed = 0
    for entry in reversed(stack):
        try:
            await entry.compensate(entry.value)
        except Exception:
            logger.exception("Compensation for step %r failed", entry.name or "?")
            failed += 1
        else:
            done += 1
    return done, failed


async def run[T, E](saga: Saga[T, E] | SagaStep[T, E]) -> Result[SagaResult[T], SagaError[E]]:
    """
    Execute every step, rolling back on the first failure.

    Example:
        match await S.run(checkout):
            case Ok(done):
                done.value
            case Error(failure):
                failure.step_name, failure.rollback_complete
    """
    chain = saga if isinstance(saga, Saga) else Saga(first=saga)
    stack: list[_Undo] = []
    continuations = iter(chain.continuations)
    current: SagaStep[Any, Any] = chain.first
    executed = 0

    while True:
        executed += 1
        match await current.action:
            case Ok(value):
                if current.compensate is not None:
                    stack.append(_Undo(current.name, value, current.compensate))
            case Error(error):
                done, failed = await unwind(stack)
                return Error(SagaError(
                    error=error,
                    step_failed=executed,
                    step_name=current.name,
                    compensators_run=done,
                    compensators_failed=failed,
                ))

        following = next(continuations, None)
        if following is None:
            return Ok(SagaResult(
                value=value,
                steps_executed=executed,
                compensators_recorded=len(stack),
            ))
        current = following(value)


__all__ = ("run", "unwind")
