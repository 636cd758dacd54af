"""
Saga — multi-step operations with compensation.

    from bazaar import saga as S

    checkout = S.step(place, compensate=cancel, name="place").then(
        lambda placed: S.from_async(lambda: charge(placed), on_error=lift_error, name="charge")
    )
    result = await S.run(checkout)
"""

from bazaar.saga._types import Compensator, SagaStep, Saga, SagaResult, SagaError
from bazaar.saga._step import step, from_async
from bazaar.saga._run import run, unwind

__all__ = (
    "Compensator",
    "SagaStep",
    "Saga",
    "SagaResult",
    "SagaError",
    "step",
    "from_async",
    "run",
    "unwind",
)
