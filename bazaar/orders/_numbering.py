"""Order numbers: ORD-<epoch millis>-<0..999>."""

from __future__ import annotations

import random
import time
from collections.abc import Callable


class OrderNumberGenerator:
    __slots__ = ("_clock", "_rng")

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._clock = clock
        self._rng = rng or random.Random()

    def __call__(self) -> str:
        millis = int(self._clock() * 1000)
        return f"ORD-{millis}-{self._rng.randrange(1000)}"


__all__ = ("OrderNumberGenerator",)
