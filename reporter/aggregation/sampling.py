from __future__ import annotations

import random
from typing import Callable


class Sampler:
    """Fixed-rate admission filter, evaluated once per (event, metric)."""

    def __init__(self, rate: float = 1.0, rng: Callable[[], float] = random.random):
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"sample rate must be within [0, 1], got {rate!r}")
        self.rate = rate
        self._rng = rng

    def sample(self) -> bool:
        if self.rate >= 1.0:
            return True
        if self.rate <= 0.0:
            return False
        return self._rng() < self.rate


def should_sample(rate: float) -> bool:
    return Sampler(rate).sample()
