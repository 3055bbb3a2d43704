# stealth_console/randomness.py
"""Random sampling primitives for pacing, amounts and jitter."""
import math
import random
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


class Randomness:
    """Wraps one ``random.Random`` so a run (or a test) can be seeded."""

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random(seed)

    def random(self) -> float:
        return self.rng.random()

    def uniform(self, lo: float, hi: float) -> float:
        # [lo, hi)
        return self.rng.random() * (hi - lo) + lo

    def chance(self, pct: float) -> bool:
        return self.rng.random() * 100 < pct

    def choice(self, items: Sequence[T]) -> T:
        return items[int(self.rng.random() * len(items))]

    def int_between(self, lo: int, hi: int) -> int:
        """Integer in [lo, hi] via floor(uniform(lo, hi + 1))."""
        return min(hi, int(math.floor(self.uniform(lo, hi + 1))))

    def log_normal_delay(self, lo: float, hi: float, scale: float = 1.0) -> float:
        """Right-skewed delay: median at ``lo``, long tail towards ``hi``.

        mu = ln(lo), sigma = (ln(hi) - ln(lo)) / 4, z from Box-Muller.
        ``lo`` must be > 0.
        """
        mu = math.log(lo)
        sigma = (math.log(hi) - math.log(lo)) / 4
        u1 = 1.0 - self.rng.random()  # (0, 1], log(0) недопустим
        u2 = self.rng.random()
        z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return math.exp(mu + sigma * z) * scale
