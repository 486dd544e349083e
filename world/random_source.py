from __future__ import annotations

"""Seeded random stream shared by map generation and the simulation."""

import logging
import random
from typing import MutableSequence, Optional, Sequence, TypeVar

logger = logging.getLogger("sandbox.Random")
logger.addHandler(logging.NullHandler())

T = TypeVar("T")

MAX_GENERATED_SEED = 999_999


class SeededRandom:
    """
    Deterministic random source.

    Every consumer in the game receives the same instance; nothing else may
    draw randomness. When no seed is given a fresh one is picked from the
    operating system and logged so the run can be reproduced later.
    """

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = random.SystemRandom().randint(1, MAX_GENERATED_SEED)
            logger.info("Generated random seed %d", seed)
        self.seed: int = int(seed)
        self._rng = random.Random(self.seed)

    def random(self) -> float:
        """Uniform draw in ``[0, 1)``."""
        return self._rng.random()

    def random_int(self, lo: int, hi: int) -> int:
        """Inclusive integer draw between ``lo`` and ``hi``."""
        return int(self.random() * (hi - lo + 1)) + lo

    def random_float(self, lo: float, hi: float) -> float:
        return self.random() * (hi - lo) + lo

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise IndexError("cannot choose from an empty sequence")
        return items[self.random_int(0, len(items) - 1)]

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        """Fisher-Yates shuffle in place; returns ``items`` for chaining."""
        for i in range(len(items) - 1, 0, -1):
            j = self.random_int(0, i)
            items[i], items[j] = items[j], items[i]
        return items

    def probability(self, p: float) -> bool:
        return self.random() < p

    def __repr__(self) -> str:
        return f"SeededRandom(seed={self.seed})"


__all__ = ["SeededRandom", "MAX_GENERATED_SEED"]
