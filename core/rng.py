"""
PROBABILITY GAMES — Random Sources

Every outcome engine draws through a RandomSource so a session can be seeded
and tests can script the exact draws. Only ``random()`` is abstract; integer
draws, coin flips and shuffles are derived from it, which keeps a scripted
sequence of floats sufficient to pin down any outcome.

Usage:
    from core.rng import SeededRandom, SequenceRandom
    rng = SeededRandom(42)
    roll = rng.randint(1, 100)

    scripted = SequenceRandom([0.505])   # randint(1, 100) → 51
"""

from __future__ import annotations

import random as _random
from abc import ABC, abstractmethod
from typing import Iterable, MutableSequence, Optional


class RandomSource(ABC):
    """Uniform [0, 1) generator plus helpers built on it."""

    @abstractmethod
    def random(self) -> float:
        ...

    def randint(self, a: int, b: int) -> int:
        """Uniform integer in [a, b] (inclusive)."""
        span = b - a + 1
        return a + min(int(self.random() * span), span - 1)

    def bit(self) -> int:
        """Fair binary draw: 1 with probability 0.5."""
        return 1 if self.random() >= 0.5 else 0

    def chance(self, p: float) -> bool:
        """True with probability p."""
        return self.random() < p

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self.random()

    def shuffle(self, items: MutableSequence) -> None:
        """In-place Fisher-Yates shuffle."""
        for i in range(len(items) - 1, 0, -1):
            j = self.randint(0, i)
            items[i], items[j] = items[j], items[i]


class SeededRandom(RandomSource):
    """Mersenne Twister source; reproducible when given a seed."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = _random.Random(seed)

    def random(self) -> float:
        return self._rng.random()


class SequenceRandom(RandomSource):
    """Replays a fixed list of floats; raises once the script runs out."""

    def __init__(self, values: Iterable[float]):
        self._values = list(values)
        self._pos = 0

    def random(self) -> float:
        if self._pos >= len(self._values):
            raise IndexError(f"SequenceRandom exhausted after {self._pos} draws")
        value = self._values[self._pos]
        self._pos += 1
        if not 0.0 <= value < 1.0:
            raise ValueError(f"Scripted draw {value} outside [0, 1)")
        return value

    @property
    def remaining(self) -> int:
        return len(self._values) - self._pos
