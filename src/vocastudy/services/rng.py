"""Randomness used by question generation."""
import random
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


class Rng(ABC):
    """Source of shuffles and samples, injectable so tests can make them deterministic."""

    @abstractmethod
    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Return a new list with the items in random order."""

    @abstractmethod
    def pick_random(self, items: Sequence[T], n: int) -> List[T]:
        """Return up to n items sampled without replacement."""


class RandomRng(Rng):
    """Rng backed by `random.Random`."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def shuffle(self, items: Sequence[T]) -> List[T]:
        result = list(items)
        self._random.shuffle(result)
        return result

    def pick_random(self, items: Sequence[T], n: int) -> List[T]:
        return self._random.sample(list(items), min(max(n, 0), len(items)))
