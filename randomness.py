"""
Random sources for the herding simulation.

The physics never calls a global RNG; it draws from an injected source with a
single operation, ``uniform(lo, hi)``. Swap in SequenceRandomSource to make
wander drift and jitter trials fully scripted.
"""

from typing import Iterable, Optional, Protocol

import numpy as np


class RandomSource(Protocol):
    def uniform(self, lo: float, hi: float) -> float:
        ...


class NumpyRandomSource:
    """Default source backed by numpy's PCG64 generator."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def uniform(self, lo: float, hi: float) -> float:
        return float(self._rng.uniform(lo, hi))


class SequenceRandomSource:
    """Cycles through fixed fractions in [0, 1]; each draw maps to lo + f·(hi-lo).

    ``SequenceRandomSource([0.5])`` gives the midpoint every time: zero wander
    drift and a jitter roll of 0.5, which never fires at 60 fps defaults.
    """

    def __init__(self, fractions: Iterable[float]):
        self.fractions = [float(f) for f in fractions]
        if not self.fractions:
            raise ValueError("SequenceRandomSource needs at least one fraction")
        if any(not 0.0 <= f <= 1.0 for f in self.fractions):
            raise ValueError(f"fractions must lie in [0, 1]: {self.fractions}")
        self._index = 0
        self.draws = 0

    def uniform(self, lo: float, hi: float) -> float:
        f = self.fractions[self._index]
        self._index = (self._index + 1) % len(self.fractions)
        self.draws += 1
        return lo + f * (hi - lo)
