"""
Seedable random source for synthesized traffic.

The estimator never calls the `random` module directly; it draws from a
Jitter so tests (and operators who set JITTER_SEED) get reproducible output.
"""
import random
from typing import Optional


class Jitter:
    """Random draws used by the visit estimator."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def for_venue(self, venue_id: str) -> "Jitter":
        """
        Independent stream for one venue.

        Seeded jitter derives the stream from (seed, venue_id) so results do
        not depend on the order in which concurrent lookups finish.
        """
        if self.seed is None:
            return Jitter()
        derived = Jitter.__new__(Jitter)
        derived.seed = self.seed
        derived._rng = random.Random(f"{self.seed}:{venue_id}")
        return derived

    def uniform(self, low: float, high: float) -> float:
        return self._rng.uniform(low, high)

    def factor(self, spread: float) -> float:
        """Multiplier in [1 - spread, 1 + spread]."""
        return self._rng.uniform(1 - spread, 1 + spread)

    def delta(self, bound: float) -> float:
        """Signed value in [-bound, bound]."""
        return self._rng.uniform(-bound, bound)
