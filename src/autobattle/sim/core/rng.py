"""Seeded random number generator for reproducible battles.

Every random decision in a battle (initiative, damage and heal jitter,
random targets, loot rolls) is drawn from a ``CombatRNG`` handed in by the
caller.  Sub-systems that should not perturb each other take a *forked*
stream.
"""

from __future__ import annotations

import hashlib
import random
from typing import Sequence, TypeVar

T = TypeVar("T")


class CombatRNG:
    """Deterministic RNG that can be forked into independent sub-streams.

    Parameters
    ----------
    seed:
        Integer seed for the underlying Mersenne Twister.
    """

    def __init__(self, seed: int) -> None:
        self._seed = seed
        self._rng = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def random_int(self, low: int, high: int) -> int:
        """Return a random integer *N* such that ``low <= N <= high``."""
        return self._rng.randint(low, high)

    def jitter(self, upper: int) -> int:
        """Return a random integer in the half-open range ``[0, upper)``."""
        if upper <= 1:
            return 0
        return self._rng.randrange(upper)

    def random_float(self) -> float:
        """Return a random float in ``[0.0, 1.0)``."""
        return self._rng.random()

    def random_choice(self, seq: Sequence[T]) -> T:
        """Return a random element from a non-empty sequence."""
        return self._rng.choice(seq)

    def fork(self, name: str) -> CombatRNG:
        """Create a child RNG whose seed is derived from this seed and *name*.

        Forking with the same *name* always yields the same child seed, so
        ``rng.fork("loot")`` is stable across runs with the same master seed.
        """
        digest = hashlib.sha256(f"{self._seed}:{name}".encode()).digest()
        return CombatRNG(int.from_bytes(digest[:8], "big"))

    def __repr__(self) -> str:
        return f"CombatRNG(seed={self._seed})"
