from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Optional

_SPAWN_BITS = 63


@dataclass(slots=True)
class DeterministicRNG:
    """Explicit random source handed to generators and modifiers.

    Capabilities never touch the process-wide ``random`` module; everything
    goes through an instance of this class so that a seed fully determines a
    lineage.
    """

    seed: Optional[int]
    _random: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._random = random.Random(self.seed)

    def choice(self, seq):
        if not seq:
            raise ValueError("choice on empty sequence")
        return self._random.choice(seq)

    def choices(self, population, weights=None, k: int = 1):
        return self._random.choices(population, weights=weights, k=k)

    def randint(self, a: int, b: int) -> int:
        return self._random.randint(a, b)

    def randrange(self, stop: int) -> int:
        return self._random.randrange(stop)

    def uniform(self, a: float, b: float) -> float:
        return self._random.uniform(a, b)

    def shuffle(self, seq) -> None:
        self._random.shuffle(seq)

    def random(self) -> float:
        return self._random.random()

    def spawn(self) -> "DeterministicRNG":
        """Derives an independent child source for a new lineage."""

        return DeterministicRNG(self._random.getrandbits(_SPAWN_BITS))

    def getstate(self):  # pragma: no cover - passthrough
        return self._random.getstate()

    def setstate(self, state):  # pragma: no cover - passthrough
        self._random.setstate(state)


def ensure_rng(source: "DeterministicRNG | int | None") -> DeterministicRNG:
    if isinstance(source, DeterministicRNG):
        return source
    return DeterministicRNG(source)


__all__ = ["DeterministicRNG", "ensure_rng"]
