"""Named composition strategies used by capability sequences.

Utility sequences aggregate with :class:`SumAggregation`. Generator and
modifier sequences delegate to one element picked by a selection strategy;
uniform selection is the default.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from ..rng import DeterministicRNG


@dataclass(frozen=True)
class SumAggregation:
    name: str = "sum"

    def aggregate(self, scores: Sequence[float]) -> float:
        return math.fsum(scores)


@dataclass(frozen=True)
class UniformSelection:
    name: str = "uniform"

    def select(self, count: int, rng: DeterministicRNG) -> int:
        if count <= 0:
            raise ValueError("UniformSelection.select() requires at least one element")
        return rng.randrange(count)


@dataclass(frozen=True)
class WeightedSelection:
    """Picks an index with probability proportional to ``weights``."""

    weights: tuple[float, ...]
    name: str = "weighted"

    def __post_init__(self) -> None:
        cleaned = tuple(float(w) for w in self.weights)
        if any(w < 0.0 or not math.isfinite(w) for w in cleaned):
            raise ValueError(f"selection weights must be finite and non-negative: {cleaned}")
        if cleaned and math.fsum(cleaned) <= 0.0:
            raise ValueError("selection weights must not all be zero")
        object.__setattr__(self, "weights", cleaned)

    def select(self, count: int, rng: DeterministicRNG) -> int:
        if count <= 0:
            raise ValueError("WeightedSelection.select() requires at least one element")
        if count != len(self.weights):
            raise ValueError(
                f"WeightedSelection has {len(self.weights)} weight(s) for {count} element(s)"
            )
        return rng.choices(range(count), weights=self.weights, k=1)[0]


@dataclass
class RoundRobinSelection:
    """Cycles through the elements in order, ignoring the random source.

    The cursor is selection state, not candidate state. :func:`optimize`
    rewinds it through :func:`reset_state` at the start of every lineage;
    call :meth:`reset` when driving a sequence by hand.
    """

    name: str = "round_robin"
    _cursor: int = field(default=0, init=False, repr=False)

    def select(self, count: int, rng: DeterministicRNG) -> int:
        if count <= 0:
            raise ValueError("RoundRobinSelection.select() requires at least one element")
        index = self._cursor % count
        self._cursor += 1
        return index

    def reset(self) -> None:
        self._cursor = 0


def reset_state(capability: Any) -> None:
    """Rewinds selection state held by ``capability``, if it has any."""

    reset = getattr(capability, "reset", None)
    if callable(reset):
        reset()


def resolve_selection(name: str, weights: Sequence[float] | None = None):
    key = name.strip().lower().replace("-", "_")
    if key == "uniform":
        return UniformSelection()
    if key == "weighted":
        if not weights:
            raise ValueError("weighted selection requires weights")
        return WeightedSelection(tuple(weights))
    if key in {"round_robin", "roundrobin", "cycle"}:
        return RoundRobinSelection()
    raise ValueError(f"Unknown selection strategy: {name!r}")


def selection_frequencies(picks: Sequence[int], count: int) -> List[float]:
    """Empirical pick frequency per index, used for fairness checks."""

    if not picks:
        return [0.0] * count
    totals = [0] * count
    for index in picks:
        totals[index] += 1
    return [value / len(picks) for value in totals]


__all__ = [
    "RoundRobinSelection",
    "SumAggregation",
    "UniformSelection",
    "WeightedSelection",
    "reset_state",
    "resolve_selection",
    "selection_frequencies",
]
