from __future__ import annotations

import math
from dataclasses import dataclass

from ..rng import DeterministicRNG
from .interfaces import AcceptancePolicy


@dataclass(frozen=True)
class GreedyAcceptance:
    """Keeps a modification when utility does not decrease."""

    name: str = "greedy"

    def accept(self, current: float, proposed: float, iteration: int, rng: DeterministicRNG) -> bool:
        return proposed >= current


@dataclass(frozen=True)
class AnnealingAcceptance:
    """Simulated-annealing rule: worse proposals pass with ``exp(delta / T)``.

    The temperature at iteration ``i`` is ``temperature * cooling ** i``.
    Rejected proposals are still undone by the engine.
    """

    temperature: float = 1.0
    cooling: float = 0.995
    name: str = "annealing"

    def __post_init__(self) -> None:
        if self.temperature <= 0.0:
            raise ValueError("annealing temperature must be positive")
        if not 0.0 < self.cooling <= 1.0:
            raise ValueError("annealing cooling must be in (0, 1]")

    def temperature_at(self, iteration: int) -> float:
        return self.temperature * self.cooling ** iteration

    def accept(self, current: float, proposed: float, iteration: int, rng: DeterministicRNG) -> bool:
        if proposed >= current:
            return True
        temperature = self.temperature_at(iteration)
        if temperature <= 0.0:
            return False
        return rng.random() < math.exp((proposed - current) / temperature)


def resolve_acceptance(name: str, *, temperature: float = 1.0, cooling: float = 0.995) -> AcceptancePolicy:
    key = name.strip().lower().replace("-", "_")
    if key in {"greedy", "hill_climb", "hill_climbing"}:
        return GreedyAcceptance()
    if key in {"annealing", "simulated_annealing"}:
        return AnnealingAcceptance(temperature=temperature, cooling=cooling)
    raise ValueError(f"Unknown acceptance policy: {name!r}")


__all__ = ["AnnealingAcceptance", "GreedyAcceptance", "resolve_acceptance"]
