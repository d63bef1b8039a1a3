from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Tuple, TypeVar, runtime_checkable

from ..rng import DeterministicRNG

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .modifier import UndoToken

T = TypeVar("T")


@runtime_checkable
class UtilityProtocol(Protocol[T]):
    def utility(self, candidate: T) -> float:
        """Pure, deterministic desirability score; higher is better."""


@runtime_checkable
class GeneratorProtocol(Protocol[T]):
    def generate(self, rng: DeterministicRNG) -> T:
        """Produce a fresh candidate or raise ``GenerationExhausted``."""


@runtime_checkable
class ModifierProtocol(Protocol[T]):
    def apply(self, candidate: T, rng: DeterministicRNG) -> Tuple[T, "UndoToken"]:
        """Modify ``candidate`` or raise ``InapplicableModification``."""

    def undo(self, token: "UndoToken", candidate: T) -> T:
        """Exactly reverse the modification recorded in ``token``."""

    def redo(self, token: "UndoToken", candidate: T) -> T:
        """Deterministically reapply the modification recorded in ``token``."""


@runtime_checkable
class SelectionStrategy(Protocol):
    def select(self, count: int, rng: DeterministicRNG) -> int:
        """Return the index of the element to delegate to."""


@runtime_checkable
class AggregationStrategy(Protocol):
    def aggregate(self, scores: "list[float]") -> float:
        """Combine per-element utility scores into one value."""


__all__ = [
    "AggregationStrategy",
    "GeneratorProtocol",
    "ModifierProtocol",
    "SelectionStrategy",
    "UtilityProtocol",
]
