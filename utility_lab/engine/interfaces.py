from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, Optional, Protocol, Sequence, TypeVar, Union

from ..capabilities.modifier import UndoToken
from ..rng import DeterministicRNG

T = TypeVar("T")


class AcceptancePolicy(Protocol):
    name: str

    def accept(
        self,
        current: float,
        proposed: float,
        iteration: int,
        rng: DeterministicRNG,
    ) -> bool:
        """Decide whether a trial modification is kept."""


@dataclass(frozen=True)
class RunParameters:
    generations: int = 100
    iterations: int = 1000
    patience: Optional[int] = None
    restarts: int = 1
    workers: int = 1
    acceptance: str = "greedy"
    temperature: float = 1.0
    cooling: float = 0.995

    def __post_init__(self) -> None:
        if self.generations < 1:
            raise ValueError("generations must be at least 1")
        if self.iterations < 0:
            raise ValueError("iterations must not be negative")
        if self.patience is not None and self.patience < 1:
            raise ValueError("patience must be positive when set")
        if self.restarts < 1:
            raise ValueError("restarts must be at least 1")
        if self.workers < 1:
            raise ValueError("workers must be at least 1")


@dataclass
class BlindSearchResult(Generic[T]):
    candidate: T
    score: float
    attempts: int
    produced: int
    exhausted: int
    index: int


@dataclass
class LocalSearchResult(Generic[T]):
    """Outcome of one local-search lineage.

    ``trace`` starts with the seed score and gains one entry per accepted
    step; ``accepted`` holds the matching undo tokens in order so the run can
    be replayed onto a copy of the seed.
    """

    candidate: T
    score: float
    seed_score: float
    best: T
    best_score: float
    iterations: int
    inapplicable: int
    stop_reason: str
    trace: list[float] = field(default_factory=list)
    accepted: list[UndoToken] = field(default_factory=list)

    @property
    def accepted_steps(self) -> int:
        return len(self.accepted)


@dataclass
class LineageResult(Generic[T]):
    index: int
    seed: Optional[int]
    blind: BlindSearchResult[T]
    local: Optional[LocalSearchResult[T]]

    @property
    def candidate(self) -> T:
        if self.local is not None:
            return self.local.best
        return self.blind.candidate

    @property
    def score(self) -> float:
        if self.local is not None:
            return self.local.best_score
        return self.blind.score


@dataclass
class RunResult(Generic[T]):
    candidate: T
    score: float
    lineages: Sequence[LineageResult[T]]
    best_lineage: int

    def summary(self) -> Mapping[str, Any]:
        return {
            "score": self.score,
            "best_lineage": self.best_lineage,
            "lineages": [
                {
                    "index": lineage.index,
                    "seed_score": lineage.blind.score,
                    "score": lineage.score,
                    "generated": lineage.blind.produced,
                    "accepted": lineage.local.accepted_steps if lineage.local else 0,
                    "stop_reason": lineage.local.stop_reason if lineage.local else "skipped",
                }
                for lineage in self.lineages
            ],
        }


@dataclass(frozen=True)
class Prediction(Generic[T]):
    candidate: T
    score: float
    confidence: float
    weights: Mapping[str, float]
    shifted: bool


@dataclass(frozen=True)
class RerunRequired:
    reason: str
    confidence: float
    weights: Mapping[str, float]


PredictionOutcome = Union[Prediction[Any], RerunRequired]


class TradeOffPredictor(Protocol):
    def predict(self, perturbation: Mapping[str, float]) -> PredictionOutcome:
        """Estimate the shifted optimum or ask for a full rerun."""


__all__ = [
    "AcceptancePolicy",
    "BlindSearchResult",
    "LineageResult",
    "LocalSearchResult",
    "Prediction",
    "PredictionOutcome",
    "RerunRequired",
    "RunParameters",
    "RunResult",
    "TradeOffPredictor",
]
