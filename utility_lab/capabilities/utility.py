from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Generic, List, Mapping, TypeVar

from ..errors import UtilityContractError
from .interfaces import AggregationStrategy, UtilityProtocol
from .selection import SumAggregation

T = TypeVar("T")


@dataclass(frozen=True)
class ComponentScore:
    """One element of a utility sequence evaluated on a candidate.

    ``raw`` is the partial derivative of ``weighted`` with respect to
    ``weight``; the trade-off predictor uses it as recorded sensitivity.
    """

    name: str
    weight: float
    raw: float
    weighted: float


@dataclass(frozen=True)
class FunctionUtility(Generic[T]):
    func: Callable[[T], float]
    name: str = ""

    def utility(self, candidate: T) -> float:
        return self.func(candidate)


@dataclass(frozen=True)
class ScaledUtility(Generic[T]):
    """Utility carrying its own trade-off weight."""

    inner: UtilityProtocol[T]
    weight: float = 1.0
    name: str = ""

    def utility(self, candidate: T) -> float:
        return self.weight * self.inner.utility(candidate)

    def raw(self, candidate: T) -> float:
        return self.inner.utility(candidate)

    def reweighted(self, weight: float) -> "ScaledUtility[T]":
        return replace(self, weight=float(weight))


@dataclass(frozen=True)
class UtilitySequence(Generic[T]):
    """A sequence of utilities is itself a utility: the sum of its parts."""

    elements: tuple[UtilityProtocol[T], ...] = ()
    aggregation: AggregationStrategy = field(default_factory=SumAggregation)

    def __post_init__(self) -> None:
        object.__setattr__(self, "elements", tuple(self.elements))

    def __len__(self) -> int:
        return len(self.elements)

    def utility(self, candidate: T) -> float:
        return self.aggregation.aggregate([element.utility(candidate) for element in self.elements])

    def component_names(self) -> List[str]:
        names: List[str] = []
        for idx, element in enumerate(self.elements):
            name = _component_name(element, idx)
            if name in names:
                name = f"{name}_{idx}"
            names.append(name)
        return names

    def weights(self) -> Dict[str, float]:
        return {
            name: _component_weight(element)
            for name, element in zip(self.component_names(), self.elements)
        }

    def breakdown(self, candidate: T) -> List[ComponentScore]:
        scores: List[ComponentScore] = []
        for name, element in zip(self.component_names(), self.elements):
            weighted = float(element.utility(candidate))
            if isinstance(element, ScaledUtility):
                raw = float(element.raw(candidate))
            else:
                raw = weighted
            scores.append(
                ComponentScore(name=name, weight=_component_weight(element), raw=raw, weighted=weighted)
            )
        return scores

    def reweighted(self, weights: Mapping[str, float]) -> "UtilitySequence[T]":
        """Returns a copy with new weights for the named ``ScaledUtility`` elements."""

        names = self.component_names()
        unknown = set(weights) - set(names)
        if unknown:
            raise ValueError(f"Unknown utility component(s): {sorted(unknown)}")
        updated: List[UtilityProtocol[T]] = []
        for name, element in zip(names, self.elements):
            if name not in weights:
                updated.append(element)
                continue
            if not isinstance(element, ScaledUtility):
                raise ValueError(f"Utility component {name!r} carries no weight to adjust")
            updated.append(element.reweighted(weights[name]))
        return UtilitySequence(tuple(updated), aggregation=self.aggregation)


def _component_name(element: Any, index: int) -> str:
    name = getattr(element, "name", None)
    if isinstance(name, str) and name:
        return name
    return f"term_{index}"


def _component_weight(element: Any) -> float:
    if isinstance(element, ScaledUtility):
        return float(element.weight)
    return 1.0


def utility_sequence(*elements: UtilityProtocol[T]) -> UtilitySequence[T]:
    return UtilitySequence(tuple(elements))


def evaluate(utility: UtilityProtocol[T], candidate: T) -> float:
    """Scores ``candidate`` and enforces the utility contract.

    Any failure is a programming error in the utility and is raised as
    :class:`UtilityContractError` rather than retried.
    """

    try:
        value = utility.utility(candidate)
    except UtilityContractError:
        raise
    except Exception as exc:
        raise UtilityContractError(utility, f"raised {type(exc).__name__}: {exc}") from exc
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise UtilityContractError(utility, f"returned non-real value {value!r}")
    score = float(value)
    if not math.isfinite(score):
        raise UtilityContractError(utility, f"returned non-finite value {score!r}")
    return score


__all__ = [
    "ComponentScore",
    "FunctionUtility",
    "ScaledUtility",
    "UtilitySequence",
    "evaluate",
    "utility_sequence",
]
