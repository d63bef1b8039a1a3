"""Level 3: trade-off prediction.

Every weighted component of a :class:`UtilitySequence` contributes
``weight * raw`` to the aggregate, so the recorded ``raw`` values are exact
sensitivities of each evaluated candidate to its weights. Given a weight
perturbation the predictor re-ranks the recorded candidates linearly instead
of searching again, and reports how much it trusts that answer. When the trust
is too low it asks the caller to rerun levels 1 and 2 with
:meth:`LinearTradeOffPredictor.perturbed_utility`.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, Mapping, Optional, TypeVar

import numpy as np

from ..capabilities.utility import ScaledUtility, UtilitySequence
from .interfaces import Prediction, PredictionOutcome, RerunRequired

LOGGER = logging.getLogger("utility_lab.prediction")

T = TypeVar("T")


@dataclass(frozen=True)
class SensitivityRecord(Generic[T]):
    candidate: T
    raw: tuple[float, ...]
    source: str


class SensitivityRecorder(Generic[T]):
    """Collects per-component sensitivities of evaluated candidates.

    Parameters
    ----------
    utility:
        The weighted utility sequence the run optimizes.
    copier:
        Snapshot function; candidates may be mutated after they are observed.
    limit:
        Optional cap on stored records. When full, the recorder keeps a
        Pareto set over the weight-oriented components and evicts the most
        crowded point, so candidates favoured by other weightings survive.
    """

    def __init__(
        self,
        utility: UtilitySequence[T],
        *,
        copier: Callable[[T], T] = copy.deepcopy,
        limit: Optional[int] = None,
    ) -> None:
        if limit is not None and limit < 1:
            raise ValueError("recorder limit must be positive when set")
        self.utility = utility
        self.names: List[str] = utility.component_names()
        self.adjustable = {
            name
            for name, element in zip(self.names, utility.elements)
            if isinstance(element, ScaledUtility)
        }
        self._copier = copier
        self._limit = limit
        self._records: List[SensitivityRecord[T]] = []
        self._weights = np.array([utility.weights()[name] for name in self.names], dtype=float)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> List[SensitivityRecord[T]]:
        return list(self._records)

    def weight_vector(self) -> np.ndarray:
        return self._weights.copy()

    def matrix(self) -> np.ndarray:
        if not self._records:
            return np.zeros((0, len(self.names)), dtype=float)
        return np.array([record.raw for record in self._records], dtype=float)

    def observe(self, candidate: T, source: str = "manual") -> None:
        raw = tuple(component.raw for component in self.utility.breakdown(candidate))
        if self._limit is None or len(self._records) < self._limit:
            self._records.append(SensitivityRecord(candidate=self._copier(candidate), raw=raw, source=source))
            return
        slot = self._eviction_slot(np.array(raw, dtype=float))
        if slot is not None:
            self._records[slot] = SensitivityRecord(candidate=self._copier(candidate), raw=raw, source=source)

    def _eviction_slot(self, raw: np.ndarray) -> Optional[int]:
        """Index of the record to replace with ``raw``, or ``None`` to drop ``raw``.

        Components are oriented by the sign of their weight so that "larger
        is better" on every axis. A full recorder keeps a Pareto set: a
        dominated newcomer is dropped and a record it dominates is replaced.
        Among mutually non-dominated points the most crowded one (closest to
        a neighbour, lower score on ties) is evicted, which may be the
        newcomer itself. Candidates that only win under shifted weights thus
        stay available to :class:`LinearTradeOffPredictor`.
        """

        orient = np.sign(self._weights)
        stored = self.matrix() * orient
        point = raw * orient
        if np.any(np.all(stored >= point, axis=1)):
            return None
        dominated = np.flatnonzero(np.all(point >= stored, axis=1))
        scores = self.matrix() @ self._weights
        if dominated.size:
            return int(dominated[np.argmin(scores[dominated])])

        pool = np.vstack([stored, point])
        pool_scores = np.append(scores, float(raw @ self._weights))
        distances = np.linalg.norm(pool[:, None, :] - pool[None, :, :], axis=2)
        np.fill_diagonal(distances, np.inf)
        nearest = distances.min(axis=1)
        victim = min(range(len(pool)), key=lambda i: (nearest[i], pool_scores[i]))
        return None if victim == len(stored) else victim


@dataclass
class LinearTradeOffPredictor(Generic[T]):
    """Predict-or-fallback estimator over a :class:`SensitivityRecorder`.

    Confidence starts at ``1 - |delta| / (|w| * max_relative_shift)`` and is
    multiplied by ``switch_penalty`` when the predicted optimum is a different
    recorded candidate than the current one.
    """

    recorder: SensitivityRecorder[T]
    min_confidence: float = 0.5
    max_relative_shift: float = 1.0
    switch_penalty: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError("min_confidence must be within [0, 1]")
        if self.max_relative_shift <= 0.0:
            raise ValueError("max_relative_shift must be positive")
        if not 0.0 <= self.switch_penalty <= 1.0:
            raise ValueError("switch_penalty must be within [0, 1]")

    def _delta(self, perturbation: Mapping[str, float]) -> np.ndarray:
        names = self.recorder.names
        unknown = set(perturbation) - set(names)
        if unknown:
            raise ValueError(f"Unknown utility component(s): {sorted(unknown)}")
        fixed = {name for name, value in perturbation.items() if value and name not in self.recorder.adjustable}
        if fixed:
            raise ValueError(f"Utility component(s) without adjustable weight: {sorted(fixed)}")
        return np.array([float(perturbation.get(name, 0.0)) for name in names], dtype=float)

    def shifted_weights(self, perturbation: Mapping[str, float]) -> Dict[str, float]:
        shifted = self.recorder.weight_vector() + self._delta(perturbation)
        return {name: float(value) for name, value in zip(self.recorder.names, shifted)}

    def perturbed_utility(self, perturbation: Mapping[str, float]) -> UtilitySequence[T]:
        """Utility sequence to rerun levels 1 and 2 with after a fallback."""

        weights = self.shifted_weights(perturbation)
        adjusted = {name: value for name, value in weights.items() if name in self.recorder.adjustable}
        return self.recorder.utility.reweighted(adjusted)

    def confidence(self, delta: np.ndarray, moved: bool) -> float:
        base_norm = float(np.linalg.norm(self.recorder.weight_vector()))
        delta_norm = float(np.linalg.norm(delta))
        if delta_norm == 0.0:
            relative = 0.0
        elif base_norm == 0.0:
            relative = math.inf
        else:
            relative = delta_norm / base_norm
        value = max(0.0, 1.0 - relative / self.max_relative_shift)
        if moved:
            value *= self.switch_penalty
        return value

    def predict(self, perturbation: Mapping[str, float]) -> PredictionOutcome:
        delta = self._delta(perturbation)
        base = self.recorder.weight_vector()
        shifted = base + delta
        weights = {name: float(value) for name, value in zip(self.recorder.names, shifted)}

        if not len(self.recorder):
            return RerunRequired(reason="no recorded evaluations", confidence=0.0, weights=weights)

        matrix = self.recorder.matrix()
        current_scores = matrix @ base
        predicted_scores = matrix @ shifted
        current_best = int(np.argmax(current_scores))
        predicted_best = int(np.argmax(predicted_scores))
        moved = predicted_best != current_best
        confidence = self.confidence(delta, moved)

        if confidence < self.min_confidence:
            LOGGER.info(
                "trade-off prediction declined: confidence %.3f < %.3f (moved=%s)",
                confidence,
                self.min_confidence,
                moved,
            )
            return RerunRequired(
                reason=(
                    f"confidence {confidence:.3f} below {self.min_confidence:.3f}; "
                    "rerun generation and modification"
                ),
                confidence=confidence,
                weights=weights,
            )

        record = self.recorder.records[predicted_best]
        LOGGER.info(
            "trade-off prediction: score %.4f confidence %.3f moved=%s",
            float(predicted_scores[predicted_best]),
            confidence,
            moved,
        )
        return Prediction(
            candidate=record.candidate,
            score=float(predicted_scores[predicted_best]),
            confidence=confidence,
            weights=weights,
            shifted=moved,
        )


__all__ = ["LinearTradeOffPredictor", "SensitivityRecord", "SensitivityRecorder"]
