"""Level 2: local search by reversible modification."""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Callable, List, Optional, TypeVar

from ..capabilities.interfaces import ModifierProtocol, UtilityProtocol
from ..capabilities.modifier import UndoToken
from ..capabilities.utility import evaluate
from ..errors import InapplicableModification
from ..rng import DeterministicRNG
from .acceptance import GreedyAcceptance
from .interfaces import AcceptancePolicy, LocalSearchResult

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .prediction import SensitivityRecorder

LOGGER = logging.getLogger("utility_lab.local")

T = TypeVar("T")


def local_search(
    utility: UtilityProtocol[T],
    modifier: ModifierProtocol[T],
    seed: T,
    rng: DeterministicRNG,
    iterations: int,
    *,
    acceptance: Optional[AcceptancePolicy] = None,
    patience: Optional[int] = None,
    copier: Callable[[T], T] = copy.deepcopy,
    recorder: Optional["SensitivityRecorder"] = None,
) -> LocalSearchResult[T]:
    """Improves ``seed`` in place (or by value) with ``modifier``.

    Every iteration proposes one modification, scores it and either keeps it
    or undoes it. The loop stops when ``iterations`` are spent or when
    ``patience`` consecutive iterations pass without a strict improvement.
    Inapplicable modifications count as spent iterations.

    Under greedy acceptance the current candidate is always the best one, so
    no copies are taken; other policies snapshot the best state with
    ``copier``.
    """

    policy: AcceptancePolicy = acceptance or GreedyAcceptance()
    snapshot_best = not isinstance(policy, GreedyAcceptance)

    current = seed
    current_score = evaluate(utility, current)
    seed_score = current_score
    best = copier(current) if snapshot_best else current
    best_score = current_score

    trace: List[float] = [current_score]
    accepted: List[UndoToken] = []
    inapplicable = 0
    since_improvement = 0
    spent = 0
    stop_reason = "budget"

    for iteration in range(iterations):
        if patience is not None and since_improvement >= patience:
            stop_reason = "patience"
            break
        spent += 1
        try:
            current, token = modifier.apply(current, rng)
        except InapplicableModification as exc:
            inapplicable += 1
            since_improvement += 1
            LOGGER.debug("iteration %d skipped: %s", iteration, exc)
            continue

        proposed = evaluate(utility, current)
        if not policy.accept(current_score, proposed, iteration, rng):
            current = modifier.undo(token, current)
            since_improvement += 1
            continue

        since_improvement = 0 if proposed > current_score else since_improvement + 1
        current_score = proposed
        trace.append(proposed)
        accepted.append(token)
        if recorder is not None:
            recorder.observe(current, source="local")
        if not snapshot_best:
            best, best_score = current, current_score
        elif proposed > best_score:
            best, best_score = copier(current), proposed

    LOGGER.info(
        "local search: %.4f -> %.4f (best %.4f) iterations=%d accepted=%d inapplicable=%d stop=%s",
        seed_score,
        current_score,
        best_score,
        spent,
        len(accepted),
        inapplicable,
        stop_reason,
    )
    return LocalSearchResult(
        candidate=current,
        score=current_score,
        seed_score=seed_score,
        best=best,
        best_score=best_score,
        iterations=spent,
        inapplicable=inapplicable,
        stop_reason=stop_reason,
        trace=trace,
        accepted=accepted,
    )


__all__ = ["local_search"]
