"""Level 1: blind generation.

Candidates are produced from the generator and only compared by score; no
neighbourhood structure is needed. Scoring may fan out to a thread pool
because scores are pure, but generation always stays on the caller's single
random source so the enumeration order, and therefore the tie-break, is fixed.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, List, Optional, TypeVar

from ..capabilities.interfaces import GeneratorProtocol, UtilityProtocol
from ..capabilities.utility import evaluate
from ..errors import GenerationExhausted, RunFailed
from ..rng import DeterministicRNG
from .interfaces import BlindSearchResult

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .prediction import SensitivityRecorder

LOGGER = logging.getLogger("utility_lab.blind")

T = TypeVar("T")

_BATCH_PER_WORKER = 4


def _generate_batch(
    generator: GeneratorProtocol[T],
    rng: DeterministicRNG,
    size: int,
) -> tuple[List[T], int]:
    produced: List[T] = []
    exhausted = 0
    for _ in range(size):
        try:
            produced.append(generator.generate(rng))
        except GenerationExhausted as exc:
            exhausted += 1
            LOGGER.debug("generation attempt exhausted: %s", exc)
    return produced, exhausted


def blind_search(
    utility: UtilityProtocol[T],
    generator: GeneratorProtocol[T],
    rng: DeterministicRNG,
    budget: int,
    *,
    workers: int = 1,
    recorder: Optional["SensitivityRecorder"] = None,
) -> BlindSearchResult[T]:
    """Returns the best of ``budget`` generated candidates.

    Ties keep the first candidate in generation order. An exhausted attempt
    still consumes budget; :class:`RunFailed` is raised only when nothing was
    produced at all.
    """

    if budget < 1:
        raise ValueError("blind_search budget must be at least 1")

    batch_size = 1 if workers <= 1 else workers * _BATCH_PER_WORKER
    pool = ThreadPoolExecutor(max_workers=workers) if workers > 1 else None

    best: Optional[T] = None
    best_score = float("-inf")
    best_index = -1
    produced = 0
    exhausted = 0
    attempts = 0

    try:
        while attempts < budget:
            size = min(batch_size, budget - attempts)
            attempts += size
            batch, batch_exhausted = _generate_batch(generator, rng, size)
            exhausted += batch_exhausted
            if not batch:
                continue
            if pool is not None:
                scores = list(pool.map(lambda candidate: evaluate(utility, candidate), batch))
            else:
                scores = [evaluate(utility, candidate) for candidate in batch]
            for candidate, score in zip(batch, scores):
                if recorder is not None:
                    recorder.observe(candidate, source="blind")
                if best_index < 0 or score > best_score:
                    best = candidate
                    best_score = score
                    best_index = produced
                produced += 1
    finally:
        if pool is not None:
            pool.shutdown(wait=True)

    if best_index < 0:
        LOGGER.warning("blind search produced no candidate in %d attempt(s)", attempts)
        raise RunFailed(attempts)

    if exhausted:
        LOGGER.warning("blind search: %d of %d attempt(s) exhausted", exhausted, attempts)
    LOGGER.info(
        "blind search: best=%.4f index=%d produced=%d attempts=%d",
        best_score,
        best_index,
        produced,
        attempts,
    )
    return BlindSearchResult(
        candidate=best,
        score=best_score,
        attempts=attempts,
        produced=produced,
        exhausted=exhausted,
        index=best_index,
    )


__all__ = ["blind_search"]
