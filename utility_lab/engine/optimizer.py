from __future__ import annotations

import copy
import logging
from typing import Callable, List, Optional, TypeVar

from ..capabilities.interfaces import GeneratorProtocol, ModifierProtocol, UtilityProtocol
from ..capabilities.selection import reset_state
from ..errors import RunFailed
from ..logging_utils import RunLogger
from ..rng import DeterministicRNG, ensure_rng
from .acceptance import resolve_acceptance
from .blind import blind_search
from .interfaces import (
    AcceptancePolicy,
    BlindSearchResult,
    LineageResult,
    LocalSearchResult,
    RunParameters,
    RunResult,
)
from .local import local_search
from .prediction import SensitivityRecorder

LOGGER = logging.getLogger("utility_lab.optimizer")

T = TypeVar("T")


def _run_lineage(
    index: int,
    utility: UtilityProtocol[T],
    generator: GeneratorProtocol[T],
    modifier: Optional[ModifierProtocol[T]],
    rng: DeterministicRNG,
    params: RunParameters,
    policy: AcceptancePolicy,
    recorder: Optional[SensitivityRecorder[T]],
    reporter: Optional[RunLogger],
    copier: Callable[[T], T],
) -> LineageResult[T]:
    # Selection cursors belong to the lineage, not to the capability instance.
    reset_state(generator)
    if modifier is not None:
        reset_state(modifier)

    def run_blind() -> BlindSearchResult[T]:
        return blind_search(
            utility,
            generator,
            rng,
            params.generations,
            workers=params.workers,
            recorder=recorder,
        )

    if reporter is not None:
        blind = reporter.timed(
            "blind",
            lambda result: (
                f"lineage={index} best={result.score:.4f} produced={result.produced} "
                f"exhausted={result.exhausted}"
            ),
            run_blind,
        )
    else:
        blind = run_blind()

    local: Optional[LocalSearchResult[T]] = None
    if modifier is not None:
        # The blind result keeps its own candidate; local search works on a copy.
        def run_local() -> LocalSearchResult[T]:
            return local_search(
                utility,
                modifier,
                copier(blind.candidate),
                rng,
                params.iterations,
                acceptance=policy,
                patience=params.patience,
                copier=copier,
                recorder=recorder,
            )

        if reporter is not None:
            local = reporter.timed(
                "local",
                lambda result: (
                    f"lineage={index} {result.seed_score:.4f} -> {result.best_score:.4f} "
                    f"accepted={result.accepted_steps} stop={result.stop_reason}"
                ),
                run_local,
            )
        else:
            local = run_local()

    return LineageResult(index=index, seed=rng.seed, blind=blind, local=local)


def optimize(
    utility: UtilityProtocol[T],
    generator: GeneratorProtocol[T],
    modifier: Optional[ModifierProtocol[T]],
    rng: DeterministicRNG | int | None,
    params: Optional[RunParameters] = None,
    *,
    acceptance: Optional[AcceptancePolicy] = None,
    recorder: Optional[SensitivityRecorder[T]] = None,
    reporter: Optional[RunLogger] = None,
    copier: Callable[[T], T] = copy.deepcopy,
) -> RunResult[T]:
    """Runs levels 1 and 2 for ``params.restarts`` independent lineages.

    Each lineage gets a child of ``rng`` so lineages never share random state.
    The best lineage wins; ties keep the earliest. Lineages that cannot
    produce a single candidate are skipped, and :class:`RunFailed` is raised
    only when all of them fail. Passing ``modifier=None`` runs level 1 only.
    """

    params = params or RunParameters()
    source = ensure_rng(rng)
    policy = acceptance or resolve_acceptance(
        params.acceptance, temperature=params.temperature, cooling=params.cooling
    )
    LOGGER.info(
        "optimize: restarts=%d generations=%d iterations=%d acceptance=%s workers=%d",
        params.restarts,
        params.generations,
        params.iterations,
        policy.name,
        params.workers,
    )

    lineages: List[LineageResult[T]] = []
    failed_attempts = 0
    for index in range(params.restarts):
        lineage_rng = source.spawn()
        try:
            lineage = _run_lineage(
                index,
                utility,
                generator,
                modifier,
                lineage_rng,
                params,
                policy,
                recorder,
                reporter,
                copier,
            )
        except RunFailed as exc:
            failed_attempts += exc.attempts
            LOGGER.warning("lineage %d failed: %s", index, exc)
            if reporter is not None:
                reporter.log("blind", f"lineage={index} failed: {exc}", level="WARN")
            continue
        lineages.append(lineage)

    if not lineages:
        raise RunFailed(failed_attempts)

    position = 0
    for candidate_position, lineage in enumerate(lineages):
        if lineage.score > lineages[position].score:
            position = candidate_position
    best = lineages[position]

    if reporter is not None:
        reporter.log("result", f"best lineage={best.index} score={best.score:.4f}")
    return RunResult(
        candidate=best.candidate,
        score=best.score,
        lineages=tuple(lineages),
        best_lineage=position,
    )


__all__ = ["optimize"]
