#!/usr/bin/env python3
"""
Utility-guided optimization runner for the bundled reference domains.

Domains:
- number: byte value pulled towards --target, with a reward for primes
- vector: 5-element vector in [0,1] maximizing the sum of its coordinates

Levels:
- blind generation: --generations N
- local modification: --iterations N [--acceptance greedy|annealing --patience W]
- trade-off prediction: --predict component=delta (repeatable)

Environment (also read from .env):
- UTILITY_LAB_SEED, UTILITY_LAB_LOG_LEVEL
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dotenv import load_dotenv

from utility_lab.capabilities import (
    GeneratorSequence,
    ModifierSequence,
    ScaledUtility,
    SearchModifier,
    UtilitySequence,
)
from utility_lab.config import OptimizerConfig, apply_environment, load_config
from utility_lab.domains import number, vector
from utility_lab.engine import Prediction, optimize
from utility_lab.errors import RunFailed
from utility_lab.logging_utils import RunLogger, create_logger
from utility_lab.rng import DeterministicRNG

logger = logging.getLogger("utility_lab.cli")


def parse_perturbations(values: Sequence[str]) -> Dict[str, float]:
    perturbation: Dict[str, float] = {}
    for item in values:
        name, sep, raw = item.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Expected component=delta, got {item!r}")
        try:
            perturbation[name.strip()] = float(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid delta in {item!r}") from exc
    return perturbation


def build_number_domain(args: argparse.Namespace, config: OptimizerConfig) -> Tuple[Any, Any, Any]:
    utility = number.default_utility(target=args.target, penalty=args.penalty, reward=args.reward)
    generators = (
        number.NumberGenerator.random(),
        number.NumberGenerator.fixed(100),
        number.NumberGenerator.fixed(0),
    )
    generator = GeneratorSequence(generators, selection=config.build_selection())
    modifier: Any = ModifierSequence(
        (number.NumberModifier(number.NumberModifierKind.INC), number.NumberModifier(number.NumberModifierKind.DEC))
    )
    if args.search_depth > 0:
        modifier = SearchModifier(modifier, utility, tries=args.search_tries, depth=args.search_depth)
    return utility, generator, modifier


def build_vector_domain(args: argparse.Namespace, config: OptimizerConfig) -> Tuple[Any, Any, Any]:
    utility = UtilitySequence((ScaledUtility(vector.VectorUtility.total(), weight=1.0, name="sum"),))
    generator = vector.VectorGenerator.uniform(args.size)
    modifier: Any = ModifierSequence((vector.VectorModifier.perturb(args.step), vector.VectorModifier.resample()))
    if args.search_depth > 0:
        modifier = SearchModifier(modifier, utility, tries=args.search_tries, depth=args.search_depth)
    return utility, generator, modifier


DOMAINS = {
    "number": build_number_domain,
    "vector": build_vector_domain,
}


def resolve_config(args: argparse.Namespace) -> OptimizerConfig:
    config = load_config(Path(args.config)) if args.config else OptimizerConfig()
    config = apply_environment(config, os.environ)
    if args.seed is not None:
        config.run.seed = args.seed
    if args.generations is not None:
        config.run.generations = args.generations
    if args.iterations is not None:
        config.run.iterations = args.iterations
    if args.restarts is not None:
        config.run.restarts = args.restarts
    if args.patience is not None:
        config.run.patience = args.patience
    if args.workers is not None:
        config.run.workers = args.workers
    if args.acceptance is not None:
        config.acceptance.policy = args.acceptance
    if args.log_level is not None:
        config.logging.level = args.log_level.upper()
    if args.logfile is not None:
        config.logging.logfile = Path(args.logfile)
    return config


def run(args: argparse.Namespace, reporter: RunLogger, config: OptimizerConfig) -> int:
    utility, generator, modifier = DOMAINS[args.domain](args, config)
    recorder = config.build_recorder(utility) if args.predict else None
    logger.debug("resolved config: %s", config.as_dict())
    reporter.log("config", f"domain={args.domain} seed={config.run.seed} acceptance={config.acceptance.policy}")

    result = optimize(
        utility,
        generator,
        modifier,
        DeterministicRNG(config.run.seed),
        config.run_parameters(),
        acceptance=config.build_acceptance(),
        recorder=recorder,
        reporter=reporter,
    )
    reporter.log("result", f"candidate={result.candidate!r} utility={result.score:.4f}")
    reporter.summary(result.summary())
    for component in utility.breakdown(result.candidate):
        reporter.log(
            "result",
            f"  {component.name}: raw={component.raw:.4f} weight={component.weight:.3f} -> {component.weighted:.4f}",
            level="DEBUG",
        )

    if recorder is not None:
        predictor = config.build_predictor(recorder)
        outcome = predictor.predict(parse_perturbations(args.predict))
        if isinstance(outcome, Prediction):
            reporter.log(
                "predict",
                f"candidate={outcome.candidate!r} utility={outcome.score:.4f} "
                f"confidence={outcome.confidence:.3f} shifted={outcome.shifted}",
            )
        else:
            reporter.log("predict", f"rerun required: {outcome.reason}", level="WARN")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Utility-guided optimization for the reference domains.")
    ap.add_argument("--domain", choices=sorted(DOMAINS), default="number")
    ap.add_argument("--config", default=None, help="Path to YAML/JSON(C) optimizer configuration")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--generations", type=int, default=None, help="Blind generation budget per lineage")
    ap.add_argument("--iterations", type=int, default=None, help="Local search iterations per lineage")
    ap.add_argument("--restarts", type=int, default=None, help="Independent lineages to run")
    ap.add_argument("--patience", type=int, default=None, help="Stop after W iterations without improvement")
    ap.add_argument("--workers", type=int, default=None, help="Threads used to score blind candidates")
    ap.add_argument("--acceptance", default=None, choices=["greedy", "annealing"])
    ap.add_argument("--search-depth", type=int, default=0, help="Wrap the modifier in a look-ahead search")
    ap.add_argument("--search-tries", type=int, default=100)
    ap.add_argument("--predict", action="append", default=[], help="Weight perturbation, e.g. prime=2.5")
    ap.add_argument("--log-level", default=None)
    ap.add_argument("--logfile", default=None)
    ap.add_argument("--quiet", action="store_true", help="Only write the logfile, no console output")

    # number domain
    ap.add_argument("--target", type=int, default=42)
    ap.add_argument("--penalty", type=float, default=-1.0)
    ap.add_argument("--reward", type=float, default=5.0)

    # vector domain
    ap.add_argument("--size", type=int, default=vector.DEFAULT_SIZE)
    ap.add_argument("--step", type=float, default=0.1)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Failed to load configuration: {exc}")

    logging.basicConfig(
        level=getattr(logging, config.logging.level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    try:
        reporter = create_logger(config.logging.level, config.logging.logfile, quiet=args.quiet)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Failed to set up run logging: {exc}")

    with reporter:
        try:
            return run(args, reporter, config)
        except RunFailed as exc:
            reporter.log("error", str(exc), level="ERROR")
            return 1
        except ValueError as exc:
            reporter.log("error", str(exc), level="ERROR")
            return 2
        finally:
            timings = " ".join(f"{step}={ms:.0f}ms" for step, ms in reporter.timings.items())
            reporter.log("result", f"timings {timings or 'n/a'}", level="DEBUG")


if __name__ == "__main__":
    raise SystemExit(main())
