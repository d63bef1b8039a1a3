from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .capabilities.selection import resolve_selection
from .capabilities.utility import UtilitySequence
from .engine.acceptance import resolve_acceptance
from .engine.interfaces import AcceptancePolicy, RunParameters
from .engine.prediction import LinearTradeOffPredictor, SensitivityRecorder

ENV_SEED = "UTILITY_LAB_SEED"
ENV_LOG_LEVEL = "UTILITY_LAB_LOG_LEVEL"


@dataclass
class RunSection:
    generations: int = 100
    iterations: int = 1000
    patience: Optional[int] = None
    restarts: int = 1
    workers: int = 1
    seed: Optional[int] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "RunSection":
        if not raw:
            return cls()
        return cls(
            generations=int(raw.get("generations", raw.get("budget", raw.get("gens", 100)))),
            iterations=int(raw.get("iterations", raw.get("steps", 1000))),
            patience=_optional_int(raw.get("patience", raw.get("window"))),
            restarts=int(raw.get("restarts", raw.get("lineages", 1))),
            workers=int(raw.get("workers", 1)),
            seed=_optional_int(raw.get("seed")),
        )


@dataclass
class AcceptanceSection:
    policy: str = "greedy"
    temperature: float = 1.0
    cooling: float = 0.995

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | str | None) -> "AcceptanceSection":
        if not raw:
            return cls()
        if isinstance(raw, str):
            return cls(policy=raw)
        return cls(
            policy=str(raw.get("policy", raw.get("name", "greedy"))),
            temperature=float(raw.get("temperature", 1.0)),
            cooling=float(raw.get("cooling", 0.995)),
        )


@dataclass
class SelectionSection:
    policy: str = "uniform"
    weights: tuple[float, ...] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | str | None) -> "SelectionSection":
        if not raw:
            return cls()
        if isinstance(raw, str):
            return cls(policy=raw)
        weights = raw.get("weights") or ()
        return cls(
            policy=str(raw.get("policy", "uniform")),
            weights=tuple(float(value) for value in weights),
        )


@dataclass
class PredictionSection:
    min_confidence: float = 0.5
    max_relative_shift: float = 1.0
    switch_penalty: float = 0.5
    record_limit: Optional[int] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "PredictionSection":
        if not raw:
            return cls()
        return cls(
            min_confidence=float(raw.get("min_confidence", 0.5)),
            max_relative_shift=float(raw.get("max_relative_shift", 1.0)),
            switch_penalty=float(raw.get("switch_penalty", 0.5)),
            record_limit=_optional_int(raw.get("record_limit")),
        )


@dataclass
class LoggingSection:
    level: str = "INFO"
    logfile: Optional[Path] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "LoggingSection":
        if not raw:
            return cls()
        return cls(
            level=str(raw.get("level", "INFO")).upper(),
            logfile=_optional_path(raw.get("logfile", raw.get("file"))),
        )


@dataclass
class OptimizerConfig:
    schema_version: int = 1
    run: RunSection = field(default_factory=RunSection)
    acceptance: AcceptanceSection = field(default_factory=AcceptanceSection)
    selection: SelectionSection = field(default_factory=SelectionSection)
    prediction: PredictionSection = field(default_factory=PredictionSection)
    logging: LoggingSection = field(default_factory=LoggingSection)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "OptimizerConfig":
        run_data = _mapping_merge(raw.get("run", {}), raw.get("search", {}))
        if "seed" in raw and "seed" not in run_data:
            run_data["seed"] = raw.get("seed")
        acceptance_raw = raw.get("acceptance", _nested_mapping(raw.get("run", {}), "acceptance"))
        return cls(
            schema_version=int(raw.get("schema_version", 1)),
            run=RunSection.from_mapping(run_data),
            acceptance=AcceptanceSection.from_mapping(acceptance_raw),
            selection=SelectionSection.from_mapping(raw.get("selection")),
            prediction=PredictionSection.from_mapping(raw.get("prediction")),
            logging=LoggingSection.from_mapping(raw.get("logging")),
        )

    def run_parameters(self) -> RunParameters:
        return RunParameters(
            generations=self.run.generations,
            iterations=self.run.iterations,
            patience=self.run.patience,
            restarts=self.run.restarts,
            workers=self.run.workers,
            acceptance=self.acceptance.policy,
            temperature=self.acceptance.temperature,
            cooling=self.acceptance.cooling,
        )

    def build_acceptance(self) -> AcceptancePolicy:
        return resolve_acceptance(
            self.acceptance.policy,
            temperature=self.acceptance.temperature,
            cooling=self.acceptance.cooling,
        )

    def build_selection(self):
        return resolve_selection(self.selection.policy, self.selection.weights or None)

    def build_recorder(self, utility: UtilitySequence) -> SensitivityRecorder:
        return SensitivityRecorder(utility, limit=self.prediction.record_limit)

    def build_predictor(self, recorder: SensitivityRecorder) -> LinearTradeOffPredictor:
        return LinearTradeOffPredictor(
            recorder,
            min_confidence=self.prediction.min_confidence,
            max_relative_shift=self.prediction.max_relative_shift,
            switch_penalty=self.prediction.switch_penalty,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "run": {
                "generations": self.run.generations,
                "iterations": self.run.iterations,
                "patience": self.run.patience,
                "restarts": self.run.restarts,
                "workers": self.run.workers,
                "seed": self.run.seed,
            },
            "acceptance": {
                "policy": self.acceptance.policy,
                "temperature": self.acceptance.temperature,
                "cooling": self.acceptance.cooling,
            },
            "selection": {"policy": self.selection.policy, "weights": list(self.selection.weights)},
            "prediction": {
                "min_confidence": self.prediction.min_confidence,
                "max_relative_shift": self.prediction.max_relative_shift,
                "switch_penalty": self.prediction.switch_penalty,
                "record_limit": self.prediction.record_limit,
            },
            "logging": {
                "level": self.logging.level,
                "logfile": str(self.logging.logfile) if self.logging.logfile else None,
            },
        }


def load_config(path: Path) -> OptimizerConfig:
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in {".json", ".jsonc"}:
        data = json.loads(_strip_jsonc(text))
    else:
        data = yaml.safe_load(text)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")
    return OptimizerConfig.from_dict(data)


def apply_environment(config: OptimizerConfig, environ: Mapping[str, str]) -> OptimizerConfig:
    """Overrides the seed and log level from ``UTILITY_LAB_*`` variables."""

    run = config.run
    logging_section = config.logging
    seed = environ.get(ENV_SEED, "").strip()
    if seed:
        try:
            run = replace(run, seed=int(seed))
        except ValueError as exc:
            raise ValueError(f"{ENV_SEED} must be an integer, got {seed!r}") from exc
    level = environ.get(ENV_LOG_LEVEL, "").strip()
    if level:
        logging_section = replace(logging_section, level=level.upper())
    return replace(config, run=run, logging=logging_section)


def _strip_jsonc(payload: str) -> str:
    result: list[str] = []
    length = len(payload)
    i = 0
    in_string = False
    escape = False
    while i < length:
        ch = payload[i]
        if in_string:
            result.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
            result.append(ch)
            i += 1
            continue

        if ch == "/" and i + 1 < length:
            nxt = payload[i + 1]
            if nxt == "/":
                i += 2
                while i < length and payload[i] not in "\r\n":
                    i += 1
                continue
            if nxt == "*":
                i += 2
                while i < length - 1:
                    if payload[i] == "*" and payload[i + 1] == "/":
                        i += 2
                        break
                    i += 1
                continue

        result.append(ch)
        i += 1
    return "".join(result)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value is False:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return int(value)


def _optional_path(value: Any) -> Path | None:
    if value in (None, "", False):
        return None
    return Path(str(value))


def _mapping_merge(parent: Any, child: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    if isinstance(parent, Mapping):
        result.update(parent)
    if isinstance(child, Mapping):
        result.update(child)
    return result


def _nested_mapping(source: Any, key: str) -> Dict[str, Any]:
    if not isinstance(source, Mapping):
        return {}
    value = source.get(key, {})
    return dict(value) if isinstance(value, Mapping) else {}


__all__ = [
    "AcceptanceSection",
    "LoggingSection",
    "OptimizerConfig",
    "PredictionSection",
    "RunSection",
    "SelectionSection",
    "apply_environment",
    "load_config",
]
