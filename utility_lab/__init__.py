from __future__ import annotations

"""Composable utility-guided optimization: utilities, generators and reversible modifiers."""

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - type checking helper
    from .config import OptimizerConfig, load_config
    from .engine import RunParameters, RunResult, optimize
    from .rng import DeterministicRNG

__all__ = [
    "DeterministicRNG",
    "OptimizerConfig",
    "RunParameters",
    "RunResult",
    "load_config",
    "optimize",
]

_EXPORTS = {
    "DeterministicRNG": ".rng",
    "OptimizerConfig": ".config",
    "load_config": ".config",
    "RunParameters": ".engine",
    "RunResult": ".engine",
    "optimize": ".engine",
}


def __getattr__(name: str) -> Any:  # pragma: no cover - dispatch helper
    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(name)
    module = import_module(target, __name__)
    value = getattr(module, name)
    globals()[name] = value
    return value
