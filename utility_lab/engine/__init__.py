"""Optimization engine: blind generation, local search and trade-off prediction."""

from .acceptance import AnnealingAcceptance, GreedyAcceptance, resolve_acceptance
from .blind import blind_search
from .interfaces import (
    AcceptancePolicy,
    BlindSearchResult,
    LineageResult,
    LocalSearchResult,
    Prediction,
    RerunRequired,
    RunParameters,
    RunResult,
    TradeOffPredictor,
)
from .local import local_search
from .optimizer import optimize
from .prediction import LinearTradeOffPredictor, SensitivityRecord, SensitivityRecorder

__all__ = [
    "AcceptancePolicy",
    "AnnealingAcceptance",
    "BlindSearchResult",
    "GreedyAcceptance",
    "LineageResult",
    "LinearTradeOffPredictor",
    "LocalSearchResult",
    "Prediction",
    "RerunRequired",
    "RunParameters",
    "RunResult",
    "SensitivityRecord",
    "SensitivityRecorder",
    "TradeOffPredictor",
    "blind_search",
    "local_search",
    "optimize",
]
