"""Capability abstractions: utility, generator and modifier plus their sequences."""

from .generator import FunctionGenerator, GeneratorSequence, generator_sequence
from .interfaces import (
    AggregationStrategy,
    GeneratorProtocol,
    ModifierProtocol,
    SelectionStrategy,
    UtilityProtocol,
)
from .modifier import (
    Modifier,
    ModifierSequence,
    SequenceChange,
    UndoToken,
    modifier_sequence,
    replay,
    rollback,
)
from .search import SearchModifier
from .selection import (
    RoundRobinSelection,
    SumAggregation,
    UniformSelection,
    WeightedSelection,
    reset_state,
    resolve_selection,
)
from .utility import (
    ComponentScore,
    FunctionUtility,
    ScaledUtility,
    UtilitySequence,
    evaluate,
    utility_sequence,
)

__all__ = [
    "AggregationStrategy",
    "ComponentScore",
    "FunctionGenerator",
    "FunctionUtility",
    "GeneratorProtocol",
    "GeneratorSequence",
    "Modifier",
    "ModifierProtocol",
    "ModifierSequence",
    "RoundRobinSelection",
    "ScaledUtility",
    "SearchModifier",
    "SelectionStrategy",
    "SequenceChange",
    "SumAggregation",
    "UndoToken",
    "UniformSelection",
    "UtilityProtocol",
    "UtilitySequence",
    "WeightedSelection",
    "evaluate",
    "generator_sequence",
    "modifier_sequence",
    "replay",
    "reset_state",
    "resolve_selection",
    "rollback",
    "utility_sequence",
]
