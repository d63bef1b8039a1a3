from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple, TypeVar

from ..errors import InapplicableModification
from ..rng import DeterministicRNG
from .interfaces import ModifierProtocol, UtilityProtocol
from .modifier import Modifier, UndoToken, replay, rollback
from .selection import reset_state
from .utility import evaluate

LOGGER = logging.getLogger("utility_lab.search")

T = TypeVar("T")

Chain = Tuple[UndoToken, ...]


@dataclass(eq=False)
class SearchModifier(Modifier[T, Chain]):
    """Modifier that looks ahead before committing to a change.

    Each call runs ``tries`` excursions of up to ``depth`` chained
    modifications with ``modifier``, backtracks every excursion and finally
    replays the best-scoring prefix seen. The recorded change is that chain of
    inner tokens, so undo and redo work like any other modifier.
    """

    modifier: ModifierProtocol[T]
    utility: UtilityProtocol[T]
    tries: int = 100
    depth: int = 1

    def __post_init__(self) -> None:
        if self.tries < 1 or self.depth < 1:
            raise ValueError(f"tries and depth must be positive (tries={self.tries}, depth={self.depth})")

    def reset(self) -> None:
        reset_state(self.modifier)

    def modify(self, candidate: T, rng: DeterministicRNG) -> Tuple[T, Chain]:
        best_chain: List[UndoToken] = []
        best_score = evaluate(self.utility, candidate)
        start_score = best_score
        for _ in range(self.tries):
            stack: List[UndoToken] = []
            for _ in range(self.depth):
                try:
                    candidate, token = self.modifier.apply(candidate, rng)
                except InapplicableModification:
                    break
                stack.append(token)
                score = evaluate(self.utility, candidate)
                if score > best_score:
                    best_chain = list(stack)
                    best_score = score
            candidate = rollback(self.modifier, stack, candidate)

        if not best_chain:
            raise InapplicableModification(
                f"no improving chain found in {self.tries} tries of depth {self.depth}"
            )
        LOGGER.debug(
            "search chain length=%d utility %.4f -> %.4f", len(best_chain), start_score, best_score
        )
        candidate = replay(self.modifier, best_chain, candidate)
        return candidate, tuple(best_chain)

    def revert(self, change: Chain, candidate: T) -> T:
        return rollback(self.modifier, change, candidate)

    def reapply(self, change: Chain, candidate: T) -> T:
        return replay(self.modifier, change, candidate)


__all__ = ["SearchModifier"]
