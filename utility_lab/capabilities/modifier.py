"""Reversible modification with explicit undo tokens.

A :class:`Modifier` subclass only describes the change itself
(``modify``/``revert``/``reapply``). The base class wraps every change into an
:class:`UndoToken` that remembers which modifier produced it and whether it has
already been undone:

* ``undo`` requires an armed token and consumes it;
* ``redo`` may be replayed any number of times and re-arms the token.

Mutable candidates may be changed in place; immutable ones are returned as new
values. Callers must always continue with the returned candidate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Tuple, TypeVar

from ..errors import InapplicableModification, UndoTokenError
from ..rng import DeterministicRNG
from .interfaces import ModifierProtocol, SelectionStrategy
from .selection import UniformSelection, reset_state

T = TypeVar("T")
C = TypeVar("C")


@dataclass(eq=False)
class UndoToken(Generic[C]):
    owner: Any
    change: C
    consumed: bool = False

    @property
    def armed(self) -> bool:
        return not self.consumed

    def __repr__(self) -> str:
        state = "consumed" if self.consumed else "armed"
        return f"UndoToken({type(self.owner).__name__}, {self.change!r}, {state})"


class Modifier(Generic[T, C]):
    """Base class for modifiers; subclasses implement the three hooks."""

    def modify(self, candidate: T, rng: DeterministicRNG) -> Tuple[T, C]:
        raise NotImplementedError

    def revert(self, change: C, candidate: T) -> T:
        raise NotImplementedError

    def reapply(self, change: C, candidate: T) -> T:
        raise NotImplementedError

    def apply(self, candidate: T, rng: DeterministicRNG) -> Tuple[T, UndoToken[C]]:
        modified, change = self.modify(candidate, rng)
        return modified, UndoToken(owner=self, change=change)

    def undo(self, token: UndoToken[C], candidate: T) -> T:
        self._check_owner(token)
        if token.consumed:
            raise UndoTokenError(f"{token!r} was already undone")
        restored = self.revert(token.change, candidate)
        token.consumed = True
        return restored

    def redo(self, token: UndoToken[C], candidate: T) -> T:
        self._check_owner(token)
        replayed = self.reapply(token.change, candidate)
        token.consumed = False
        return replayed

    def _check_owner(self, token: UndoToken[C]) -> None:
        if token.owner is not self:
            raise UndoTokenError(
                f"{token!r} belongs to {token.owner!r}, not {self!r}"
            )


@dataclass(frozen=True)
class SequenceChange:
    """Change recorded by a modifier sequence: chosen element plus its token."""

    index: int
    token: UndoToken


@dataclass(eq=False)
class ModifierSequence(Modifier[T, SequenceChange]):
    """Picks one element per modification and routes undo/redo back to it."""

    elements: tuple[ModifierProtocol[T], ...] = ()
    selection: SelectionStrategy = field(default_factory=UniformSelection)

    def __post_init__(self) -> None:
        self.elements = tuple(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def reset(self) -> None:
        reset_state(self.selection)
        for element in self.elements:
            reset_state(element)

    def modify(self, candidate: T, rng: DeterministicRNG) -> Tuple[T, SequenceChange]:
        if not self.elements:
            raise InapplicableModification("modifier sequence is empty")
        index = self.selection.select(len(self.elements), rng)
        modified, token = self.elements[index].apply(candidate, rng)
        return modified, SequenceChange(index=index, token=token)

    def revert(self, change: SequenceChange, candidate: T) -> T:
        return self.elements[change.index].undo(change.token, candidate)

    def reapply(self, change: SequenceChange, candidate: T) -> T:
        return self.elements[change.index].redo(change.token, candidate)


def modifier_sequence(*elements: ModifierProtocol[T], selection: SelectionStrategy | None = None) -> ModifierSequence[T]:
    if selection is None:
        return ModifierSequence(tuple(elements))
    return ModifierSequence(tuple(elements), selection=selection)


def replay(modifier: ModifierProtocol[T], tokens: Iterable[UndoToken], candidate: T) -> T:
    """Redoes a recorded token chain in order on ``candidate``."""

    for token in tokens:
        candidate = modifier.redo(token, candidate)
    return candidate


def rollback(modifier: ModifierProtocol[T], tokens: Iterable[UndoToken], candidate: T) -> T:
    """Undoes a token chain in reverse order."""

    for token in reversed(list(tokens)):
        candidate = modifier.undo(token, candidate)
    return candidate


__all__ = [
    "Modifier",
    "ModifierSequence",
    "SequenceChange",
    "UndoToken",
    "modifier_sequence",
    "replay",
    "rollback",
]
