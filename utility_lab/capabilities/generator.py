from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from ..errors import GenerationExhausted
from ..rng import DeterministicRNG
from .interfaces import GeneratorProtocol, SelectionStrategy
from .selection import UniformSelection, reset_state

T = TypeVar("T")


@dataclass(frozen=True)
class FunctionGenerator(Generic[T]):
    func: Callable[[DeterministicRNG], T]
    name: str = ""

    def generate(self, rng: DeterministicRNG) -> T:
        return self.func(rng)


@dataclass(frozen=True)
class GeneratorSequence(Generic[T]):
    """A sequence of generators delegates to one element per call.

    Nested sequences select at every level, so the overall distribution only
    matches a flattened uniform pick when the nested sequences have equal
    sizes.
    """

    elements: tuple[GeneratorProtocol[T], ...] = ()
    selection: SelectionStrategy = field(default_factory=UniformSelection)

    def __post_init__(self) -> None:
        object.__setattr__(self, "elements", tuple(self.elements))

    def __len__(self) -> int:
        return len(self.elements)

    def reset(self) -> None:
        """Rewinds the selection state of this sequence and every nested element."""

        reset_state(self.selection)
        for element in self.elements:
            reset_state(element)

    def pick(self, rng: DeterministicRNG) -> int:
        if not self.elements:
            raise GenerationExhausted("generator sequence is empty")
        return self.selection.select(len(self.elements), rng)

    def generate(self, rng: DeterministicRNG) -> T:
        return self.elements[self.pick(rng)].generate(rng)


def generator_sequence(*elements: GeneratorProtocol[T], selection: SelectionStrategy | None = None) -> GeneratorSequence[T]:
    if selection is None:
        return GeneratorSequence(tuple(elements))
    return GeneratorSequence(tuple(elements), selection=selection)


__all__ = ["FunctionGenerator", "GeneratorSequence", "generator_sequence"]
