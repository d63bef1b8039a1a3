from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from ..capabilities.modifier import Modifier
from ..errors import GenerationExhausted, InapplicableModification
from ..rng import DeterministicRNG

Vector = List[float]

DEFAULT_SIZE = 5
LOWER = 0.0
UPPER = 1.0


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


class VectorUtilityKind(str, Enum):
    SUM = "sum"
    COORDINATE = "coordinate"


@dataclass(frozen=True)
class VectorUtility:
    kind: VectorUtilityKind = VectorUtilityKind.SUM
    index: int = 0

    @classmethod
    def total(cls) -> "VectorUtility":
        return cls(VectorUtilityKind.SUM)

    @classmethod
    def coordinate(cls, index: int) -> "VectorUtility":
        return cls(VectorUtilityKind.COORDINATE, index=index)

    @property
    def name(self) -> str:
        if self.kind is VectorUtilityKind.COORDINATE:
            return f"x{self.index}"
        return self.kind.value

    def utility(self, candidate: Vector) -> float:
        if self.kind is VectorUtilityKind.SUM:
            return math.fsum(candidate)
        if self.kind is VectorUtilityKind.COORDINATE:
            return float(candidate[self.index])
        raise ValueError(f"Unsupported vector utility kind: {self.kind!r}")


class VectorGeneratorKind(str, Enum):
    UNIFORM = "uniform"
    CONSTANT = "constant"


@dataclass(frozen=True)
class VectorGenerator:
    kind: VectorGeneratorKind = VectorGeneratorKind.UNIFORM
    size: int = DEFAULT_SIZE
    value: float = 0.0

    @classmethod
    def uniform(cls, size: int = DEFAULT_SIZE) -> "VectorGenerator":
        return cls(VectorGeneratorKind.UNIFORM, size=size)

    @classmethod
    def constant(cls, value: float, size: int = DEFAULT_SIZE) -> "VectorGenerator":
        return cls(VectorGeneratorKind.CONSTANT, size=size, value=value)

    @property
    def name(self) -> str:
        return self.kind.value

    def generate(self, rng: DeterministicRNG) -> Vector:
        if self.size < 1:
            raise GenerationExhausted(f"cannot generate a vector of size {self.size}")
        if self.kind is VectorGeneratorKind.UNIFORM:
            return [rng.uniform(LOWER, UPPER) for _ in range(self.size)]
        if self.kind is VectorGeneratorKind.CONSTANT:
            if not LOWER <= self.value <= UPPER:
                raise GenerationExhausted(f"constant {self.value} outside [{LOWER}, {UPPER}]")
            return [float(self.value)] * self.size
        raise ValueError(f"Unsupported vector generator kind: {self.kind!r}")


class VectorModifierKind(str, Enum):
    PERTURB = "perturb"
    RESAMPLE = "resample"


@dataclass(frozen=True)
class VectorChange:
    index: int
    old: float
    new: float


@dataclass(frozen=True)
class VectorModifier(Modifier[Vector, VectorChange]):
    """Changes one randomly chosen coordinate in place.

    ``PERTURB`` moves it by ``±step`` clipped to the unit interval and is
    inapplicable when clipping leaves it unchanged. ``RESAMPLE`` draws a
    fresh uniform value.
    """

    kind: VectorModifierKind = VectorModifierKind.PERTURB
    step: float = 0.1

    @classmethod
    def perturb(cls, step: float = 0.1) -> "VectorModifier":
        return cls(VectorModifierKind.PERTURB, step=step)

    @classmethod
    def resample(cls) -> "VectorModifier":
        return cls(VectorModifierKind.RESAMPLE)

    @property
    def name(self) -> str:
        return self.kind.value

    def modify(self, candidate: Vector, rng: DeterministicRNG) -> Tuple[Vector, VectorChange]:
        if not candidate:
            raise InapplicableModification("cannot modify an empty vector")
        index = rng.randrange(len(candidate))
        old = candidate[index]
        if self.kind is VectorModifierKind.PERTURB:
            direction = rng.choice((-1.0, 1.0))
            new = clamp(old + direction * self.step, LOWER, UPPER)
        elif self.kind is VectorModifierKind.RESAMPLE:
            new = rng.uniform(LOWER, UPPER)
        else:
            raise ValueError(f"Unsupported vector modifier kind: {self.kind!r}")
        if new == old:
            raise InapplicableModification(f"coordinate {index} unchanged at {old}")
        candidate[index] = new
        return candidate, VectorChange(index=index, old=old, new=new)

    def revert(self, change: VectorChange, candidate: Vector) -> Vector:
        candidate[change.index] = change.old
        return candidate

    def reapply(self, change: VectorChange, candidate: Vector) -> Vector:
        candidate[change.index] = change.new
        return candidate


__all__ = [
    "DEFAULT_SIZE",
    "Vector",
    "VectorChange",
    "VectorGenerator",
    "VectorGeneratorKind",
    "VectorModifier",
    "VectorModifierKind",
    "VectorUtility",
    "VectorUtilityKind",
    "clamp",
]
