"""Byte-valued number domain.

Rewarding primes makes prime numbers more likely, but whether one is reached
depends on the competing pull towards the target value. The balance between
the two is set entirely by the component weights.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from ..capabilities.modifier import Modifier
from ..capabilities.utility import ScaledUtility, UtilitySequence
from ..errors import InapplicableModification
from ..rng import DeterministicRNG

MIN_VALUE = 0
MAX_VALUE = 255


def is_prime(value: int) -> bool:
    if value < 2:
        return False
    divisor = 2
    while divisor * divisor <= value:
        if value % divisor == 0:
            return False
        divisor += 1
    return True


class NumberUtilityKind(str, Enum):
    TARGET = "target"
    PRIME = "prime"


@dataclass(frozen=True)
class NumberUtility:
    """``TARGET`` scores ``|n - value| * penalty``; ``PRIME`` pays ``reward`` for primes."""

    kind: NumberUtilityKind
    value: int = 0
    penalty: float = -1.0
    reward: float = 1.0

    @classmethod
    def target(cls, value: int, penalty: float = -1.0) -> "NumberUtility":
        return cls(NumberUtilityKind.TARGET, value=value, penalty=penalty)

    @classmethod
    def prime(cls, reward: float = 1.0) -> "NumberUtility":
        return cls(NumberUtilityKind.PRIME, reward=reward)

    @property
    def name(self) -> str:
        return self.kind.value

    def utility(self, candidate: int) -> float:
        if self.kind is NumberUtilityKind.TARGET:
            return abs(float(candidate) - float(self.value)) * self.penalty
        if self.kind is NumberUtilityKind.PRIME:
            return self.reward if is_prime(candidate) else 0.0
        raise ValueError(f"Unsupported number utility kind: {self.kind!r}")


class NumberGeneratorKind(str, Enum):
    RANDOM = "random"
    FIXED = "fixed"


@dataclass(frozen=True)
class NumberGenerator:
    kind: NumberGeneratorKind
    value: int = 0

    @classmethod
    def random(cls) -> "NumberGenerator":
        return cls(NumberGeneratorKind.RANDOM)

    @classmethod
    def fixed(cls, value: int) -> "NumberGenerator":
        if not MIN_VALUE <= value <= MAX_VALUE:
            raise ValueError(f"fixed value {value} outside {MIN_VALUE}..{MAX_VALUE}")
        return cls(NumberGeneratorKind.FIXED, value=value)

    @property
    def name(self) -> str:
        return self.kind.value

    def generate(self, rng: DeterministicRNG) -> int:
        if self.kind is NumberGeneratorKind.RANDOM:
            return rng.randint(MIN_VALUE, MAX_VALUE)
        if self.kind is NumberGeneratorKind.FIXED:
            return self.value
        raise ValueError(f"Unsupported number generator kind: {self.kind!r}")


class NumberModifierKind(str, Enum):
    INC = "inc"
    DEC = "dec"


@dataclass(frozen=True)
class NumberChange:
    old: int
    new: int


@dataclass(frozen=True)
class NumberModifier(Modifier[int, NumberChange]):
    """Steps the number by one; stepping past either bound is inapplicable."""

    kind: NumberModifierKind

    @property
    def name(self) -> str:
        return self.kind.value

    def modify(self, candidate: int, rng: DeterministicRNG) -> Tuple[int, NumberChange]:
        if self.kind is NumberModifierKind.INC:
            if candidate >= MAX_VALUE:
                raise InapplicableModification(f"cannot increment {candidate}")
            new = candidate + 1
        elif self.kind is NumberModifierKind.DEC:
            if candidate <= MIN_VALUE:
                raise InapplicableModification(f"cannot decrement {candidate}")
            new = candidate - 1
        else:
            raise ValueError(f"Unsupported number modifier kind: {self.kind!r}")
        return new, NumberChange(old=candidate, new=new)

    def revert(self, change: NumberChange, candidate: int) -> int:
        return change.old

    def reapply(self, change: NumberChange, candidate: int) -> int:
        return change.new


def default_utility(target: int = 42, penalty: float = -1.0, reward: float = 5.0) -> UtilitySequence[int]:
    """Target distance and prime reward as separately weighted components."""

    return UtilitySequence(
        (
            ScaledUtility(NumberUtility.target(target, penalty=1.0), weight=penalty, name="target"),
            ScaledUtility(NumberUtility.prime(reward=1.0), weight=reward, name="prime"),
        )
    )


__all__ = [
    "MAX_VALUE",
    "MIN_VALUE",
    "NumberChange",
    "NumberGenerator",
    "NumberGeneratorKind",
    "NumberModifier",
    "NumberModifierKind",
    "NumberUtility",
    "NumberUtilityKind",
    "default_utility",
    "is_prime",
]
