from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from utility_lab.capabilities import ModifierSequence, ScaledUtility, UtilitySequence
from utility_lab.domains import number, vector
from utility_lab.rng import DeterministicRNG


@pytest.fixture()
def rng() -> DeterministicRNG:
    return DeterministicRNG(1234)


@pytest.fixture()
def vector_utility() -> UtilitySequence:
    return UtilitySequence((ScaledUtility(vector.VectorUtility.total(), weight=1.0, name="sum"),))


@pytest.fixture()
def vector_generator() -> vector.VectorGenerator:
    return vector.VectorGenerator.uniform()


@pytest.fixture()
def perturb() -> vector.VectorModifier:
    return vector.VectorModifier.perturb(0.1)


@pytest.fixture()
def number_modifiers() -> ModifierSequence:
    return ModifierSequence(
        (
            number.NumberModifier(number.NumberModifierKind.INC),
            number.NumberModifier(number.NumberModifierKind.DEC),
        )
    )
