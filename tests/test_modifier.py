from __future__ import annotations

import copy

import pytest

from utility_lab.capabilities import ModifierSequence, RoundRobinSelection, replay, rollback
from utility_lab.capabilities.selection import selection_frequencies
from utility_lab.domains import number, vector
from utility_lab.errors import InapplicableModification, UndoTokenError
from utility_lab.rng import DeterministicRNG


def test_vector_undo_redo_round_trip(perturb):
    rng = DeterministicRNG(17)
    generator = vector.VectorGenerator.uniform()
    checked = 0
    for _ in range(200):
        candidate = generator.generate(rng)
        original = list(candidate)
        try:
            modified, token = perturb.apply(candidate, rng)
        except InapplicableModification:
            assert candidate == original
            continue
        after_apply = list(modified)
        assert after_apply != original

        restored = perturb.undo(token, modified)
        assert restored == original

        replayed = perturb.redo(token, restored)
        assert replayed == after_apply
        checked += 1
    assert checked > 150


def test_perturb_is_inapplicable_when_clip_changes_nothing():
    modifier = vector.VectorModifier.perturb(0.1)
    rng = DeterministicRNG(0)
    inapplicable = 0
    for _ in range(50):
        candidate = [1.0] * 5
        try:
            modified, _ = modifier.apply(candidate, rng)
        except InapplicableModification:
            assert candidate == [1.0] * 5
            inapplicable += 1
            continue
        assert sum(1 for value in modified if value == pytest.approx(0.9)) == 1
    assert inapplicable > 0

    with pytest.raises(InapplicableModification):
        modifier.apply([], rng)


def test_number_modifiers_respect_bounds():
    inc = number.NumberModifier(number.NumberModifierKind.INC)
    dec = number.NumberModifier(number.NumberModifierKind.DEC)
    rng = DeterministicRNG(0)
    with pytest.raises(InapplicableModification):
        inc.apply(number.MAX_VALUE, rng)
    with pytest.raises(InapplicableModification):
        dec.apply(number.MIN_VALUE, rng)

    value, token = inc.apply(41, rng)
    assert value == 42
    assert inc.undo(token, value) == 41
    assert inc.redo(token, 41) == 42


def test_token_is_consumed_by_undo_and_rearmed_by_redo(perturb):
    rng = DeterministicRNG(8)
    candidate = [0.5] * 5
    candidate, token = perturb.apply(candidate, rng)
    assert token.armed

    candidate = perturb.undo(token, candidate)
    assert token.consumed
    with pytest.raises(UndoTokenError):
        perturb.undo(token, candidate)

    candidate = perturb.redo(token, candidate)
    candidate = perturb.redo(token, candidate)
    assert token.armed
    assert perturb.undo(token, candidate) == [0.5] * 5


def test_foreign_token_is_rejected():
    rng = DeterministicRNG(1)
    first = vector.VectorModifier.perturb()
    second = vector.VectorModifier.perturb()
    candidate, token = first.apply([0.5] * 5, rng)
    with pytest.raises(UndoTokenError):
        second.undo(token, candidate)


def test_sequence_routes_undo_to_chosen_element(number_modifiers):
    rng = DeterministicRNG(21)
    seen = set()
    for _ in range(50):
        value, token = number_modifiers.apply(100, rng)
        seen.add(token.change.index)
        expected = 101 if token.change.index == 0 else 99
        assert value == expected
        assert number_modifiers.undo(token, value) == 100
        assert number_modifiers.redo(token, 100) == expected
    assert seen == {0, 1}


def test_nested_modifier_sequences_round_trip():
    nested = ModifierSequence(
        (
            ModifierSequence((vector.VectorModifier.perturb(), vector.VectorModifier.resample())),
            vector.VectorModifier.resample(),
        )
    )
    rng = DeterministicRNG(4)
    candidate = [0.5] * 5
    for _ in range(30):
        before = list(candidate)
        try:
            candidate, token = nested.apply(candidate, rng)
        except InapplicableModification:
            assert candidate == before
            continue
        after = list(candidate)
        candidate = nested.undo(token, candidate)
        assert candidate == before
        candidate = nested.redo(token, candidate)
        assert candidate == after


def test_replay_and_rollback_token_chain(number_modifiers):
    rng = DeterministicRNG(6)
    value = 50
    tokens = []
    for _ in range(10):
        value, token = number_modifiers.apply(value, rng)
        tokens.append(token)
    final = value

    assert rollback(number_modifiers, tokens, value) == 50
    assert replay(number_modifiers, tokens, 50) == final


def test_empty_sequence_is_inapplicable():
    with pytest.raises(InapplicableModification):
        ModifierSequence(()).apply([0.5], DeterministicRNG(0))


def test_round_robin_modifier_sequence_is_deterministic():
    modifiers = ModifierSequence(
        (
            number.NumberModifier(number.NumberModifierKind.INC),
            number.NumberModifier(number.NumberModifierKind.DEC),
        ),
        selection=RoundRobinSelection(),
    )
    rng = DeterministicRNG(0)
    value = 10
    history = []
    for _ in range(4):
        value, _ = modifiers.apply(value, rng)
        history.append(value)
    assert history == [11, 10, 11, 10]


def test_same_seed_reproduces_modification_sequence(perturb):
    def run(seed: int):
        rng = DeterministicRNG(seed)
        candidate = vector.VectorGenerator.uniform().generate(rng)
        states = []
        for _ in range(40):
            try:
                candidate, _ = perturb.apply(candidate, rng)
            except InapplicableModification:
                pass
            states.append(copy.copy(candidate))
        return states

    assert run(31) == run(31)


def test_uniform_modifier_sequence_is_fair():
    modifiers = ModifierSequence(
        (
            number.NumberModifier(number.NumberModifierKind.INC),
            number.NumberModifier(number.NumberModifierKind.DEC),
            number.NumberModifier(number.NumberModifierKind.INC),
        )
    )
    rng = DeterministicRNG(404)
    picks = []
    for _ in range(30000):
        value, token = modifiers.apply(128, rng)
        picks.append(token.change.index)
        modifiers.undo(token, value)
    for frequency in selection_frequencies(picks, 3):
        assert frequency == pytest.approx(1 / 3, abs=0.02)
