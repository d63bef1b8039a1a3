from __future__ import annotations

import copy
from pathlib import Path

import pytest

from utility_lab.capabilities import (
    FunctionGenerator,
    FunctionUtility,
    GeneratorSequence,
    ModifierSequence,
    RoundRobinSelection,
    replay,
)
from utility_lab.domains import number, vector
from utility_lab.engine import (
    AnnealingAcceptance,
    GreedyAcceptance,
    RunParameters,
    SensitivityRecorder,
    blind_search,
    local_search,
    optimize,
    resolve_acceptance,
)
from utility_lab.errors import GenerationExhausted, InapplicableModification, RunFailed, UtilityContractError
from utility_lab.logging_utils import RunLogger
from utility_lab.rng import DeterministicRNG


def _ab_sequence(selection=None) -> GeneratorSequence:
    elements = (
        FunctionGenerator(lambda rng: "A", name="A"),
        FunctionGenerator(lambda rng: "B", name="B"),
    )
    if selection is None:
        return GeneratorSequence(elements)
    return GeneratorSequence(elements, selection=selection)


AB_UTILITY = FunctionUtility(lambda candidate: {"A": 1.0, "B": 2.0}[candidate])


def test_vector_scenario_blind_then_local(vector_utility, vector_generator, perturb):
    rng = DeterministicRNG(2718)
    blind = blind_search(vector_utility, vector_generator, rng, 100)
    assert blind.produced == 100
    assert blind.attempts == 100
    assert blind.score == pytest.approx(sum(blind.candidate))

    seed_score = blind.score
    local = local_search(vector_utility, perturb, list(blind.candidate), rng, 1000)
    assert local.seed_score == pytest.approx(seed_score)
    assert local.score >= seed_score
    assert local.iterations == 1000
    assert all(later >= earlier for earlier, later in zip(local.trace, local.trace[1:]))
    assert local.trace[0] == pytest.approx(seed_score)
    assert local.trace[-1] == pytest.approx(local.score)
    assert local.score == pytest.approx(vector_utility.utility(local.candidate))


def test_generator_sequence_scenario_returns_higher_utility_candidate():
    result = blind_search(AB_UTILITY, _ab_sequence(RoundRobinSelection()), DeterministicRNG(0), 2)
    assert result.candidate == "B"
    assert result.score == 2.0
    assert result.index == 1

    uniform = blind_search(AB_UTILITY, _ab_sequence(), DeterministicRNG(0), 64)
    assert uniform.candidate == "B"


def test_blind_search_ties_keep_first_seen():
    generator = FunctionGenerator(lambda rng: [rng.random()])
    rng = DeterministicRNG(9)
    expected_first = generator.generate(DeterministicRNG(9))
    result = blind_search(FunctionUtility(lambda c: 0.0), generator, rng, 10)
    assert result.index == 0
    assert result.candidate == expected_first


def test_blind_search_retries_exhausted_attempts():
    def flaky(rng: DeterministicRNG):
        if rng.random() < 0.5:
            raise GenerationExhausted("unsatisfiable draw")
        return [rng.random()]

    result = blind_search(FunctionUtility(lambda c: c[0]), FunctionGenerator(flaky), DeterministicRNG(4), 40)
    assert result.attempts == 40
    assert result.produced + result.exhausted == 40
    assert result.exhausted > 0
    assert result.produced > 0


def test_blind_search_fails_when_nothing_is_produced():
    def never(rng):
        raise GenerationExhausted("empty domain")

    with pytest.raises(RunFailed) as exc:
        blind_search(FunctionUtility(lambda c: 0.0), FunctionGenerator(never), DeterministicRNG(0), 7)
    assert exc.value.attempts == 7


def test_parallel_scoring_matches_sequential(vector_utility, vector_generator):
    sequential = blind_search(vector_utility, vector_generator, DeterministicRNG(55), 90)
    parallel = blind_search(vector_utility, vector_generator, DeterministicRNG(55), 90, workers=4)
    assert parallel.candidate == sequential.candidate
    assert parallel.index == sequential.index
    assert parallel.score == sequential.score


def test_local_search_stops_on_patience(vector_utility):
    class Stuck:
        def apply(self, candidate, rng):
            raise InapplicableModification("frozen")

    result = local_search(vector_utility, Stuck(), [0.2] * 5, DeterministicRNG(0), 100, patience=5)
    assert result.stop_reason == "patience"
    assert result.iterations == 5
    assert result.inapplicable == 5
    assert result.trace == [pytest.approx(1.0)]
    assert result.candidate == [0.2] * 5


def test_greedy_rejection_undoes_modification():
    class Downhill:
        def apply(self, candidate, rng):
            index = 0
            old = candidate[index]
            candidate[index] = old - 0.1
            return candidate, (index, old)

        def undo(self, token, candidate):
            index, old = token
            candidate[index] = old
            return candidate

    result = local_search(
        FunctionUtility(lambda c: sum(c)), Downhill(), [0.5, 0.5], DeterministicRNG(0), 10
    )
    assert result.candidate == [0.5, 0.5]
    assert result.accepted_steps == 0
    assert result.trace == [pytest.approx(1.0)]


def test_annealing_keeps_best_snapshot_and_replays(vector_utility):
    modifier = ModifierSequence((vector.VectorModifier.perturb(0.1), vector.VectorModifier.resample()))
    seed = [0.5] * 5
    policy = AnnealingAcceptance(temperature=0.5, cooling=0.99)
    result = local_search(
        vector_utility, modifier, list(seed), DeterministicRNG(77), 300, acceptance=policy
    )
    assert result.best_score >= result.seed_score
    assert result.best_score >= result.score
    assert vector_utility.utility(result.best) == pytest.approx(result.best_score)
    assert result.best is not result.candidate

    replayed = replay(modifier, result.accepted, list(seed))
    assert replayed == result.candidate


def test_optimize_is_deterministic(vector_utility, vector_generator, perturb):
    params = RunParameters(generations=30, iterations=200, restarts=2)

    def run():
        result = optimize(vector_utility, vector_generator, perturb, 42, params)
        return result.candidate, result.score, [lineage.local.trace for lineage in result.lineages]

    assert run() == run()


def test_optimize_reduces_lineages_to_best(vector_utility, vector_generator, perturb):
    params = RunParameters(generations=10, iterations=50, restarts=3)
    result = optimize(vector_utility, vector_generator, perturb, DeterministicRNG(5), params)
    assert len(result.lineages) == 3
    assert len({lineage.seed for lineage in result.lineages}) == 3
    assert result.score == max(lineage.score for lineage in result.lineages)
    assert result.lineages[result.best_lineage].score == result.score
    for lineage in result.lineages:
        assert lineage.local.seed_score == pytest.approx(lineage.blind.score)
        assert lineage.blind.score == pytest.approx(sum(lineage.blind.candidate))


def test_optimize_without_modifier_runs_blind_generation_only(vector_utility, vector_generator):
    result = optimize(vector_utility, vector_generator, None, 3, RunParameters(generations=20))
    assert result.lineages[0].local is None
    assert result.candidate == result.lineages[0].blind.candidate
    assert result.summary()["lineages"][0]["stop_reason"] == "skipped"


def test_optimize_fails_only_when_every_lineage_fails(vector_utility):
    def never(rng):
        raise GenerationExhausted("no candidates")

    params = RunParameters(generations=3, iterations=10, restarts=2)
    with pytest.raises(RunFailed) as exc:
        optimize(vector_utility, FunctionGenerator(never), None, 0, params)
    assert exc.value.attempts == 6


def test_utility_contract_violation_is_fatal(vector_generator, perturb):
    broken = FunctionUtility(lambda c: float("inf"))
    with pytest.raises(UtilityContractError):
        optimize(broken, vector_generator, perturb, 0, RunParameters(generations=5, iterations=5))


def test_optimize_records_sensitivities(vector_utility, vector_generator, perturb):
    recorder = SensitivityRecorder(vector_utility)
    result = optimize(
        vector_utility,
        vector_generator,
        perturb,
        8,
        RunParameters(generations=12, iterations=40),
        recorder=recorder,
    )
    lineage = result.lineages[0]
    assert len(recorder) == lineage.blind.produced + lineage.local.accepted_steps
    sources = {record.source for record in recorder.records}
    assert "blind" in sources


def test_reporter_writes_level_lines(tmp_path: Path, vector_utility, vector_generator, perturb):
    logfile = tmp_path / "logs" / "run.log"
    with RunLogger(console=None, level="INFO", logfile=logfile) as reporter:
        optimize(
            vector_utility,
            vector_generator,
            perturb,
            1,
            RunParameters(generations=5, iterations=10),
            reporter=reporter,
        )
    text = logfile.read_text(encoding="utf-8")
    assert "[BLIND  ]" in text
    assert "[LOCAL  ]" in text
    assert "[RESULT ]" in text


def test_acceptance_policies():
    rng = DeterministicRNG(0)
    greedy = GreedyAcceptance()
    assert greedy.accept(1.0, 1.0, 0, rng)
    assert not greedy.accept(1.0, 0.9, 0, rng)

    annealing = AnnealingAcceptance(temperature=1.0, cooling=0.5)
    assert annealing.temperature_at(2) == pytest.approx(0.25)
    assert annealing.accept(1.0, 2.0, 0, rng)
    accepted = sum(annealing.accept(1.0, 0.0, 0, rng) for _ in range(5000))
    assert accepted / 5000 == pytest.approx(0.3679, abs=0.03)

    assert resolve_acceptance("greedy").name == "greedy"
    assert resolve_acceptance("simulated-annealing", temperature=2.0).temperature == 2.0
    with pytest.raises(ValueError):
        resolve_acceptance("random-walk")
    with pytest.raises(ValueError):
        AnnealingAcceptance(temperature=0.0)


def test_run_parameters_validation():
    with pytest.raises(ValueError):
        RunParameters(generations=0)
    with pytest.raises(ValueError):
        RunParameters(restarts=0)
    with pytest.raises(ValueError):
        RunParameters(patience=0)
    assert copy.copy(RunParameters()).acceptance == "greedy"


def test_round_robin_sequence_restarts_each_run_and_lineage():
    selection = RoundRobinSelection()
    generator = GeneratorSequence(
        (
            FunctionGenerator(lambda rng: "A", name="A"),
            FunctionGenerator(lambda rng: "B", name="B"),
            FunctionGenerator(lambda rng: "C", name="C"),
        ),
        selection=selection,
    )
    utility = FunctionUtility(lambda candidate: {"A": 1.0, "B": 2.0, "C": 0.0}[candidate])
    params = RunParameters(generations=1, iterations=0, restarts=3)

    first = optimize(utility, generator, None, 7, params)
    second = optimize(utility, generator, None, 7, params)
    assert first.candidate == second.candidate == "A"
    assert [lineage.blind.candidate for lineage in first.lineages] == ["A", "A", "A"]


def test_nested_round_robin_modifiers_are_rewound_per_lineage():
    inner = ModifierSequence(
        (
            number.NumberModifier(number.NumberModifierKind.INC),
            number.NumberModifier(number.NumberModifierKind.DEC),
        ),
        selection=RoundRobinSelection(),
    )
    modifier = ModifierSequence((inner,), selection=RoundRobinSelection())
    generator = number.NumberGenerator.fixed(41)
    utility = FunctionUtility(lambda candidate: float(candidate))
    params = RunParameters(generations=1, iterations=1, restarts=2)

    result = optimize(utility, generator, modifier, 0, params)
    # Every lineage starts with INC, so each one climbs from 41 to 42.
    assert [lineage.score for lineage in result.lineages] == [42.0, 42.0]
