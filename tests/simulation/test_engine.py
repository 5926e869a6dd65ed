"""
Tests for the Monte Carlo aggregator.
"""

import pytest

from dicesim.combat.resolver import CombatSide
from dicesim.core.constants import PriorityMode
from dicesim.dice.reroll import RepeatDiceConfig
from dicesim.simulation.distribution import distribution_total, joint_total, mean_of
from dicesim.simulation.engine import run_analysis, run_combat
from dicesim.simulation.models import AnalysisRequest, CombatRequest


def analysis(faces, pool, n=2000, seed=1234, **kwargs):
    return run_analysis(
        AnalysisRequest(pool=pool, faces=faces, simulation_count=n, seed=seed, **kwargs)
    )


def test_all_hit_pool_with_fixed_rng(make_uniform_table, zero_rng):
    faces = make_uniform_table(RED=["HIT"])
    request = AnalysisRequest(pool={"RED": 2}, faces=faces, simulation_count=100)
    results = run_analysis(request, zero_rng)
    assert results.expected.hits == 2.0
    assert results.expected.blocks == 0.0
    assert results.hits == {2: 100.0}
    assert results.std.hits == 0.0
    assert results.simulation_count == 100


def test_distributions_sum_to_one_hundred(default_faces):
    results = analysis(default_faces, {"RED": 2, "ORANGE": 1, "GREEN": 1}, n=500)
    for name in (
        "hits",
        "blocks",
        "specials",
        "hollow_hits",
        "hollow_blocks",
        "hollow_specials",
        "total_hits",
        "total_blocks",
        "total_specials",
    ):
        assert distribution_total(getattr(results, name)) == pytest.approx(100.0)
    assert joint_total(results.joint_hits_specials_filled) == pytest.approx(100.0)
    assert joint_total(results.joint_blocks_specials_total) == pytest.approx(100.0)


def test_totals_are_filled_plus_hollow(default_faces):
    results = analysis(default_faces, {"RED": 2, "YELLOW": 2}, n=1000)
    assert mean_of(results.total_hits) == pytest.approx(
        results.expected.hits + results.expected.hollow_hits
    )
    assert mean_of(results.total_specials) == pytest.approx(
        results.expected.specials + results.expected.hollow_specials
    )


def test_expectation_matches_face_table(ramp_table):
    results = analysis(ramp_table, {"RED": 2, "BLUE": 2}, n=20000)
    assert results.expected.hits == pytest.approx(7.0, abs=0.15)
    assert results.expected.blocks == pytest.approx(1.0, abs=0.1)
    assert mean_of(results.hits) == pytest.approx(results.expected.hits)


def test_more_dice_never_lowers_the_mean(ramp_table):
    small = analysis(ramp_table, {"RED": 1}, n=5000)
    large = analysis(ramp_table, {"RED": 3}, n=5000)
    assert large.expected.hits > small.expected.hits


def test_std_of_a_constant_pool_is_zero(make_uniform_table):
    faces = make_uniform_table(BLUE=["BLOCK", "SPECIAL"])
    results = analysis(faces, {"BLUE": 3}, n=200)
    assert results.std.blocks == 0.0
    assert results.std.specials == 0.0
    assert results.expected.blocks == 3.0


def test_selective_reroll_improves_hits(ramp_table):
    baseline = analysis(ramp_table, {"RED": 3}, n=5000)
    rerolled = analysis(
        ramp_table,
        {"RED": 3},
        n=5000,
        repeat_dice=RepeatDiceConfig(enabled=True, max_dice_to_reroll=2),
    )
    assert rerolled.expected.hits > baseline.expected.hits * 1.05
    assert rerolled.reroll_stats.total_rolls == 5000
    assert rerolled.reroll_stats.dice_rerolled_count > 0


def test_state_effects_never_raise_output(ramp_table):
    baseline = analysis(ramp_table, {"RED": 3, "BLUE": 3}, n=3000)
    disarmed = analysis(ramp_table, {"RED": 3, "BLUE": 3}, n=3000, disarmed=True)
    vulnerable = analysis(ramp_table, {"RED": 3, "BLUE": 3}, n=3000, vulnerable=True)
    assert disarmed.expected.hits <= baseline.expected.hits
    assert vulnerable.expected.blocks <= baseline.expected.blocks


def test_same_seed_same_results(default_faces):
    first = analysis(
        default_faces,
        {"RED": 2, "BLUE": 2},
        n=500,
        seed=99,
        repeat_dice=RepeatDiceConfig(enabled=True, priority_mode=PriorityMode.BLOCKS),
    )
    second = analysis(
        default_faces,
        {"RED": 2, "BLUE": 2},
        n=500,
        seed=99,
        repeat_dice=RepeatDiceConfig(enabled=True, priority_mode=PriorityMode.BLOCKS),
    )
    assert first.model_dump(exclude={"timestamp"}) == second.model_dump(exclude={"timestamp"})


def test_simulation_count_is_at_least_one(make_uniform_table):
    request = AnalysisRequest(pool={"RED": 1}, faces=make_uniform_table(RED=["HIT"]), simulation_count=0)
    assert request.simulation_count == 1


def test_combat_all_hits_against_specials(make_uniform_table, zero_rng):
    faces = make_uniform_table(RED=["HIT"], BLUE=["SPECIAL"])
    request = CombatRequest(
        attacker=CombatSide(pool={"RED": 2}),
        defender=CombatSide(pool={"BLUE": 2}),
        faces=faces,
        simulation_count=100,
    )
    results = run_combat(request, zero_rng)
    assert results.wounds_attacker == {2: 100.0}
    assert results.wounds_defender == {0: 100.0}
    assert results.attacker_win_rate == 100.0
    assert results.defender_specials == {2: 100.0}
    assert results.expected.wounds_attacker == 2.0


def test_combat_rates_sum_to_one_hundred(default_faces):
    request = CombatRequest(
        attacker=CombatSide(pool={"RED": 2, "ORANGE": 1}),
        defender=CombatSide(pool={"GREEN": 1, "BLUE": 1}),
        faces=default_faces,
        simulation_count=1000,
        seed=5,
    )
    results = run_combat(request)
    total = results.attacker_win_rate + results.attacker_tie_rate + results.attacker_loss_rate
    assert total == pytest.approx(100.0)
    assert distribution_total(results.wounds_attacker) == pytest.approx(100.0)
    assert results.attacker_reroll_stats.total_rolls == 1000


def test_add_symbols_shifts_the_mean(ramp_table):
    baseline = analysis(ramp_table, {"RED": 2}, n=1000, seed=8)
    shifted = analysis(
        ramp_table,
        {"RED": 2},
        n=1000,
        seed=8,
        pipeline=[{"type": "AddSymbols", "delta": {"hits": 1}}],
    )
    assert shifted.expected.hits == pytest.approx(baseline.expected.hits + 1.0)


def test_switch_symbols_trades_hits_for_specials(ramp_table):
    baseline = analysis(ramp_table, {"RED": 2}, n=1000, seed=8)
    switched = analysis(
        ramp_table,
        {"RED": 2},
        n=1000,
        seed=8,
        pipeline=[
            {"type": "SwitchSymbols", "from": "hits", "to": "specials", "ratio": {"x": 2, "y": 1}}
        ],
    )
    assert baseline.expected.specials == 0.0
    assert switched.expected.hits < baseline.expected.hits
    assert switched.expected.specials > baseline.expected.specials
    # Every special cost two hits.
    assert switched.expected.hits + 2 * switched.expected.specials == pytest.approx(
        baseline.expected.hits
    )


def test_elite_promotion_conserves_totals(default_faces):
    baseline = analysis(default_faces, {"RED": 2, "YELLOW": 2}, n=1000, seed=8)
    promoted = analysis(
        default_faces,
        {"RED": 2, "YELLOW": 2},
        n=1000,
        seed=8,
        pipeline=[{"type": "ElitePromotion"}],
    )
    assert promoted.expected.hollow_hits == 0.0
    assert promoted.total_hits == baseline.total_hits
    assert promoted.total_specials == baseline.total_specials
