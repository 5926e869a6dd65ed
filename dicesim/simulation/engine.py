"""
Monte Carlo aggregator for the simulator.

Runs a request many times and reduces the outcomes to normalized
distributions, expectations and standard deviations.
"""

import math
from typing import Optional

from dicesim.combat.resolver import CombatResolver, SideRoller
from dicesim.core.constants import AGGREGATE_FIELDS, CombatOutcome
from dicesim.core.logging import log_debug
from dicesim.core.rng import RNG, rng_from_seed
from dicesim.dice.reroll import RerollStats
from dicesim.simulation.distribution import (
    inc,
    inc_joint,
    normalize_distribution,
    normalize_joint,
)
from dicesim.simulation.models import (
    AnalysisRequest,
    AnalysisResults,
    CombatExpectations,
    CombatRequest,
    CombatResults,
    SymbolDeviations,
    SymbolExpectations,
)

# Joint histograms: (name, x field, y field), all computed per roll.
_JOINTS: tuple[tuple[str, str, str], ...] = (
    ("joint_hits_specials_filled", "hits", "specials"),
    ("joint_blocks_specials_filled", "blocks", "specials"),
    ("joint_hits_specials_hollow", "hollow_hits", "hollow_specials"),
    ("joint_blocks_specials_hollow", "hollow_blocks", "hollow_specials"),
    ("joint_hits_specials_total", "total_hits", "total_specials"),
    ("joint_blocks_specials_total", "total_blocks", "total_specials"),
)

_TOTALS: tuple[str, ...] = ("total_hits", "total_blocks", "total_specials")

_DEVIATIONS: tuple[str, ...] = ("hits", "blocks", "specials")


def _resolve_rng(rng: Optional[RNG], seed: Optional[int]) -> RNG:
    if rng is not None:
        return rng
    return rng_from_seed(seed)


def _std(total: float, total_sq: float, n: int) -> float:
    mean = total / n
    return math.sqrt(max(0.0, total_sq / n - mean * mean))


def run_analysis(request: AnalysisRequest, rng: Optional[RNG] = None) -> AnalysisResults:
    """
    Runs a single-pool analysis.

    Every trial rolls the pool, applies rerolls and state effects, then the
    pipeline's post-roll steps, and records the result.

    Args:
        request (AnalysisRequest): What to simulate.
        rng (Optional[RNG]): The random source. Defaults to one seeded from
            ``request.seed``, or to ambient randomness without a seed.

    Returns:
        AnalysisResults: The normalized results.

    """
    rng = _resolve_rng(rng, request.seed)
    n = request.simulation_count
    roller = SideRoller(request.as_side(), request.faces)
    log_debug(
        "Running analysis",
        {"pool": request.pool, "simulation_count": n, "seed": request.seed},
    )

    histograms: dict[str, dict[int, float]] = {
        name: {} for name in AGGREGATE_FIELDS + _TOTALS
    }
    joints: dict[str, dict[int, dict[int, float]]] = {name: {} for name, _, _ in _JOINTS}
    sums = dict.fromkeys(AGGREGATE_FIELDS, 0)
    sums_sq = dict.fromkeys(_DEVIATIONS, 0)
    reroll_stats = RerollStats()

    for _ in range(n):
        agg, stats = roller.roll(rng)
        reroll_stats.add(stats)

        values = agg.to_dict()
        values["total_hits"] = agg.total_hits
        values["total_blocks"] = agg.total_blocks
        values["total_specials"] = agg.total_specials

        for name, histogram in histograms.items():
            inc(histogram, values[name])
        for name, x_field, y_field in _JOINTS:
            inc_joint(joints[name], values[x_field], values[y_field])
        for name in AGGREGATE_FIELDS:
            sums[name] += values[name]
        for name in _DEVIATIONS:
            sums_sq[name] += values[name] * values[name]

    results = AnalysisResults(
        expected=SymbolExpectations(**{name: sums[name] / n for name in AGGREGATE_FIELDS}),
        std=SymbolDeviations(
            **{name: _std(sums[name], sums_sq[name], n) for name in _DEVIATIONS}
        ),
        reroll_stats=reroll_stats,
        simulation_count=n,
        **{name: normalize_distribution(h, n) for name, h in histograms.items()},
        **{name: normalize_joint(j, n) for name, j in joints.items()},
    )
    log_debug(
        "Analysis complete",
        {"hits": round(results.expected.hits, 3), "blocks": round(results.expected.blocks, 3)},
    )
    return results


def run_combat(request: CombatRequest, rng: Optional[RNG] = None) -> CombatResults:
    """
    Runs a combat simulation between two pools.

    Args:
        request (CombatRequest): What to simulate.
        rng (Optional[RNG]): The random source. Defaults to one seeded from
            ``request.seed``, or to ambient randomness without a seed.

    Returns:
        CombatResults: The normalized results.

    """
    rng = _resolve_rng(rng, request.seed)
    n = request.simulation_count
    resolver = CombatResolver(request.attacker, request.defender, request.faces)
    log_debug(
        "Running combat",
        {
            "attacker": request.attacker.pool,
            "defender": request.defender.pool,
            "simulation_count": n,
            "seed": request.seed,
        },
    )

    wounds_attacker: dict[int, float] = {}
    wounds_defender: dict[int, float] = {}
    attacker_specials: dict[int, float] = {}
    defender_specials: dict[int, float] = {}
    sums = dict.fromkeys(CombatExpectations.model_fields, 0)
    outcomes = dict.fromkeys(CombatOutcome, 0)
    attacker_stats = RerollStats()
    defender_stats = RerollStats()

    for _ in range(n):
        result = resolver.resolve(rng)
        attacker, defender = result.attacker, result.defender

        inc(wounds_attacker, result.wounds_attacker)
        inc(wounds_defender, result.wounds_defender)
        inc(attacker_specials, attacker.specials)
        inc(defender_specials, defender.specials)
        outcomes[result.outcome] += 1

        sums["attacker_hits"] += attacker.hits
        sums["attacker_blocks"] += attacker.blocks
        sums["attacker_specials"] += attacker.specials
        sums["defender_hits"] += defender.hits
        sums["defender_blocks"] += defender.blocks
        sums["defender_specials"] += defender.specials
        sums["wounds_attacker"] += result.wounds_attacker
        sums["wounds_defender"] += result.wounds_defender

        if result.attacker_stats is not None:
            attacker_stats.add(result.attacker_stats)
        if result.defender_stats is not None:
            defender_stats.add(result.defender_stats)

    results = CombatResults(
        wounds_attacker=normalize_distribution(wounds_attacker, n),
        wounds_defender=normalize_distribution(wounds_defender, n),
        attacker_specials=normalize_distribution(attacker_specials, n),
        defender_specials=normalize_distribution(defender_specials, n),
        expected=CombatExpectations(**{name: total / n for name, total in sums.items()}),
        attacker_win_rate=outcomes[CombatOutcome.WIN] / n * 100,
        attacker_tie_rate=outcomes[CombatOutcome.TIE] / n * 100,
        attacker_loss_rate=outcomes[CombatOutcome.LOSS] / n * 100,
        attacker_reroll_stats=attacker_stats,
        defender_reroll_stats=defender_stats,
        simulation_count=n,
    )
    log_debug(
        "Combat complete",
        {"win_rate": round(results.attacker_win_rate, 2)},
    )
    return results
