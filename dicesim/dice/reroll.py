"""
Reroll selector for the simulator.

A simulated attempt is an initial roll, optionally followed by one full
reroll when a condition on the result holds, and then by a selective reroll
of the dice that fell furthest below their color's expectation.
"""

import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from dicesim.core.constants import (
    MAX_DICE_TO_REROLL,
    MIN_DICE_TO_REROLL,
    PriorityMode,
    RerollConditionType,
    Symbol,
)
from dicesim.core.error_handling import ensure_int_in_range, ensure_non_negative_int
from dicesim.core.rng import RNG
from dicesim.dice.aggregate import Aggregate, DieRoll, sum_aggregates
from dicesim.dice.faces import FaceTable, Weights, weighted_value
from dicesim.dice.roll import (
    FixedDie,
    Pool,
    draw_face_index,
    normalize_pool,
    roll_pool_detailed_with_fixed,
    roll_pool_with_fixed,
)


class RerollCondition(BaseModel):
    """The condition that triggers a full reroll."""

    type: RerollConditionType = Field(
        default=RerollConditionType.BELOW_EXPECTED,
        description="How the roll is compared",
    )
    symbol: Symbol = Field(
        default=Symbol.HIT,
        description="The aggregate field the condition looks at",
    )
    threshold: int = Field(
        default=0,
        description="Minimum count required by MIN_SYMBOL",
    )

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> RerollConditionType:
        return RerollConditionType.parse(value)

    @field_validator("symbol", mode="before")
    @classmethod
    def _parse_symbol(cls, value: Any) -> Symbol:
        return Symbol.parse(value)

    def model_post_init(self, _: Any) -> None:
        self.threshold = ensure_non_negative_int(
            self.threshold, "reroll threshold", 0, {"condition": str(self.type)}
        )


class RepeatRollConfig(BaseModel):
    """Full reroll configuration: reroll the whole pool once."""

    enabled: bool = Field(default=False, description="Whether full rerolls are allowed")
    condition: RerollCondition = Field(
        default_factory=RerollCondition,
        description="When the pool is rerolled",
    )


class RepeatDiceConfig(BaseModel):
    """Selective reroll configuration: reroll the worst dice."""

    enabled: bool = Field(default=False, description="Whether selective rerolls are allowed")
    max_dice_to_reroll: int = Field(
        default=2,
        description="Upper bound on rerolled dice, clamped into 1-10",
    )
    priority_mode: PriorityMode = Field(
        default=PriorityMode.HITS,
        description="Which symbol the reroll tries to improve",
    )
    count_hollow_as_filled: bool = Field(
        default=False,
        description="Whether hollow symbols count toward the priority symbol",
    )

    @field_validator("priority_mode", mode="before")
    @classmethod
    def _parse_priority_mode(cls, value: Any) -> PriorityMode:
        return PriorityMode.parse(value)

    def model_post_init(self, _: Any) -> None:
        self.max_dice_to_reroll = ensure_int_in_range(
            self.max_dice_to_reroll,
            "max_dice_to_reroll",
            MIN_DICE_TO_REROLL,
            MAX_DICE_TO_REROLL,
        )


class RerollStats(BaseModel):
    """Reroll counters, for one attempt or summed over a run."""

    full_rerolls_occurred: int = Field(default=0, description="Full rerolls performed")
    dice_rerolled_count: int = Field(default=0, description="Individual dice rerolled")
    total_rolls: int = Field(default=0, description="Attempts made")

    def add(self, other: "RerollStats") -> None:
        self.full_rerolls_occurred += other.full_rerolls_occurred
        self.dice_rerolled_count += other.dice_rerolled_count
        self.total_rolls += other.total_rolls


@dataclass(slots=True)
class RollOutcome:
    """The final state of an attempt after rerolls. Dice are None unless tracked."""

    aggregate: Aggregate
    stats: RerollStats
    dice: Optional[list[DieRoll]] = None


class DieAssessment(BaseModel):
    """How a die compares to its color's expectation."""

    index: int = Field(description="Position of the die in the roll")
    color: str = Field(description="The die color")
    face_index: int = Field(description="The face shown")
    current: float = Field(description="Weighted count of the priority symbol on the face")
    expected: float = Field(description="Expected weighted count for the die color")
    score: float = Field(description="Weighted value minus the color expectation")
    priority: Optional[int] = Field(
        default=None,
        description="1-based reroll rank, or None if the die is kept",
    )


class FullRerollAnalysis(BaseModel):
    """How a whole roll compares to the pool expectation for a condition."""

    condition: RerollCondition = Field(description="The condition checked")
    actual: int = Field(description="Count of the condition symbol in the roll")
    expected: float = Field(description="Expected count of the symbol for the pool")
    should_reroll: bool = Field(description="Whether the condition calls for a full reroll")

    @property
    def producible(self) -> bool:
        """Whether any die of the pool can show the symbol at all."""
        return self.expected > 0

    @property
    def difference(self) -> float:
        return self.actual - self.expected


def compute_pool_expected_value(pool: Pool, faces: FaceTable, symbol: Symbol) -> float:
    """
    Computes the expected count of a symbol for a whole pool.

    Args:
        pool (Pool): Die counts by color.
        faces (FaceTable): The face table.
        symbol (Symbol): The symbol to count.

    Returns:
        float: Sum over colors of the average count per face times the count.

    """
    total = 0.0
    for color, count in normalize_pool(pool).items():
        total += faces.expected_per_die(color, symbol) * count
    return total


def should_reroll_aggregate(
    agg: Aggregate,
    condition: RerollCondition,
    pool: Pool,
    faces: FaceTable,
    pool_expected: Optional[float] = None,
) -> bool:
    """
    Checks whether a roll satisfies the full reroll condition.

    Args:
        agg (Aggregate): The roll to check.
        condition (RerollCondition): The condition.
        pool (Pool): The pool that was rolled.
        faces (FaceTable): The face table.
        pool_expected (Optional[float]): Precomputed pool expectation.

    Returns:
        bool: True if the pool should be rerolled.

    """
    actual = agg.get(condition.symbol)
    if condition.type == RerollConditionType.BELOW_EXPECTED:
        if pool_expected is None:
            pool_expected = compute_pool_expected_value(pool, faces, condition.symbol)
        return actual < pool_expected
    elif condition.type == RerollConditionType.MIN_SYMBOL:
        return actual < condition.threshold
    elif condition.type == RerollConditionType.NO_SYMBOL:
        return actual == 0
    return False


def analyze_full_reroll(
    agg: Aggregate,
    condition: RerollCondition,
    pool: Pool,
    faces: FaceTable,
) -> FullRerollAnalysis:
    """
    Compares a roll to the pool expectation and decides on a full reroll.

    Args:
        agg (Aggregate): The roll to check.
        condition (RerollCondition): The condition.
        pool (Pool): The pool that was rolled.
        faces (FaceTable): The face table.

    Returns:
        FullRerollAnalysis: Actual and expected counts with the decision.

    """
    expected = compute_pool_expected_value(pool, faces, condition.symbol)
    return FullRerollAnalysis(
        condition=condition,
        actual=agg.get(condition.symbol),
        expected=expected,
        should_reroll=should_reroll_aggregate(agg, condition, pool, faces, expected),
    )


def weights_for_priority_mode(
    mode: PriorityMode, count_hollow_as_filled: bool
) -> dict[Symbol, float]:
    """Returns unit weight on the priority symbol, and on its hollow form if asked."""
    target = mode.symbol
    weights = {symbol: 0.0 for symbol in Symbol}
    weights[target] = 1.0
    if count_hollow_as_filled:
        weights[target.hollow] = 1.0
    return weights


def compute_color_expected_values(faces: FaceTable, weights: Weights) -> dict[str, float]:
    """Returns the expected weighted value of a single die, per color."""
    return {color: faces.expected_weighted(color, weights) for color in faces.colors}


def score_die(die: DieRoll, weights: Weights, color_expectations: dict[str, float]) -> float:
    """Scores a die: negative when it underperformed its color."""
    return weighted_value(die.symbols, weights) - color_expectations.get(die.color, 0.0)


def select_dice_to_reroll(
    dice: Sequence[DieRoll],
    max_rerolls: int,
    weights: Weights,
    color_expectations: dict[str, float],
) -> list[int]:
    """
    Picks the worst underperforming dice.

    Dice at or above their expectation are never picked, and neither are
    dice whose color cannot produce the priority symbol or whose face was
    fixed. Ties keep roll order.

    Args:
        dice (Sequence[DieRoll]): The rolled dice.
        max_rerolls (int): How many dice may be picked at most.
        weights (Weights): Symbol weights.
        color_expectations (dict[str, float]): Expected weighted value per color.

    Returns:
        list[int]: Indices of the dice to reroll, worst first.

    """
    scored = []
    for idx, die in enumerate(dice):
        if die.fixed or color_expectations.get(die.color, 0.0) <= 0:
            continue
        score = score_die(die, weights, color_expectations)
        if score < 0:
            scored.append((score, idx))
    # sort() is stable, so equal scores keep index order.
    scored.sort(key=lambda item: item[0])
    return [idx for _, idx in scored[: max(0, max_rerolls)]]


class RerollSelector:
    """
    Rolls a pool and applies the configured rerolls.

    Everything that depends only on the pool and the configuration is
    computed once, at construction, so a Monte Carlo run pays for it once.
    """

    def __init__(
        self,
        pool: Pool,
        faces: FaceTable,
        repeat_roll: Optional[RepeatRollConfig] = None,
        repeat_dice: Optional[RepeatDiceConfig] = None,
        fixed_dice: Sequence[FixedDie] = (),
    ) -> None:
        self.pool = normalize_pool(pool)
        self.faces = faces
        self.fixed_dice = list(fixed_dice)
        self.repeat_roll = repeat_roll if repeat_roll and repeat_roll.enabled else None
        self.repeat_dice = repeat_dice if repeat_dice and repeat_dice.enabled else None

        self.pool_expected: Optional[float] = None
        if self.repeat_roll:
            self.pool_expected = compute_pool_expected_value(
                self.pool, faces, self.repeat_roll.condition.symbol
            )

        if self.repeat_dice:
            self.weights = weights_for_priority_mode(
                self.repeat_dice.priority_mode,
                self.repeat_dice.count_hollow_as_filled,
            )
        else:
            self.weights = weights_for_priority_mode(PriorityMode.HITS, False)
        self.color_expectations = compute_color_expected_values(faces, self.weights)

    def _should_reroll(self, agg: Aggregate) -> bool:
        if self.repeat_roll is None:
            return False
        return should_reroll_aggregate(
            agg, self.repeat_roll.condition, self.pool, self.faces, self.pool_expected
        )

    def roll(self, rng: RNG = random.random, force_detailed: bool = False) -> RollOutcome:
        """
        Performs one attempt: initial roll, full reroll, selective reroll.

        Args:
            rng (RNG): The random source.
            force_detailed (bool): Keep the per-die breakdown even when no
                selective reroll needs it.

        Returns:
            RollOutcome: The final roll with its reroll counters.

        """
        stats = RerollStats(total_rolls=1)

        if not (force_detailed or self.repeat_dice):
            agg = roll_pool_with_fixed(self.pool, self.fixed_dice, self.faces, rng)
            if self._should_reroll(agg):
                agg = roll_pool_with_fixed(self.pool, self.fixed_dice, self.faces, rng)
                stats.full_rerolls_occurred = 1
            return RollOutcome(aggregate=agg, stats=stats)

        result = roll_pool_detailed_with_fixed(self.pool, self.fixed_dice, self.faces, rng)
        if self._should_reroll(result.aggregate):
            result = roll_pool_detailed_with_fixed(self.pool, self.fixed_dice, self.faces, rng)
            stats.full_rerolls_occurred = 1

        dice = result.dice
        agg = result.aggregate
        if self.repeat_dice:
            to_reroll = select_dice_to_reroll(
                dice,
                self.repeat_dice.max_dice_to_reroll,
                self.weights,
                self.color_expectations,
            )
            for idx in to_reroll:
                die = dice[idx]
                color_faces = self.faces.faces_for(die.color)
                if not color_faces:
                    continue
                face_index = draw_face_index(rng)
                dice[idx] = DieRoll(die.color, face_index, color_faces[face_index])
            stats.dice_rerolled_count = len(to_reroll)
            agg = sum_aggregates(die.symbols for die in dice)

        return RollOutcome(dice=dice, aggregate=agg, stats=stats)

    def assess_dice(self, dice: Sequence[DieRoll]) -> list[DieAssessment]:
        """
        Scores every die of a roll and ranks the ones a selective reroll
        would pick.

        Args:
            dice (Sequence[DieRoll]): The rolled dice.

        Returns:
            list[DieAssessment]: One entry per die, in roll order.

        """
        max_rerolls = self.repeat_dice.max_dice_to_reroll if self.repeat_dice else MAX_DICE_TO_REROLL
        picked = select_dice_to_reroll(dice, max_rerolls, self.weights, self.color_expectations)
        ranks = {idx: rank for rank, idx in enumerate(picked, start=1)}
        return [
            DieAssessment(
                index=idx,
                color=die.color,
                face_index=die.face_index,
                current=weighted_value(die.symbols, self.weights),
                expected=self.color_expectations.get(die.color, 0.0),
                score=score_die(die, self.weights, self.color_expectations),
                priority=ranks.get(idx),
            )
            for idx, die in enumerate(dice)
        ]
