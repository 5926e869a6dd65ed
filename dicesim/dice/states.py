"""
State effects that cancel a single die after rerolls.

Disarmed removes the die with the most filled hits, Vulnerable the one with
the most filled blocks. Hollow symbols play no part in the choice but are
removed along with the rest of the canceled die.
"""

from collections.abc import Sequence
from typing import Literal, Optional

from pydantic import BaseModel, Field

from dicesim.core.constants import Symbol
from dicesim.dice.aggregate import Aggregate, DieRoll


class CancellationCriterion(BaseModel):
    """One key of the die ranking."""

    symbol: Symbol = Field(description="The symbol compared between dice")
    direction: Literal["max", "min"] = Field(
        default="max", description="Whether more or fewer is preferred"
    )


class CancellationPolicy(BaseModel):
    """How a state effect picks the die it cancels."""

    required_symbol: Optional[Symbol] = Field(
        default=None, description="Symbol a die must show to be a candidate"
    )
    required_min: int = Field(default=1, description="Minimum count of the required symbol")
    criteria: list[CancellationCriterion] = Field(
        default_factory=list, description="Ranking keys, first difference decides"
    )


DISARMED_POLICY = CancellationPolicy(
    required_symbol=Symbol.HIT,
    criteria=[
        CancellationCriterion(symbol=Symbol.HIT),
        CancellationCriterion(symbol=Symbol.SPECIAL),
    ],
)

VULNERABLE_POLICY = CancellationPolicy(
    required_symbol=Symbol.BLOCK,
    criteria=[
        CancellationCriterion(symbol=Symbol.BLOCK),
        CancellationCriterion(symbol=Symbol.SPECIAL),
    ],
)


def _is_better(candidate: DieRoll, current: DieRoll, policy: CancellationPolicy) -> bool:
    for criterion in policy.criteria:
        a = candidate.symbols.get(criterion.symbol)
        b = current.symbols.get(criterion.symbol)
        if a == b:
            continue
        if criterion.direction == "max":
            return a > b
        return a < b
    return False


def select_die_to_cancel(dice: Sequence[DieRoll], policy: CancellationPolicy) -> int:
    """
    Picks the die a policy cancels.

    Args:
        dice (Sequence[DieRoll]): The rolled dice.
        policy (CancellationPolicy): The selection policy.

    Returns:
        int: Index of the chosen die, or -1 when no die qualifies. Full ties
            go to the first die.

    """
    best = -1
    for idx, die in enumerate(dice):
        if policy.required_symbol is not None:
            if die.symbols.get(policy.required_symbol) < policy.required_min:
                continue
        if best == -1 or _is_better(die, dice[best], policy):
            best = idx
    return best


def cancel_die(dice: list[DieRoll], aggregate: Aggregate, policy: CancellationPolicy) -> Optional[int]:
    """
    Cancels the die chosen by a policy, in place.

    The die's whole contribution is subtracted from the aggregate (never
    below zero) and the die is left showing nothing.

    Returns:
        Optional[int]: The index of the canceled die, or None.

    """
    idx = select_die_to_cancel(dice, policy)
    if idx == -1:
        return None
    die = dice[idx]
    aggregate.subtract(die.symbols)
    # Face aggregates are shared with the face table, so replace rather than zero.
    die.symbols = Aggregate()
    return idx


def apply_disarmed(dice: list[DieRoll], aggregate: Aggregate) -> Optional[int]:
    """Cancels the die with the most filled hits."""
    return cancel_die(dice, aggregate, DISARMED_POLICY)


def apply_vulnerable(dice: list[DieRoll], aggregate: Aggregate) -> Optional[int]:
    """Cancels the die with the most filled blocks."""
    return cancel_die(dice, aggregate, VULNERABLE_POLICY)
