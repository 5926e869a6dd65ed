"""
Combat resolver for the simulator.

Rolls both sides of an exchange, lets their pipelines act on each other and
counts the wounds each side inflicts.
"""

import random
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from dicesim.core.constants import CombatOutcome, CombatRole
from dicesim.core.rng import RNG
from dicesim.dice.aggregate import Aggregate
from dicesim.dice.faces import FaceTable
from dicesim.dice.reroll import RepeatDiceConfig, RepeatRollConfig, RerollSelector, RerollStats
from dicesim.dice.roll import FixedDie, normalize_pool
from dicesim.dice.states import apply_disarmed, apply_vulnerable
from dicesim.pipeline.pipeline import Pipeline
from dicesim.pipeline.serialization import PipelineSerializer, coerce_pipeline


class CombatSide(BaseModel):
    """Everything that shapes the roll of one side."""

    pool: dict[str, int] = Field(default_factory=dict, description="Die counts by color")
    pipeline: Pipeline = Field(default_factory=Pipeline, description="Transforms for this side")
    repeat_roll: Optional[RepeatRollConfig] = Field(
        default=None, description="Full reroll configuration"
    )
    repeat_dice: Optional[RepeatDiceConfig] = Field(
        default=None, description="Selective reroll configuration"
    )
    fixed_dice: list[FixedDie] = Field(
        default_factory=list, description="Dice showing a chosen face"
    )
    disarmed: bool = Field(default=False, description="Cancel the best hit die")
    vulnerable: bool = Field(default=False, description="Cancel the best block die")

    @field_validator("pool", mode="before")
    @classmethod
    def _normalize_pool(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return normalize_pool(value)
        return value

    @field_validator("pipeline", mode="before")
    @classmethod
    def _load_pipeline(cls, value: Any) -> Any:
        return coerce_pipeline(value)

    def to_payload(self) -> dict[str, Any]:
        """Dumps the side to plain data, with the pipeline in its saved form."""
        data = self.model_dump(mode="json", exclude={"pipeline"})
        data["pipeline"] = PipelineSerializer.serialize(self.pipeline)
        return data

    @property
    def needs_detail(self) -> bool:
        """Whether rolls must keep the per-die breakdown."""
        return bool(
            (self.repeat_dice and self.repeat_dice.enabled) or self.disarmed or self.vulnerable
        )


class SideRoller:
    """Rolls a side repeatedly, with its reroll setup computed once."""

    def __init__(self, side: CombatSide, faces: FaceTable) -> None:
        self.side = side
        self.selector = RerollSelector(
            side.pool,
            faces,
            repeat_roll=side.repeat_roll,
            repeat_dice=side.repeat_dice,
            fixed_dice=side.fixed_dice,
        )
        self._states = side.disarmed or side.vulnerable

    def roll_pre(self, rng: RNG = random.random) -> tuple[Aggregate, RerollStats]:
        """Rolls with rerolls and state effects, before any transform."""
        outcome = self.selector.roll(rng, force_detailed=self._states)
        if outcome.dice is not None:
            if self.side.disarmed:
                apply_disarmed(outcome.dice, outcome.aggregate)
            if self.side.vulnerable:
                apply_vulnerable(outcome.dice, outcome.aggregate)
        return outcome.aggregate, outcome.stats

    def roll(self, rng: RNG = random.random) -> tuple[Aggregate, RerollStats]:
        """Rolls and applies the side's post-roll transforms."""
        agg, stats = self.roll_pre(rng)
        self.side.pipeline.apply_post(agg)
        return agg, stats


@dataclass(slots=True)
class RoundResult:
    """A resolved exchange."""

    attacker: Aggregate
    defender: Aggregate
    wounds_attacker: int
    wounds_defender: int
    outcome: CombatOutcome
    attacker_stats: Optional[RerollStats] = None
    defender_stats: Optional[RerollStats] = None


def compute_wounds(attacker: Aggregate, defender: Aggregate) -> tuple[int, int]:
    """Returns (wounds dealt by the attacker, wounds dealt by the defender)."""
    return (
        max(0, attacker.hits - defender.blocks),
        max(0, defender.hits - attacker.blocks),
    )


def outcome_for(wounds_attacker: int, wounds_defender: int) -> CombatOutcome:
    if wounds_attacker > wounds_defender:
        return CombatOutcome.WIN
    elif wounds_attacker == wounds_defender:
        return CombatOutcome.TIE
    return CombatOutcome.LOSS


def resolve_aggregates(
    attacker: Aggregate,
    defender: Aggregate,
    attacker_pipeline: Pipeline,
    defender_pipeline: Pipeline,
) -> RoundResult:
    """
    Resolves an exchange from two transformed rolls.

    The defender's combat steps act first, so the attacker's see the
    defender's adjusted roll. Both aggregates are modified in place.

    Args:
        attacker (Aggregate): The attacker's roll, after post-roll steps.
        defender (Aggregate): The defender's roll, after post-roll steps.
        attacker_pipeline (Pipeline): The attacker's pipeline.
        defender_pipeline (Pipeline): The defender's pipeline.

    Returns:
        RoundResult: Final aggregates, wounds and outcome.

    """
    defender_pipeline.apply_combat(defender, attacker, CombatRole.DEFENDER)
    attacker_pipeline.apply_combat(attacker, defender, CombatRole.ATTACKER)
    wounds_attacker, wounds_defender = compute_wounds(attacker, defender)
    return RoundResult(
        attacker=attacker,
        defender=defender,
        wounds_attacker=wounds_attacker,
        wounds_defender=wounds_defender,
        outcome=outcome_for(wounds_attacker, wounds_defender),
    )


class CombatResolver:
    """Resolves repeated exchanges between two fixed sides."""

    def __init__(self, attacker: CombatSide, defender: CombatSide, faces: FaceTable) -> None:
        self.attacker = SideRoller(attacker, faces)
        self.defender = SideRoller(defender, faces)

    def resolve(self, rng: RNG = random.random) -> RoundResult:
        attacker_agg, attacker_stats = self.attacker.roll(rng)
        defender_agg, defender_stats = self.defender.roll(rng)
        result = resolve_aggregates(
            attacker_agg,
            defender_agg,
            self.attacker.side.pipeline,
            self.defender.side.pipeline,
        )
        result.attacker_stats = attacker_stats
        result.defender_stats = defender_stats
        return result


def resolve_round(
    attacker: CombatSide,
    defender: CombatSide,
    faces: FaceTable,
    rng: RNG = random.random,
) -> RoundResult:
    """
    Resolves a single exchange between two sides.

    Args:
        attacker (CombatSide): The attacking side.
        defender (CombatSide): The defending side.
        faces (FaceTable): The face table.
        rng (RNG): The random source. The attacker rolls first.

    Returns:
        RoundResult: Final aggregates, wounds and outcome.

    """
    return CombatResolver(attacker, defender, faces).resolve(rng)
