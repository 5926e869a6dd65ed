"""
Request and result models for the Monte Carlo aggregator.

Requests round-trip through plain data so they can be handed to a worker
process: the face table travels as its symbol tokens and pipelines in their
saved form.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dicesim.combat.resolver import CombatSide
from dicesim.core.constants import DEFAULT_SIMULATION_COUNT
from dicesim.core.error_handling import ensure_int_in_range
from dicesim.dice.faces import FaceTable
from dicesim.dice.reroll import RepeatDiceConfig, RepeatRollConfig, RerollStats
from dicesim.dice.roll import FixedDie, normalize_pool
from dicesim.pipeline.pipeline import Pipeline
from dicesim.pipeline.serialization import PipelineSerializer, coerce_pipeline
from dicesim.simulation.distribution import Distribution, JointDistribution


def _coerce_face_table(value: Any) -> Any:
    if isinstance(value, dict):
        # Tables sent to workers may be reduced, so no color is required.
        return FaceTable.from_dict(value, required_colors=())
    return value


def _clamp_simulation_count(value: int) -> int:
    return ensure_int_in_range(value, "simulation_count", 1, default=DEFAULT_SIMULATION_COUNT)


def now_timestamp() -> str:
    return datetime.now().isoformat(timespec="seconds")


class AnalysisRequest(BaseModel):
    """A single-pool analysis."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    pool: dict[str, int] = Field(default_factory=dict, description="Die counts by color")
    faces: FaceTable = Field(description="The face table")
    simulation_count: int = Field(
        default=DEFAULT_SIMULATION_COUNT, description="Number of trials, at least 1"
    )
    pipeline: Pipeline = Field(default_factory=Pipeline, description="Post-roll transforms")
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
    seed: Optional[int] = Field(default=None, description="Seed for reproducible runs")

    @field_validator("pool", mode="before")
    @classmethod
    def _normalize_pool(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return normalize_pool(value)
        return value

    @field_validator("faces", mode="before")
    @classmethod
    def _load_faces(cls, value: Any) -> Any:
        return _coerce_face_table(value)

    @field_validator("pipeline", mode="before")
    @classmethod
    def _load_pipeline(cls, value: Any) -> Any:
        return coerce_pipeline(value)

    def model_post_init(self, _: Any) -> None:
        self.simulation_count = _clamp_simulation_count(self.simulation_count)

    def as_side(self) -> CombatSide:
        """Returns the request as a single side, for the shared roll path."""
        return CombatSide(
            pool=self.pool,
            pipeline=self.pipeline,
            repeat_roll=self.repeat_roll,
            repeat_dice=self.repeat_dice,
            fixed_dice=self.fixed_dice,
            disarmed=self.disarmed,
            vulnerable=self.vulnerable,
        )

    def to_payload(self) -> dict[str, Any]:
        """Dumps the request to plain data."""
        data = self.model_dump(mode="json", exclude={"faces", "pipeline"})
        data["faces"] = self.faces.to_dict()
        data["pipeline"] = PipelineSerializer.serialize(self.pipeline)
        return data


class CombatRequest(BaseModel):
    """A combat between an attacking and a defending pool."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    attacker: CombatSide = Field(description="The attacking side")
    defender: CombatSide = Field(description="The defending side")
    faces: FaceTable = Field(description="The face table")
    simulation_count: int = Field(
        default=DEFAULT_SIMULATION_COUNT, description="Number of trials, at least 1"
    )
    seed: Optional[int] = Field(default=None, description="Seed for reproducible runs")

    @field_validator("faces", mode="before")
    @classmethod
    def _load_faces(cls, value: Any) -> Any:
        return _coerce_face_table(value)

    def model_post_init(self, _: Any) -> None:
        self.simulation_count = _clamp_simulation_count(self.simulation_count)

    def to_payload(self) -> dict[str, Any]:
        """Dumps the request to plain data."""
        return {
            "attacker": self.attacker.to_payload(),
            "defender": self.defender.to_payload(),
            "faces": self.faces.to_dict(),
            "simulation_count": self.simulation_count,
            "seed": self.seed,
        }


class SymbolExpectations(BaseModel):
    """Mean count of every symbol per roll."""

    hits: float = 0.0
    blocks: float = 0.0
    specials: float = 0.0
    hollow_hits: float = 0.0
    hollow_blocks: float = 0.0
    hollow_specials: float = 0.0


class SymbolDeviations(BaseModel):
    """Standard deviation of the filled symbols per roll."""

    hits: float = 0.0
    blocks: float = 0.0
    specials: float = 0.0


class AnalysisResults(BaseModel):
    """Normalized outcome of a single-pool analysis. Distributions are in percent."""

    hits: Distribution = Field(default_factory=dict)
    blocks: Distribution = Field(default_factory=dict)
    specials: Distribution = Field(default_factory=dict)
    hollow_hits: Distribution = Field(default_factory=dict)
    hollow_blocks: Distribution = Field(default_factory=dict)
    hollow_specials: Distribution = Field(default_factory=dict)
    total_hits: Distribution = Field(default_factory=dict)
    total_blocks: Distribution = Field(default_factory=dict)
    total_specials: Distribution = Field(default_factory=dict)

    joint_hits_specials_filled: JointDistribution = Field(default_factory=dict)
    joint_blocks_specials_filled: JointDistribution = Field(default_factory=dict)
    joint_hits_specials_hollow: JointDistribution = Field(default_factory=dict)
    joint_blocks_specials_hollow: JointDistribution = Field(default_factory=dict)
    joint_hits_specials_total: JointDistribution = Field(default_factory=dict)
    joint_blocks_specials_total: JointDistribution = Field(default_factory=dict)

    expected: SymbolExpectations = Field(default_factory=SymbolExpectations)
    std: SymbolDeviations = Field(default_factory=SymbolDeviations)
    reroll_stats: RerollStats = Field(
        default_factory=RerollStats, description="Reroll counters summed over the run"
    )
    simulation_count: int = Field(default=0, description="Number of trials")
    timestamp: str = Field(default_factory=now_timestamp, description="When the run finished")


class CombatExpectations(BaseModel):
    """Mean values per combat round."""

    attacker_hits: float = 0.0
    attacker_blocks: float = 0.0
    attacker_specials: float = 0.0
    defender_hits: float = 0.0
    defender_blocks: float = 0.0
    defender_specials: float = 0.0
    wounds_attacker: float = 0.0
    wounds_defender: float = 0.0


class CombatResults(BaseModel):
    """Normalized outcome of a combat run. Distributions and rates are in percent."""

    wounds_attacker: Distribution = Field(
        default_factory=dict, description="Wounds dealt by the attacker"
    )
    wounds_defender: Distribution = Field(
        default_factory=dict, description="Wounds dealt by the defender"
    )
    attacker_specials: Distribution = Field(default_factory=dict)
    defender_specials: Distribution = Field(default_factory=dict)
    expected: CombatExpectations = Field(default_factory=CombatExpectations)
    attacker_win_rate: float = 0.0
    attacker_tie_rate: float = 0.0
    attacker_loss_rate: float = 0.0
    attacker_reroll_stats: RerollStats = Field(default_factory=RerollStats)
    defender_reroll_stats: RerollStats = Field(default_factory=RerollStats)
    simulation_count: int = Field(default=0, description="Number of trials")
    timestamp: str = Field(default_factory=now_timestamp, description="When the run finished")
