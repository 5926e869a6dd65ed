"""
Pipeline module for the simulator.

A pipeline is an ordered list of transform steps. Steps run in order and
each one sees the aggregate left by the previous one.
"""

from pydantic import BaseModel, Field

from dicesim.core.constants import CombatRole
from dicesim.dice.aggregate import Aggregate
from dicesim.pipeline.steps import PipelineStep, Step


class Pipeline(BaseModel):
    """Ordered list of transform steps."""

    steps: list[Step] = Field(default_factory=list, description="The steps, in execution order")

    def __len__(self) -> int:
        return len(self.steps)

    def enabled_steps(self) -> list[PipelineStep]:
        return [step for step in self.steps if step.enabled]

    def get_step(self, step_id: str) -> PipelineStep | None:
        """Returns the step with the given id, if any."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def apply_post(self, agg: Aggregate) -> None:
        """
        Runs every enabled post-roll hook on an aggregate, in place.

        Args:
            agg (Aggregate): The rolled aggregate.

        """
        for step in self.steps:
            if step.enabled:
                step.apply_post(agg)

    def transform(self, pre: Aggregate) -> Aggregate:
        """Returns the post-roll result for an aggregate, leaving it untouched."""
        out = pre.copy()
        self.apply_post(out)
        return out

    def apply_combat(self, self_agg: Aggregate, opp_agg: Aggregate, role: CombatRole) -> None:
        """
        Runs every enabled combat hook, then clamps both aggregates.

        Args:
            self_agg (Aggregate): The acting side.
            opp_agg (Aggregate): The opponent.
            role (CombatRole): The role of the acting side.

        """
        for step in self.steps:
            if step.enabled:
                step.apply_combat(self_agg, opp_agg, role)
        self_agg.clamp()
        opp_agg.clamp()
