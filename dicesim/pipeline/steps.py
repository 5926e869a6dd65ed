"""
Transform steps for the simulator.

Each step is a pydantic model tagged by its ``type``. Post-roll steps
rewrite a single aggregate after the dice are rolled; combat steps trade
symbols of the acting side against the opponent's aggregate. Numeric
settings that make no sense are corrected with a warning, never rejected.
"""

import uuid
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from dicesim.core.constants import HOLLOW_SYMBOLS, CombatRole, Symbol
from dicesim.core.error_handling import ensure_non_negative_int, ensure_optional_cap
from dicesim.dice.aggregate import Aggregate

# Compound costs and sources hold at most this many parts.
MAX_PARTS = 2


def _new_step_id() -> str:
    return uuid.uuid4().hex[:8]


def _parse_symbol_map(value: Any) -> Any:
    if isinstance(value, dict):
        return {Symbol.parse(key): amount for key, amount in value.items()}
    return value


def _clamp_symbol_map(values: dict[Symbol, int], param_name: str, step_id: str) -> dict[Symbol, int]:
    return {
        symbol: ensure_non_negative_int(
            amount, f"{param_name}[{symbol.field}]", 0, {"step": step_id}
        )
        for symbol, amount in values.items()
    }


class SymbolCost(BaseModel):
    """A part of a compound source or cost: a symbol and its units per group."""

    symbol: Symbol = Field(description="The symbol consumed")
    units: int = Field(default=1, description="Units consumed per group, at least 1")

    @field_validator("symbol", mode="before")
    @classmethod
    def _parse_symbol(cls, value: Any) -> Symbol:
        return Symbol.parse(value)

    def model_post_init(self, _: Any) -> None:
        self.units = max(1, int(self.units))


class Ratio(BaseModel):
    """Conversion ratio: x source symbols become y target symbols."""

    x: int = Field(default=1, description="Source symbols per group, at least 1")
    y: int = Field(default=1, description="Target symbols per group, at least 0")

    def model_post_init(self, _: Any) -> None:
        self.x = max(1, int(self.x))
        self.y = max(0, int(self.y))


class PipelineStep(BaseModel):
    """
    Base class for every transform step.

    Subclasses override ``apply_post`` (after the roll) and/or
    ``apply_combat`` (once both sides have rolled).
    """

    id: str = Field(default_factory=_new_step_id, description="Stable step identifier")
    enabled: bool = Field(default=True, description="Disabled steps are skipped")

    @property
    def has_post(self) -> bool:
        return type(self).apply_post is not PipelineStep.apply_post

    @property
    def has_combat(self) -> bool:
        return type(self).apply_combat is not PipelineStep.apply_combat

    def apply_post(self, agg: Aggregate) -> None:
        """Rewrites an aggregate in place after the roll."""

    def apply_combat(self, self_agg: Aggregate, opp_agg: Aggregate, role: CombatRole) -> None:
        """Adjusts both sides of a combat in place."""


class ElitePromotion(PipelineStep):
    """Promotes hollow symbols to their filled counterparts."""

    type: Literal["ElitePromotion"] = "ElitePromotion"

    symbols: list[Symbol] = Field(
        default_factory=lambda: list(HOLLOW_SYMBOLS),
        description="The hollow symbols to promote",
    )
    max: Optional[int] = Field(
        default=None,
        description="Shared budget across all promoted symbols, None for unlimited",
    )

    @field_validator("symbols", mode="before")
    @classmethod
    def _parse_symbols(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [Symbol.parse(v) for v in value]
        return value

    def model_post_init(self, _: Any) -> None:
        self.max = ensure_optional_cap(self.max, "ElitePromotion max", {"step": self.id})

    def apply_post(self, agg: Aggregate) -> None:
        remaining = self.max
        # Fixed order: hollow hits, then blocks, then specials.
        for hollow in HOLLOW_SYMBOLS:
            if hollow not in self.symbols:
                continue
            available = agg.get(hollow)
            take = available if remaining is None else min(available, remaining)
            if take <= 0:
                continue
            agg.set(hollow, available - take)
            agg.set(hollow.filled, agg.get(hollow.filled) + take)
            if remaining is not None:
                remaining -= take
                if remaining <= 0:
                    break


class AddSymbols(PipelineStep):
    """Adds fixed amounts of symbols to every roll."""

    type: Literal["AddSymbols"] = "AddSymbols"

    delta: dict[Symbol, int] = Field(
        default_factory=dict,
        description="Symbols to add, by symbol",
    )

    @field_validator("delta", mode="before")
    @classmethod
    def _parse_delta(cls, value: Any) -> Any:
        return _parse_symbol_map(value)

    def model_post_init(self, _: Any) -> None:
        self.delta = _clamp_symbol_map(self.delta, "AddSymbols delta", self.id)

    def apply_post(self, agg: Aggregate) -> None:
        for symbol, amount in self.delta.items():
            if amount:
                agg.set(symbol, agg.get(symbol) + amount)


class SwitchSymbols(PipelineStep):
    """
    Converts groups of source symbols into target symbols.

    With a single source, each group costs ``ratio.x`` of it. With a compound
    source, each group costs ``units * ratio.x`` of every part, and the number
    of groups is limited by the scarcest part. Every group yields
    ``ratio.y`` of the target.
    """

    type: Literal["SwitchSymbols"] = "SwitchSymbols"

    from_symbol: Optional[Symbol] = Field(default=None, description="Single source symbol")
    from_parts: Optional[list[SymbolCost]] = Field(
        default=None,
        description="Compound source of up to two parts, overrides from_symbol",
    )
    to_symbol: Symbol = Field(default=Symbol.SPECIAL, description="The symbol produced")
    ratio: Ratio = Field(default_factory=Ratio, description="Source to target ratio")
    max: Optional[int] = Field(default=None, description="Group cap, None for unlimited")

    @field_validator("from_symbol", "to_symbol", mode="before")
    @classmethod
    def _parse_symbol(cls, value: Any) -> Any:
        if value is None:
            return None
        return Symbol.parse(value)

    def model_post_init(self, _: Any) -> None:
        if self.from_parts is not None:
            self.from_parts = self.from_parts[:MAX_PARTS] or None
        self.max = ensure_optional_cap(self.max, "SwitchSymbols max", {"step": self.id})

    def _cap(self, groups: int) -> int:
        if self.max is not None:
            groups = min(groups, self.max)
        return max(0, groups)

    def apply_post(self, agg: Aggregate) -> None:
        x, y = self.ratio.x, self.ratio.y
        if self.from_parts:
            groups = self._cap(
                min(agg.get(p.symbol) // (p.units * x) for p in self.from_parts)
            )
            if groups <= 0:
                return
            for part in self.from_parts:
                agg.set(part.symbol, agg.get(part.symbol) - groups * part.units * x)
        elif self.from_symbol is not None:
            groups = self._cap(agg.get(self.from_symbol) // x)
            if groups <= 0:
                return
            agg.set(self.from_symbol, agg.get(self.from_symbol) - groups * x)
        else:
            return
        agg.set(self.to_symbol, agg.get(self.to_symbol) + groups * y)


class CombatSwitch(PipelineStep):
    """
    Spends symbols during combat to gain symbols or strip them from the
    opponent.
    """

    type: Literal["CombatSwitch"] = "CombatSwitch"

    cost_symbol: Symbol = Field(default=Symbol.SPECIAL, description="Symbol paid per activation")
    cost_count: int = Field(default=1, description="Units of each cost part per activation")
    cost_parts: Optional[list[SymbolCost]] = Field(
        default=None,
        description="Compound cost of up to two parts, overrides cost_symbol",
    )
    self_delta: dict[Symbol, int] = Field(
        default_factory=dict, description="Symbols gained per activation"
    )
    opp_delta: dict[Symbol, int] = Field(
        default_factory=dict, description="Opponent symbols removed per activation"
    )
    max: Optional[int] = Field(default=None, description="Activation cap, None for unlimited")

    @field_validator("cost_symbol", mode="before")
    @classmethod
    def _parse_symbol(cls, value: Any) -> Symbol:
        return Symbol.parse(value)

    @field_validator("self_delta", "opp_delta", mode="before")
    @classmethod
    def _parse_deltas(cls, value: Any) -> Any:
        return _parse_symbol_map(value)

    def model_post_init(self, _: Any) -> None:
        self.cost_count = max(1, int(self.cost_count))
        if self.cost_parts is not None:
            self.cost_parts = self.cost_parts[:MAX_PARTS] or None
        self.self_delta = _clamp_symbol_map(self.self_delta, "CombatSwitch selfDelta", self.id)
        self.opp_delta = _clamp_symbol_map(self.opp_delta, "CombatSwitch oppDelta", self.id)
        self.max = ensure_optional_cap(self.max, "CombatSwitch max", {"step": self.id})

    def activation_costs(self) -> list[SymbolCost]:
        """Returns what a single activation costs, part by part."""
        parts = self.cost_parts or [SymbolCost(symbol=self.cost_symbol)]
        return [
            SymbolCost(symbol=part.symbol, units=part.units * self.cost_count)
            for part in parts
        ]

    def apply_combat(self, self_agg: Aggregate, opp_agg: Aggregate, role: CombatRole) -> None:
        costs = self.activation_costs()
        activations = min(self_agg.get(c.symbol) // c.units for c in costs)
        if self.max is not None:
            activations = min(activations, self.max)
        if activations <= 0:
            return
        for cost in costs:
            self_agg.set(cost.symbol, self_agg.get(cost.symbol) - activations * cost.units)
        for symbol, amount in self.self_delta.items():
            if amount:
                self_agg.set(symbol, self_agg.get(symbol) + amount * activations)
        for symbol, amount in self.opp_delta.items():
            if amount:
                opp_agg.set(symbol, opp_agg.get(symbol) - amount * activations)


Step = Annotated[
    Union[ElitePromotion, AddSymbols, SwitchSymbols, CombatSwitch],
    Field(discriminator="type"),
]
