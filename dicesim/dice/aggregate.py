"""
Aggregate module for the simulator.

Defines the six-field symbol count vector produced by a roll and the per-die
record kept when individual dice matter (selective rerolls, state effects).
Both live on the hot path of the Monte Carlo loop, so they are slotted
dataclasses rather than validated models.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from dicesim.core.constants import AGGREGATE_FIELDS, Symbol


@dataclass(slots=True)
class Aggregate:
    """Symbol counts summed across the dice of a roll."""

    hits: int = 0
    blocks: int = 0
    specials: int = 0
    hollow_hits: int = 0
    hollow_blocks: int = 0
    hollow_specials: int = 0

    @classmethod
    def from_symbols(cls, symbols: Iterable[Symbol]) -> Aggregate:
        """
        Counts the occurrences of each symbol in a face.

        Args:
            symbols (Iterable[Symbol]): The symbols printed on a face.

        Returns:
            Aggregate: The face contribution.

        """
        out = cls()
        for symbol in symbols:
            name = symbol.field
            setattr(out, name, getattr(out, name) + 1)
        return out

    @property
    def total_hits(self) -> int:
        return self.hits + self.hollow_hits

    @property
    def total_blocks(self) -> int:
        return self.blocks + self.hollow_blocks

    @property
    def total_specials(self) -> int:
        return self.specials + self.hollow_specials

    def get(self, symbol: Symbol) -> int:
        """Returns the count for a symbol."""
        return getattr(self, symbol.field)

    def set(self, symbol: Symbol, value: int) -> None:
        """Sets the count for a symbol, clamped at zero."""
        setattr(self, symbol.field, max(0, int(value)))

    def copy(self) -> Aggregate:
        return Aggregate(
            self.hits,
            self.blocks,
            self.specials,
            self.hollow_hits,
            self.hollow_blocks,
            self.hollow_specials,
        )

    def add(self, other: Aggregate) -> None:
        """Adds another aggregate into this one, in place."""
        self.hits += other.hits
        self.blocks += other.blocks
        self.specials += other.specials
        self.hollow_hits += other.hollow_hits
        self.hollow_blocks += other.hollow_blocks
        self.hollow_specials += other.hollow_specials

    def subtract(self, other: Aggregate) -> None:
        """Subtracts another aggregate from this one in place, never below zero."""
        self.hits = max(0, self.hits - other.hits)
        self.blocks = max(0, self.blocks - other.blocks)
        self.specials = max(0, self.specials - other.specials)
        self.hollow_hits = max(0, self.hollow_hits - other.hollow_hits)
        self.hollow_blocks = max(0, self.hollow_blocks - other.hollow_blocks)
        self.hollow_specials = max(0, self.hollow_specials - other.hollow_specials)

    def clamp(self) -> None:
        """Forces every field to a non-negative integer."""
        for name in AGGREGATE_FIELDS:
            setattr(self, name, max(0, int(getattr(self, name))))

    def is_blank(self) -> bool:
        return not any(getattr(self, name) for name in AGGREGATE_FIELDS)

    def to_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in AGGREGATE_FIELDS}


def sum_aggregates(aggregates: Iterable[Aggregate]) -> Aggregate:
    """Sums a sequence of aggregates into a fresh one."""
    out = Aggregate()
    for agg in aggregates:
        out.add(agg)
    return out


@dataclass(slots=True)
class DieRoll:
    """A single die of a roll: its color, the face it shows and what it counts."""

    color: str
    face_index: int
    symbols: Aggregate = field(default_factory=Aggregate)
    fixed: bool = False


@dataclass(slots=True)
class RollResult:
    """A roll with its per-die breakdown."""

    dice: list[DieRoll]
    aggregate: Aggregate
