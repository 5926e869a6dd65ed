"""
Face table module for the simulator.

Holds the catalog of faces for every die color. Faces are reduced to their
symbol counts once, at load time, so rolling a die is a single lookup.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

from dicesim.core.constants import (
    CANONICAL_COLORS,
    FACES_PER_DIE,
    Symbol,
    is_attack_color,
    normalize_color,
)
from dicesim.core.error_handling import FaceTableError
from dicesim.dice.aggregate import Aggregate

# Weights over the six aggregate fields, keyed by symbol.
Weights = Mapping[Symbol, float]


class DieStats(BaseModel):
    """Summary of how often a die color shows its main symbols."""

    color: str = Field(description="The die color")
    primary_label: str = Field(description="Hit for attack dice, Block for defense dice")
    primary_pct: float = Field(description="Percentage of faces showing the primary symbol")
    secondary_label: str = Field(description="Always Special")
    secondary_pct: float = Field(description="Percentage of faces showing a Special")


class FaceTable:
    """Per-color catalog of die faces."""

    def __init__(
        self,
        faces: Mapping[str, Sequence[Sequence[Symbol | str]]],
        required_colors: Iterable[str] = CANONICAL_COLORS,
    ) -> None:
        """
        Builds and validates a face table.

        Args:
            faces (Mapping[str, Sequence[Sequence[Symbol | str]]]):
                Faces by color; each face is a list of symbol tokens.
            required_colors (Iterable[str]):
                Colors that must be present. Pass an empty tuple for a
                reduced table.

        Raises:
            FaceTableError: If a required color is missing, a color does not
                have exactly eight faces, or a face holds an unknown symbol.

        """
        if not isinstance(faces, Mapping):
            raise FaceTableError(
                f"Face table must map colors to faces, got {type(faces).__name__}"
            )
        self._symbols: dict[str, tuple[tuple[Symbol, ...], ...]] = {}
        self._faces: dict[str, tuple[Aggregate, ...]] = {}

        for raw_color, color_faces in faces.items():
            color = normalize_color(raw_color)
            if isinstance(color_faces, (str, bytes)) or not isinstance(color_faces, Sequence):
                raise FaceTableError(f"Die {color} faces must be a list")
            if len(color_faces) != FACES_PER_DIE:
                raise FaceTableError(
                    f"Die {color} must have exactly {FACES_PER_DIE} faces "
                    f"(found {len(color_faces)})"
                )
            parsed: list[tuple[Symbol, ...]] = []
            for idx, face in enumerate(color_faces):
                if isinstance(face, (str, bytes)) or not isinstance(face, Sequence):
                    raise FaceTableError(f"Die {color} face {idx} is not a list")
                try:
                    parsed.append(tuple(Symbol.parse(token) for token in face))
                except ValueError as e:
                    raise FaceTableError(f"Die {color} face {idx}: {e}") from e
            self._symbols[color] = tuple(parsed)
            self._faces[color] = tuple(Aggregate.from_symbols(f) for f in parsed)

        for color in required_colors:
            if normalize_color(color) not in self._faces:
                raise FaceTableError(f"Missing dice color: {normalize_color(color)}")

    @classmethod
    def from_dict(
        cls,
        data: Any,
        required_colors: Iterable[str] = CANONICAL_COLORS,
    ) -> "FaceTable":
        """Builds a face table from decoded JSON data."""
        return cls(data, required_colors)

    def to_dict(self) -> dict[str, list[list[str]]]:
        """Returns the table as plain tokens, suitable for JSON or message passing."""
        return {
            color: [[symbol.name for symbol in face] for face in faces]
            for color, faces in self._symbols.items()
        }

    @property
    def colors(self) -> tuple[str, ...]:
        return tuple(self._faces)

    def __contains__(self, color: object) -> bool:
        return isinstance(color, str) and normalize_color(color) in self._faces

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FaceTable):
            return False
        return self._symbols == other._symbols

    def __repr__(self) -> str:
        return f"FaceTable({', '.join(self.colors)})"

    def faces_for(self, color: str) -> tuple[Aggregate, ...] | None:
        """
        Returns the face contributions of a color.

        Args:
            color (str): The die color, in any case.

        Returns:
            tuple[Aggregate, ...] | None: The eight faces, or None if unknown.

        """
        return self._faces.get(normalize_color(color))

    def symbols_for(self, color: str) -> tuple[tuple[Symbol, ...], ...] | None:
        """Returns the raw symbols printed on each face of a color."""
        return self._symbols.get(normalize_color(color))

    def expected_per_die(self, color: str, symbol: Symbol) -> float:
        """
        Returns the average count of a symbol per face of a color.

        Args:
            color (str): The die color.
            symbol (Symbol): The symbol to average.

        Returns:
            float: The expectation, or 0.0 for an unknown color.

        """
        faces = self.faces_for(color)
        if not faces:
            return 0.0
        return sum(face.get(symbol) for face in faces) / len(faces)

    def expected_weighted(self, color: str, weights: Weights) -> float:
        """Returns the average weighted value of a face of a color."""
        faces = self.faces_for(color)
        if not faces:
            return 0.0
        total = 0.0
        for face in faces:
            total += weighted_value(face, weights)
        return total / len(faces)

    def die_stats(self, color: str) -> DieStats | None:
        """
        Summarizes a color: share of faces with its primary symbol and with a
        Special. The primary symbol is Hit for attack colors, Block otherwise.

        Args:
            color (str): The die color.

        Returns:
            DieStats | None: The summary, or None for an unknown color.

        """
        faces = self.faces_for(color)
        if not faces:
            return None
        color = normalize_color(color)
        primary = Symbol.HIT if is_attack_color(color) else Symbol.BLOCK
        primary_faces = sum(1 for face in faces if face.get(primary) > 0)
        special_faces = sum(1 for face in faces if face.specials > 0)
        return DieStats(
            color=color,
            primary_label=primary.display_name,
            primary_pct=primary_faces / len(faces) * 100,
            secondary_label=Symbol.SPECIAL.display_name,
            secondary_pct=special_faces / len(faces) * 100,
        )


def weighted_value(agg: Aggregate, weights: Weights) -> float:
    """Returns the weighted sum of an aggregate's fields."""
    return sum(agg.get(symbol) * weight for symbol, weight in weights.items())
