"""
Roll engine for the simulator.

Draws a face for every die of a pool and reduces the pool to an Aggregate,
optionally keeping the per-die breakdown. Colors the face table does not know
are skipped: a pool may reference a color that a reduced table lacks.
"""

import random
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

from dicesim.core.constants import FACES_PER_DIE, normalize_color
from dicesim.core.rng import RNG
from dicesim.dice.aggregate import Aggregate, DieRoll, RollResult
from dicesim.dice.faces import FaceTable

Pool = Mapping[str, int]


class FixedDie(BaseModel):
    """A die whose face is chosen instead of rolled."""

    color: str = Field(description="The die color")
    face_index: int = Field(description="The chosen face, clamped into 0-7")

    def model_post_init(self, _: Any) -> None:
        """Normalizes the color and clamps the face index."""
        self.color = normalize_color(self.color)
        self.face_index = min(FACES_PER_DIE - 1, max(0, int(self.face_index)))


def normalize_pool(pool: Pool) -> dict[str, int]:
    """
    Normalizes pool colors to uppercase and counts to non-negative integers.

    Args:
        pool (Pool): Die counts by color.

    Returns:
        dict[str, int]: The normalized pool. Colors given twice are merged.

    """
    out: dict[str, int] = {}
    for color, count in pool.items():
        key = normalize_color(color)
        out[key] = out.get(key, 0) + max(0, int(count or 0))
    return out


def draw_face_index(rng: RNG) -> int:
    """Draws a uniform face index in [0, 8)."""
    return min(FACES_PER_DIE - 1, int(rng() * FACES_PER_DIE))


def roll_pool(
    pool: Pool,
    faces: FaceTable,
    rng: RNG = random.random,
) -> Aggregate:
    """
    Rolls every die of a pool and sums the symbols.

    Args:
        pool (Pool): Die counts by color.
        faces (FaceTable): The face table.
        rng (RNG): The random source.

    Returns:
        Aggregate: The summed symbols.

    """
    agg = Aggregate()
    for color, count in pool.items():
        color_faces = faces.faces_for(color)
        if not color_faces:
            continue
        for _ in range(max(0, int(count or 0))):
            agg.add(color_faces[draw_face_index(rng)])
    return agg


def roll_pool_detailed(
    pool: Pool,
    faces: FaceTable,
    rng: RNG = random.random,
) -> RollResult:
    """
    Rolls every die of a pool, keeping the per-die breakdown.

    Args:
        pool (Pool): Die counts by color.
        faces (FaceTable): The face table.
        rng (RNG): The random source.

    Returns:
        RollResult: The individual dice and their summed symbols.

    """
    dice: list[DieRoll] = []
    agg = Aggregate()
    for color, count in pool.items():
        color_faces = faces.faces_for(color)
        if not color_faces:
            continue
        key = normalize_color(color)
        for _ in range(max(0, int(count or 0))):
            face_index = draw_face_index(rng)
            symbols = color_faces[face_index]
            dice.append(DieRoll(key, face_index, symbols))
            agg.add(symbols)
    return RollResult(dice, agg)


def _place_fixed_dice(
    pool: Pool,
    fixed_dice: Sequence[FixedDie],
    faces: FaceTable,
) -> tuple[list[DieRoll], dict[str, int]]:
    """
    Resolves the fixed dice and returns them with the pool left to roll.

    A fixed die takes one die of its color from the pool. Fixed dice beyond
    what the pool holds still count their face.
    """
    remaining = normalize_pool(pool)
    placed: list[DieRoll] = []
    for fixed in fixed_dice:
        color_faces = faces.faces_for(fixed.color)
        if not color_faces:
            continue
        placed.append(
            DieRoll(fixed.color, fixed.face_index, color_faces[fixed.face_index], fixed=True)
        )
        remaining[fixed.color] = max(0, remaining.get(fixed.color, 0) - 1)
    return placed, remaining


def roll_pool_with_fixed(
    pool: Pool,
    fixed_dice: Sequence[FixedDie],
    faces: FaceTable,
    rng: RNG = random.random,
) -> Aggregate:
    """
    Rolls a pool where some dice show a chosen face.

    Args:
        pool (Pool): Die counts by color, fixed dice included.
        fixed_dice (Sequence[FixedDie]): The dice with a chosen face.
        faces (FaceTable): The face table.
        rng (RNG): The random source, used only for the dice left to roll.

    Returns:
        Aggregate: The summed symbols.

    """
    if not fixed_dice:
        return roll_pool(pool, faces, rng)
    placed, remaining = _place_fixed_dice(pool, fixed_dice, faces)
    agg = roll_pool(remaining, faces, rng)
    for die in placed:
        agg.add(die.symbols)
    return agg


def roll_pool_detailed_with_fixed(
    pool: Pool,
    fixed_dice: Sequence[FixedDie],
    faces: FaceTable,
    rng: RNG = random.random,
) -> RollResult:
    """Rolls a pool with fixed dice, keeping the per-die breakdown."""
    if not fixed_dice:
        return roll_pool_detailed(pool, faces, rng)
    placed, remaining = _place_fixed_dice(pool, fixed_dice, faces)
    result = roll_pool_detailed(remaining, faces, rng)
    for die in placed:
        result.aggregate.add(die.symbols)
    result.dice = placed + result.dice
    return result
