"""
Shared fixtures for the dice simulator tests.
"""

import itertools

import pytest

from dicesim.core.content import load_default_face_table
from dicesim.dice.faces import FaceTable


def sequence_rng(values):
    """Returns an RNG that cycles through the given values."""
    cycle = itertools.cycle([min(0.999999, max(0.0, float(v))) for v in values])
    return lambda: next(cycle)


def face_rng(*face_indices):
    """Returns an RNG that draws the given face indices in order, cycling."""
    return sequence_rng([(idx + 0.5) / 8 for idx in face_indices])


def uniform_table(**colors):
    """Builds a reduced table where every face of a color is the same."""
    return FaceTable.from_dict(
        {color: [list(face)] * 8 for color, face in colors.items()},
        required_colors=(),
    )


@pytest.fixture
def make_rng():
    return sequence_rng


@pytest.fixture
def make_face_rng():
    return face_rng


@pytest.fixture
def make_uniform_table():
    return uniform_table


@pytest.fixture
def zero_rng():
    return lambda: 0.0


@pytest.fixture(scope="session")
def default_faces():
    return load_default_face_table()


@pytest.fixture
def ramp_table():
    """RED shows i hits on face i; BLUE shows a block on even faces."""
    return FaceTable.from_dict(
        {
            "RED": [["HIT"] * i for i in range(8)],
            "BLUE": [["BLOCK"] if i % 2 == 0 else ["SPECIAL"] for i in range(8)],
        },
        required_colors=(),
    )
