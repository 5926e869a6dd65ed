"""
Tests for the face table.
"""

import pytest

from dicesim.core.constants import CANONICAL_COLORS, FACES_PER_DIE, Symbol
from dicesim.core.error_handling import FaceTableError
from dicesim.dice.aggregate import Aggregate
from dicesim.dice.faces import FaceTable, weighted_value


def test_default_table_has_every_canonical_color(default_faces):
    for color in CANONICAL_COLORS:
        assert color in default_faces
        assert len(default_faces.faces_for(color)) == FACES_PER_DIE


def test_color_keys_are_case_insensitive():
    table = FaceTable.from_dict({"red": [["HIT"]] * 8}, required_colors=("Red",))
    assert "RED" in table
    assert "red" in table
    assert table.faces_for("Red")[0].hits == 1


def test_missing_required_color_raises():
    with pytest.raises(FaceTableError, match="Missing dice color: BLUE"):
        FaceTable.from_dict({"RED": [[]] * 8}, required_colors=("RED", "BLUE"))


def test_wrong_face_count_raises():
    with pytest.raises(FaceTableError, match="exactly 8 faces"):
        FaceTable.from_dict({"RED": [["HIT"]] * 7}, required_colors=())


def test_unknown_symbol_raises():
    faces = [["HIT"]] * 7 + [["CRIT"]]
    with pytest.raises(FaceTableError, match="face 7"):
        FaceTable.from_dict({"RED": faces}, required_colors=())


def test_non_mapping_table_raises():
    with pytest.raises(FaceTableError):
        FaceTable.from_dict([["HIT"]] * 8, required_colors=())


def test_face_table_error_is_a_value_error():
    assert issubclass(FaceTableError, ValueError)


def test_symbol_spellings_are_accepted():
    table = FaceTable.from_dict(
        {"RED": [["hollowHits", "hollow_specials", "hit"]] * 8},
        required_colors=(),
    )
    face = table.faces_for("RED")[0]
    assert face == Aggregate(hits=1, hollow_hits=1, hollow_specials=1)


def test_unknown_color_lookup_returns_none(ramp_table):
    assert ramp_table.faces_for("PURPLE") is None
    assert ramp_table.expected_per_die("PURPLE", Symbol.HIT) == 0.0
    assert ramp_table.die_stats("PURPLE") is None


def test_expected_per_die(ramp_table):
    assert ramp_table.expected_per_die("RED", Symbol.HIT) == pytest.approx(3.5)
    assert ramp_table.expected_per_die("BLUE", Symbol.BLOCK) == pytest.approx(0.5)
    assert ramp_table.expected_per_die("BLUE", Symbol.HIT) == 0.0


def test_expected_weighted(ramp_table):
    weights = {Symbol.BLOCK: 2.0, Symbol.SPECIAL: 1.0}
    # Four faces worth 2 and four worth 1.
    assert ramp_table.expected_weighted("BLUE", weights) == pytest.approx(1.5)


def test_weighted_value():
    agg = Aggregate(hits=2, hollow_hits=3)
    assert weighted_value(agg, {Symbol.HIT: 1.0, Symbol.HOLLOW_HIT: 0.5}) == pytest.approx(3.5)


def test_die_stats(ramp_table):
    red = ramp_table.die_stats("RED")
    assert red.primary_label == "Hit"
    assert red.primary_pct == pytest.approx(87.5)
    assert red.secondary_pct == 0.0

    blue = ramp_table.die_stats("BLUE")
    assert blue.primary_label == "Block"
    assert blue.primary_pct == pytest.approx(50.0)
    assert blue.secondary_pct == pytest.approx(50.0)


def test_to_dict_reloads_to_an_equal_table(default_faces):
    reloaded = FaceTable.from_dict(default_faces.to_dict())
    assert reloaded == default_faces
    assert reloaded.to_dict()["RED"] == default_faces.to_dict()["RED"]
