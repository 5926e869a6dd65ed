"""
Tests for the roll engine and fixed dice.
"""

import pytest

from dicesim.dice.roll import (
    FixedDie,
    draw_face_index,
    normalize_pool,
    roll_pool,
    roll_pool_detailed,
    roll_pool_detailed_with_fixed,
    roll_pool_with_fixed,
)


def no_draws():
    pytest.fail("the RNG should not be consumed")


def test_all_hit_faces(make_uniform_table, zero_rng):
    table = make_uniform_table(RED=["HIT"])
    agg = roll_pool({"RED": 2}, table, zero_rng)
    assert agg.hits == 2
    assert agg.blocks == 0
    assert agg.specials == 0


def test_face_lookup_follows_rng(ramp_table, make_face_rng):
    agg = roll_pool({"RED": 2}, ramp_table, make_face_rng(3, 6))
    assert agg.hits == 9


def test_unknown_colors_are_skipped(ramp_table):
    agg = roll_pool({"PURPLE": 3, "RED": 1}, ramp_table, lambda: 0.99)
    assert agg.hits == 7


def test_negative_counts_roll_nothing(ramp_table):
    assert roll_pool({"RED": -2}, ramp_table, no_draws).is_blank()


def test_lowercase_pool_colors(ramp_table):
    agg = roll_pool({"red": 1}, ramp_table, lambda: 0.99)
    assert agg.hits == 7


def test_draw_face_index_stays_in_range():
    assert draw_face_index(lambda: 0.0) == 0
    assert draw_face_index(lambda: 0.999999) == 7
    assert draw_face_index(lambda: 1.0) == 7


def test_normalize_pool_merges_and_clamps():
    assert normalize_pool({"red": 1, "RED": 2, "Blue": -1}) == {"RED": 3, "BLUE": 0}


def test_detailed_roll_keeps_each_die(ramp_table, make_face_rng):
    result = roll_pool_detailed({"RED": 2}, ramp_table, make_face_rng(3, 5))
    assert [die.face_index for die in result.dice] == [3, 5]
    assert [die.color for die in result.dice] == ["RED", "RED"]
    assert result.aggregate.hits == 8


def test_fixed_die_clamps_face_and_normalizes_color():
    assert FixedDie(color="red", face_index=12).face_index == 7
    assert FixedDie(color="red", face_index=-3).face_index == 0
    assert FixedDie(color=" blue ", face_index=2).color == "BLUE"


def test_fixed_die_consumes_a_pool_die(ramp_table, make_face_rng):
    draws = []
    rng = make_face_rng(2)

    def counting_rng():
        draws.append(1)
        return rng()

    agg = roll_pool_with_fixed(
        {"RED": 2}, [FixedDie(color="RED", face_index=7)], ramp_table, counting_rng
    )
    assert agg.hits == 9
    assert len(draws) == 1


def test_excess_fixed_dice_still_count(ramp_table):
    fixed = [FixedDie(color="RED", face_index=7), FixedDie(color="RED", face_index=6)]
    agg = roll_pool_with_fixed({"RED": 1}, fixed, ramp_table, no_draws)
    assert agg.hits == 13


def test_fixed_dice_of_unknown_color_are_ignored(ramp_table):
    fixed = [FixedDie(color="GREEN", face_index=3)]
    agg = roll_pool_with_fixed({"RED": 1}, fixed, ramp_table, lambda: 0.99)
    assert agg.hits == 7


def test_detailed_fixed_dice_come_first(ramp_table, make_face_rng):
    fixed = [FixedDie(color="RED", face_index=4)]
    result = roll_pool_detailed_with_fixed({"RED": 2}, fixed, ramp_table, make_face_rng(1))
    assert [(die.face_index, die.fixed) for die in result.dice] == [(4, True), (1, False)]
    assert result.aggregate.hits == 5


def test_no_fixed_dice_is_a_plain_roll(ramp_table, make_face_rng):
    assert roll_pool_with_fixed({"RED": 1}, [], ramp_table, make_face_rng(5)).hits == 5
