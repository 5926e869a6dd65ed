"""
Tests for the symbol count vector.
"""

from dicesim.core.constants import Symbol
from dicesim.dice.aggregate import Aggregate, sum_aggregates


def test_from_symbols_counts_each_symbol():
    agg = Aggregate.from_symbols([Symbol.HIT, Symbol.HIT, Symbol.HOLLOW_SPECIAL])
    assert agg == Aggregate(hits=2, hollow_specials=1)


def test_totals_add_filled_and_hollow():
    agg = Aggregate(hits=2, hollow_hits=1, blocks=1, specials=0, hollow_specials=3)
    assert (agg.total_hits, agg.total_blocks, agg.total_specials) == (3, 1, 3)
    assert not hasattr(agg, "combined")


def test_subtract_stops_at_zero():
    agg = Aggregate(hits=1, blocks=3)
    agg.subtract(Aggregate(hits=2, blocks=1))
    assert agg == Aggregate(hits=0, blocks=2)


def test_clamp_and_set():
    agg = Aggregate(hits=-2, specials=1)
    agg.clamp()
    assert agg == Aggregate(specials=1)
    agg.set(Symbol.BLOCK, -4)
    assert agg.get(Symbol.BLOCK) == 0


def test_sum_aggregates_leaves_inputs_untouched():
    first = Aggregate(hits=1)
    total = sum_aggregates([first, Aggregate(hits=2, blocks=1)])
    assert total == Aggregate(hits=3, blocks=1)
    assert first == Aggregate(hits=1)
    assert Aggregate().is_blank()
