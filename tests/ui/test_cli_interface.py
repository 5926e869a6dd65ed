"""
Tests for the console tables and the reroll explorer.
"""

import pytest

from dicesim.dice.aggregate import Aggregate
from dicesim.core.constants import RerollConditionType, Symbol
from dicesim.dice.reroll import RepeatDiceConfig, RepeatRollConfig, RerollCondition, RerollSelector
from dicesim.ui.cli_interface import (
    RerollExplorer,
    assessment_table,
    ccapture,
    distribution_table,
    faces_table,
    format_aggregate,
)


@pytest.fixture
def explorer(mocker, ramp_table, make_face_rng):
    selector = RerollSelector(
        {"RED": 2},
        ramp_table,
        repeat_dice=RepeatDiceConfig(enabled=True, max_dice_to_reroll=1),
    )
    return RerollExplorer(selector, make_face_rng(0, 5, 6), session=mocker.Mock())


def test_faces_table_has_a_row_per_color(default_faces):
    table = faces_table(default_faces)
    assert table.row_count == len(default_faces.colors)


def test_distribution_table_merges_outcomes():
    table = distribution_table("Test", {"A": {0: 50.0, 1: 50.0}, "B": {2: 100.0}})
    assert table.row_count == 3
    assert len(table.columns) == 3


def test_format_aggregate_skips_empty_fields():
    assert format_aggregate(Aggregate()) == "[dim]nothing[/]"
    assert "2" in format_aggregate(Aggregate(hits=2))


def test_assessment_table_lists_every_die(explorer):
    table = assessment_table(explorer.dice, explorer.selector)
    assert table.row_count == 2


def test_explorer_starts_with_a_roll(explorer):
    assert [die.face_index for die in explorer.dice] == [0, 5]


def test_explorer_sets_faces(explorer):
    assert explorer.handle_command("2=7")
    assert explorer.dice[1].face_index == 7
    assert explorer.dice[1].symbols.hits == 7


def test_explorer_rejects_invalid_dice_and_faces(explorer):
    assert not explorer.set_face(5, 1)
    assert not explorer.set_face(0, 8)
    assert explorer.handle_command("9=1")
    assert [die.face_index for die in explorer.dice] == [0, 5]


def test_explorer_rerolls_a_die(explorer):
    explorer.handle_command("1")
    assert explorer.dice[0].face_index == 6


def test_explorer_quits(explorer):
    assert not explorer.handle_command(" Q ")


def test_explorer_run_loop(explorer):
    explorer.session.prompt.side_effect = ["", "r", "q"]
    explorer.run()
    assert explorer.session.prompt.call_count == 3


def test_explorer_render(explorer):
    text = explorer.render()
    assert "Total:" in text
    assert text.endswith("Explore > ")


def test_assessment_lists_expected_and_current_counts(explorer):
    entries = explorer.selector.assess_dice(explorer.dice)
    assert [entry.current for entry in entries] == [0.0, 5.0]
    assert [entry.expected for entry in entries] == [3.5, 3.5]
    assert len(assessment_table(explorer.dice, explorer.selector).columns) == 8


def test_explorer_defaults_to_below_expected_on_the_priority_symbol(explorer):
    assert explorer.condition.type == RerollConditionType.BELOW_EXPECTED
    assert explorer.condition.symbol == Symbol.HIT


def test_explorer_uses_the_configured_full_reroll_condition(mocker, ramp_table, make_face_rng):
    condition = RerollCondition(type=RerollConditionType.MIN_SYMBOL, symbol=Symbol.HIT, threshold=6)
    selector = RerollSelector(
        {"RED": 2}, ramp_table, repeat_roll=RepeatRollConfig(enabled=True, condition=condition)
    )
    explorer = RerollExplorer(selector, make_face_rng(0, 5), session=mocker.Mock())
    assert explorer.condition == condition
    assert explorer.analyze().should_reroll


def test_explorer_recommends_reroll_below_expectation(explorer):
    analysis = explorer.analyze()
    assert analysis.actual == 5
    assert analysis.expected == pytest.approx(7.0)
    assert analysis.difference == pytest.approx(-2.0)
    assert analysis.should_reroll
    text = explorer.render()
    assert "Reroll recommended" in text
    assert "Keep roll" not in text


def test_explorer_recommends_keeping_a_roll_at_or_above_expectation(explorer):
    explorer.handle_command("1=7")
    explorer.handle_command("2=7")
    analysis = explorer.analyze()
    assert analysis.actual == 14
    assert not analysis.should_reroll
    text = explorer.render()
    assert "Keep roll" in text
    assert "Reroll recommended" not in text


def test_explorer_reports_a_pool_that_cannot_produce_the_symbol(mocker, ramp_table, make_face_rng):
    selector = RerollSelector({"BLUE": 2}, ramp_table)
    explorer = RerollExplorer(selector, make_face_rng(0, 1), session=mocker.Mock())
    assert not explorer.analyze().producible
    text = explorer.render()
    assert "cannot produce Hit" in text
    assert "Reroll recommended" not in text


def test_ccapture_renders_markup_as_text():
    assert "hello" in ccapture("[bold]hello[/]")
    assert "[bold]" not in ccapture("[bold]hello[/]")
