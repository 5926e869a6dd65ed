"""
Tests for running pipelines.
"""

from dicesim.core.constants import CombatRole, Symbol
from dicesim.dice.aggregate import Aggregate
from dicesim.dice.faces import FaceTable
from dicesim.dice.roll import FixedDie, roll_pool_with_fixed
from dicesim.pipeline.pipeline import Pipeline
from dicesim.pipeline.steps import (
    AddSymbols,
    CombatSwitch,
    ElitePromotion,
    Ratio,
    SwitchSymbols,
)


def test_steps_run_in_order():
    promote_then_switch = Pipeline(
        steps=[
            ElitePromotion(),
            SwitchSymbols(from_symbol=Symbol.HIT, ratio=Ratio(x=2, y=1)),
        ]
    )
    switch_then_promote = Pipeline(steps=list(reversed(promote_then_switch.steps)))

    pre = Aggregate(hits=1, hollow_hits=1)
    assert promote_then_switch.transform(pre) == Aggregate(specials=1)
    assert switch_then_promote.transform(pre) == Aggregate(hits=2)


def test_transform_leaves_the_input_untouched():
    pre = Aggregate(hits=1)
    out = Pipeline(steps=[AddSymbols(delta={Symbol.HIT: 1})]).transform(pre)
    assert out.hits == 2
    assert pre.hits == 1


def test_disabled_steps_are_skipped():
    step = AddSymbols(delta={Symbol.HIT: 1}, enabled=False)
    pipeline = Pipeline(steps=[step])
    assert pipeline.enabled_steps() == []
    assert pipeline.transform(Aggregate()) == Aggregate()


def test_get_step_and_len():
    step = AddSymbols(id="bonus", delta={Symbol.HIT: 1})
    pipeline = Pipeline(steps=[ElitePromotion(), step])
    assert len(pipeline) == 2
    assert pipeline.get_step("bonus") is step
    assert pipeline.get_step("missing") is None


def test_steps_are_validated_by_type():
    pipeline = Pipeline.model_validate(
        {"steps": [{"type": "AddSymbols", "delta": {"hits": 1}}]}
    )
    assert isinstance(pipeline.steps[0], AddSymbols)
    assert pipeline.steps[0].delta == {Symbol.HIT: 1}


def test_combat_hooks_clamp_both_sides():
    pipeline = Pipeline(steps=[CombatSwitch(opp_delta={Symbol.BLOCK: 5})])
    me, opponent = Aggregate(specials=1), Aggregate(blocks=2)
    pipeline.apply_combat(me, opponent, CombatRole.ATTACKER)
    assert opponent.blocks == 0
    assert me.specials == 0


def test_fixed_double_hit_switched_to_special(zero_rng):
    faces = FaceTable.from_dict(
        {"RED": [[], ["HIT", "HIT"], [], [], [], [], [], []]},
        required_colors=(),
    )
    pre = roll_pool_with_fixed(
        {"RED": 1}, [FixedDie(color="RED", face_index=1)], faces, zero_rng
    )
    pipeline = Pipeline(
        steps=[SwitchSymbols(from_symbol=Symbol.HIT, to_symbol=Symbol.SPECIAL, ratio=Ratio(x=2, y=1))]
    )
    out = pipeline.transform(pre)
    assert out.hits == 0
    assert out.specials == 1
