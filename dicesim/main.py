"""
Main entry point for the dice simulator.

Sub-commands:
- ``faces``: print the face table
- ``analyze``: simulate a single pool
- ``combat``: simulate an attacker against a defender
- ``explore``: roll a pool by hand and see which dice a reroll would pick

Pools are written as ``RED=2,BLUE=1`` and fixed dice as ``RED:0,BLUE:3``
(color and face index).
"""

import argparse
import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Optional

from dicesim.combat.resolver import CombatSide
from dicesim.core.constants import (
    DEFAULT_SIMULATION_COUNT,
    PriorityMode,
    RerollConditionType,
    Symbol,
)
from dicesim.core.content import load_default_face_table, load_face_table, load_pipeline_file
from dicesim.core.error_handling import FaceTableError
from dicesim.core.logging import log_error, setup_logging
from dicesim.core.rng import rng_from_seed
from dicesim.dice.faces import FaceTable
from dicesim.dice.reroll import (
    RepeatDiceConfig,
    RepeatRollConfig,
    RerollCondition,
    RerollSelector,
)
from dicesim.dice.roll import FixedDie
from dicesim.pipeline.pipeline import Pipeline
from dicesim.simulation.controller import SimulationController
from dicesim.simulation.models import AnalysisRequest, CombatRequest
from dicesim.ui.cli_interface import (
    RerollExplorer,
    analysis_summary_table,
    combat_summary_table,
    cprint,
    crule,
    distribution_table,
    faces_table,
)


def parse_pool(text: str) -> dict[str, int]:
    """
    Parses a pool such as ``RED=2,BLUE=1``.

    Raises:
        argparse.ArgumentTypeError: If an entry is not ``COLOR=COUNT``.

    """
    pool: dict[str, int] = {}
    for entry in filter(None, (part.strip() for part in text.split(","))):
        color, sep, count = entry.partition("=")
        if not sep or not color.strip() or not count.strip().lstrip("-").isdigit():
            raise argparse.ArgumentTypeError(f"Invalid pool entry: '{entry}' (expected COLOR=COUNT)")
        key = color.strip().upper()
        pool[key] = pool.get(key, 0) + int(count)
    return pool


def parse_fixed_dice(text: str) -> list[FixedDie]:
    """Parses fixed dice such as ``RED:0,BLUE:3``."""
    fixed: list[FixedDie] = []
    for entry in filter(None, (part.strip() for part in text.split(","))):
        color, sep, face = entry.partition(":")
        if not sep or not face.strip().lstrip("-").isdigit():
            raise argparse.ArgumentTypeError(f"Invalid fixed die: '{entry}' (expected COLOR:FACE)")
        fixed.append(FixedDie(color=color, face_index=int(face)))
    return fixed


def parse_reroll_condition(text: str) -> RerollCondition:
    """
    Parses a full reroll condition: ``TYPE:SYMBOL[:THRESHOLD]``.

    Examples: ``BELOW_EXPECTED:HIT``, ``MIN_SYMBOL:hits:2``, ``NO_SYMBOL:SPECIAL``.
    """
    parts = text.split(":")
    try:
        condition_type = RerollConditionType.parse(parts[0].strip())
        symbol = Symbol.parse(parts[1]) if len(parts) > 1 else Symbol.HIT
        threshold = int(parts[2]) if len(parts) > 2 else 0
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid reroll condition: '{text}'") from e
    return RerollCondition(type=condition_type, symbol=symbol, threshold=threshold)


def parse_priority(text: str) -> PriorityMode:
    try:
        return PriorityMode.parse(text.strip())
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid priority mode: '{text}'") from e


def _load_faces(path: Optional[Path]) -> FaceTable:
    if path is None:
        return load_default_face_table()
    return load_face_table(path)


def _load_pipeline(path: Optional[Path]) -> Pipeline:
    if path is None:
        return Pipeline()
    return load_pipeline_file(path)


def _repeat_roll(condition: Optional[RerollCondition]) -> Optional[RepeatRollConfig]:
    if condition is None:
        return None
    return RepeatRollConfig(enabled=True, condition=condition)


def _repeat_dice(
    max_dice: Optional[int], priority: PriorityMode, count_hollow: bool
) -> Optional[RepeatDiceConfig]:
    if max_dice is None:
        return None
    return RepeatDiceConfig(
        enabled=True,
        max_dice_to_reroll=max_dice,
        priority_mode=priority,
        count_hollow_as_filled=count_hollow,
    )


def _add_simulation_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--trials", type=int, default=DEFAULT_SIMULATION_COUNT, help="Number of simulated rolls"
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible run")
    parser.add_argument(
        "--in-process", action="store_true", help="Run in this process instead of a worker"
    )


def _add_reroll_arguments(parser: argparse.ArgumentParser, prefix: str = "") -> None:
    parser.add_argument(
        f"--{prefix}repeat-roll",
        type=parse_reroll_condition,
        default=None,
        metavar="TYPE:SYMBOL[:N]",
        help="Reroll the whole pool once when the condition holds",
    )
    parser.add_argument(
        f"--{prefix}repeat-dice",
        type=int,
        default=None,
        metavar="N",
        help="Reroll up to N underperforming dice",
    )
    parser.add_argument(
        f"--{prefix}priority",
        type=parse_priority,
        default=PriorityMode.HITS,
        help="Symbol the selective reroll improves (HITS, BLOCKS, SPECIALS)",
    )
    parser.add_argument(
        f"--{prefix}count-hollow",
        action="store_true",
        help="Count hollow symbols as filled when picking dice",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dicesim", description="Warcrow dice Monte Carlo simulator"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--faces", type=Path, default=None, help="Face table JSON file")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("faces", help="Print the face table")

    sp_analyze = sub.add_parser("analyze", help="Simulate a single pool")
    sp_analyze.add_argument("pool", type=parse_pool, help="Pool, e.g. RED=2,BLUE=1")
    sp_analyze.add_argument("--pipeline", type=Path, default=None, help="Pipeline JSON file")
    sp_analyze.add_argument("--fixed", type=parse_fixed_dice, default=[], help="e.g. RED:0")
    sp_analyze.add_argument("--disarmed", action="store_true")
    sp_analyze.add_argument("--vulnerable", action="store_true")
    sp_analyze.add_argument(
        "--hollow", action="store_true", help="Also print the hollow and total distributions"
    )
    _add_reroll_arguments(sp_analyze)
    _add_simulation_arguments(sp_analyze)

    sp_combat = sub.add_parser("combat", help="Simulate an attacker against a defender")
    sp_combat.add_argument("attacker", type=parse_pool, help="Attacker pool")
    sp_combat.add_argument("defender", type=parse_pool, help="Defender pool")
    for side in ("attacker", "defender"):
        sp_combat.add_argument(f"--{side}-pipeline", type=Path, default=None)
        sp_combat.add_argument(f"--{side}-fixed", type=parse_fixed_dice, default=[])
        _add_reroll_arguments(sp_combat, prefix=f"{side}-")
    sp_combat.add_argument("--disarmed", action="store_true", help="The attacker is Disarmed")
    sp_combat.add_argument("--vulnerable", action="store_true", help="The defender is Vulnerable")
    _add_simulation_arguments(sp_combat)

    sp_explore = sub.add_parser("explore", help="Roll by hand and inspect reroll choices")
    sp_explore.add_argument("pool", type=parse_pool, help="Pool, e.g. RED=2,BLUE=1")
    sp_explore.add_argument("--max-dice", type=int, default=2, help="Dice a reroll may pick")
    sp_explore.add_argument("--priority", type=parse_priority, default=PriorityMode.HITS)
    sp_explore.add_argument("--count-hollow", action="store_true")
    sp_explore.add_argument(
        "--repeat-roll",
        type=parse_reroll_condition,
        default=None,
        help="Full reroll condition to judge the roll by, e.g. MIN_SYMBOL:hits:2",
    )
    sp_explore.add_argument("--seed", type=int, default=None)

    return parser


def cmd_faces(args: argparse.Namespace, faces: FaceTable) -> int:
    cprint(faces_table(faces))
    return 0


def cmd_analyze(args: argparse.Namespace, faces: FaceTable) -> int:
    request = AnalysisRequest(
        pool=args.pool,
        faces=faces,
        simulation_count=args.trials,
        pipeline=_load_pipeline(args.pipeline),
        repeat_roll=_repeat_roll(args.repeat_roll),
        repeat_dice=_repeat_dice(args.repeat_dice, args.priority, args.count_hollow),
        fixed_dice=args.fixed,
        disarmed=args.disarmed,
        vulnerable=args.vulnerable,
        seed=args.seed,
    )
    with SimulationController(offload=not args.in_process) as controller:
        results = asyncio.run(controller.run_analysis(request))

    crule(f"Analysis of {request.pool} ({results.simulation_count} rolls)", style="bold green")
    cprint(
        distribution_table(
            "Filled Symbols",
            {"Hits": results.hits, "Blocks": results.blocks, "Specials": results.specials},
        )
    )
    if args.hollow:
        cprint(
            distribution_table(
                "Hollow Symbols",
                {
                    "Hollow Hits": results.hollow_hits,
                    "Hollow Blocks": results.hollow_blocks,
                    "Hollow Specials": results.hollow_specials,
                },
            )
        )
        cprint(
            distribution_table(
                "Total Symbols",
                {
                    "Hits": results.total_hits,
                    "Blocks": results.total_blocks,
                    "Specials": results.total_specials,
                },
            )
        )
    cprint(analysis_summary_table(results))
    return 0


def _combat_side(args: argparse.Namespace, side: str, **flags: bool) -> CombatSide:
    def opt(name: str) -> Any:
        return getattr(args, f"{side}_{name}")

    return CombatSide(
        pool=getattr(args, side),
        pipeline=_load_pipeline(opt("pipeline")),
        repeat_roll=_repeat_roll(opt("repeat_roll")),
        repeat_dice=_repeat_dice(opt("repeat_dice"), opt("priority"), opt("count_hollow")),
        fixed_dice=opt("fixed"),
        **flags,
    )


def cmd_combat(args: argparse.Namespace, faces: FaceTable) -> int:
    request = CombatRequest(
        attacker=_combat_side(args, "attacker", disarmed=args.disarmed),
        defender=_combat_side(args, "defender", vulnerable=args.vulnerable),
        faces=faces,
        simulation_count=args.trials,
        seed=args.seed,
    )
    with SimulationController(offload=not args.in_process) as controller:
        results = asyncio.run(controller.run_combat(request))

    crule(
        f"Combat {request.attacker.pool} vs {request.defender.pool} "
        f"({results.simulation_count} rounds)",
        style="bold green",
    )
    cprint(
        distribution_table(
            "Wounds",
            {"Dealt": results.wounds_attacker, "Received": results.wounds_defender},
        )
    )
    cprint(combat_summary_table(results))
    return 0


def cmd_explore(args: argparse.Namespace, faces: FaceTable) -> int:
    selector = RerollSelector(
        args.pool,
        faces,
        repeat_roll=_repeat_roll(args.repeat_roll),
        repeat_dice=RepeatDiceConfig(
            enabled=True,
            max_dice_to_reroll=args.max_dice,
            priority_mode=args.priority,
            count_hollow_as_filled=args.count_hollow,
        ),
    )
    try:
        RerollExplorer(selector, rng_from_seed(args.seed)).run()
    except (KeyboardInterrupt, EOFError):
        cprint("")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        faces = _load_faces(args.faces)
    except FaceTableError as e:
        log_error(f"Cannot load the face table: {e}", {"path": args.faces})
        return 1

    try:
        if args.cmd == "faces":
            return cmd_faces(args, faces)
        elif args.cmd == "analyze":
            return cmd_analyze(args, faces)
        elif args.cmd == "combat":
            return cmd_combat(args, faces)
        elif args.cmd == "explore":
            return cmd_explore(args, faces)
    except ValueError as e:
        log_error(f"Invalid input: {e}", {"command": args.cmd})
        return 1
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
