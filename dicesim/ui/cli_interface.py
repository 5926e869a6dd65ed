"""
User interface module for the simulator.

Builds the rich tables printed by the command line, and the interactive
reroll explorer.
"""

import random
from collections.abc import Sequence
from typing import Any, Optional

from prompt_toolkit import ANSI, PromptSession
from rich.console import Console
from rich.rule import Rule
from rich.table import Table

from dicesim.core.constants import (
    FACES_PER_DIE,
    CombatOutcome,
    RerollConditionType,
    Symbol,
    is_attack_color,
)
from dicesim.core.rng import RNG
from dicesim.dice.aggregate import Aggregate, DieRoll
from dicesim.dice.faces import FaceTable
from dicesim.dice.reroll import (
    FullRerollAnalysis,
    RerollCondition,
    RerollSelector,
    analyze_full_reroll,
)
from dicesim.dice.roll import draw_face_index, roll_pool_detailed
from dicesim.simulation.distribution import Distribution, at_least
from dicesim.simulation.models import AnalysisResults, CombatResults

# Shared by every table and report the command line prints.
console = Console(markup=True, width=120)


def cprint(*args: Any, **kwargs: Any) -> None:
    """Prints rich markup or renderables to the shared console."""
    console.print(*args, **kwargs)


def crule(title: str = "", **kwargs: Any) -> None:
    console.print(Rule(title, **kwargs))


def ccapture(content: Any) -> str:
    """
    Renders content with the shared console and returns it as text.

    Args:
        content (Any): Markup or a rich renderable.

    Returns:
        str: The rendered text, ANSI styled when the console has colors.

    """
    with console.capture() as capture:
        console.print(content, end="")
    return capture.get()


def format_symbols(symbols: Sequence[Symbol]) -> str:
    """Formats the symbols of a face, e.g. ``⚔️ ⚔️ ✨``."""
    if not symbols:
        return "[dim]blank[/]"
    return " ".join(symbol.colorize(symbol.emoji) for symbol in symbols)


def format_aggregate(agg: Aggregate) -> str:
    """Formats an aggregate as colored counts, skipping empty fields."""
    parts = [
        symbol.colorize(f"{symbol.emoji} {agg.get(symbol)}")
        for symbol in Symbol
        if agg.get(symbol)
    ]
    return " ".join(parts) if parts else "[dim]nothing[/]"


def color_style(color: str) -> str:
    return "bold red" if is_attack_color(color) else "bold blue"


def faces_table(faces: FaceTable) -> Table:
    """Lists every face of every color, with the color's summary."""
    table = Table(title="Dice Faces", pad_edge=False)
    table.add_column("Color", style="bold")
    for idx in range(FACES_PER_DIE):
        table.add_column(str(idx), justify="center")
    table.add_column("Primary", justify="right")
    table.add_column("Special", justify="right")
    for color in faces.colors:
        color_symbols = faces.symbols_for(color) or ()
        stats = faces.die_stats(color)
        table.add_row(
            f"[{color_style(color)}]{color}[/]",
            *[format_symbols(face) for face in color_symbols],
            f"{stats.primary_label} {stats.primary_pct:.1f}%" if stats else "",
            f"{stats.secondary_pct:.1f}%" if stats else "",
        )
    return table


def distribution_table(title: str, columns: dict[str, Distribution]) -> Table:
    """
    Lists several distributions side by side.

    Each cell shows the exact percentage and, in brackets, the percentage of
    reaching at least that value.

    Args:
        title (str): The table title.
        columns (dict[str, Distribution]): Distributions by column name.

    Returns:
        Table: The table.

    """
    table = Table(title=title, pad_edge=False)
    table.add_column("Count", style="cyan", justify="right")
    for name in columns:
        table.add_column(name, justify="right")
    keys = sorted({key for dist in columns.values() for key in dist})
    for key in keys:
        row = [str(key)]
        for dist in columns.values():
            if key in dist:
                row.append(f"{dist[key]:.2f}% [dim]({at_least(dist, key):.1f}%)[/]")
            else:
                row.append("")
        table.add_row(*row)
    return table


def analysis_summary_table(results: AnalysisResults) -> Table:
    """Lists the expectation and deviation of every symbol."""
    table = Table(title="Expected Symbols", pad_edge=False)
    table.add_column("Symbol", style="bold")
    table.add_column("Mean", justify="right")
    table.add_column("Std", justify="right")
    for symbol in Symbol:
        mean = getattr(results.expected, symbol.field)
        std = getattr(results.std, symbol.field, None)
        table.add_row(
            symbol.colored_name,
            f"{mean:.3f}",
            f"{std:.3f}" if std is not None else "",
        )
    stats = results.reroll_stats
    if stats.full_rerolls_occurred or stats.dice_rerolled_count:
        table.add_row()
        table.add_row("Full rerolls", str(stats.full_rerolls_occurred), "")
        table.add_row("Dice rerolled", str(stats.dice_rerolled_count), "")
    return table


def combat_summary_table(results: CombatResults) -> Table:
    """Lists the outcome rates and the mean values of a combat run."""
    table = Table(title="Combat Summary", pad_edge=False)
    table.add_column("", style="bold")
    table.add_column("Attacker", justify="right")
    table.add_column("Defender", justify="right")
    expected = results.expected
    table.add_row("Hits", f"{expected.attacker_hits:.3f}", f"{expected.defender_hits:.3f}")
    table.add_row("Blocks", f"{expected.attacker_blocks:.3f}", f"{expected.defender_blocks:.3f}")
    table.add_row(
        "Specials", f"{expected.attacker_specials:.3f}", f"{expected.defender_specials:.3f}"
    )
    table.add_row(
        "Wounds dealt", f"{expected.wounds_attacker:.3f}", f"{expected.wounds_defender:.3f}"
    )
    table.add_row()
    for outcome, rate in (
        (CombatOutcome.WIN, results.attacker_win_rate),
        (CombatOutcome.TIE, results.attacker_tie_rate),
        (CombatOutcome.LOSS, results.attacker_loss_rate),
    ):
        table.add_row(f"[{outcome.color}]{outcome.display_name}[/]", f"{rate:.2f}%", "")
    return table


def assessment_table(dice: Sequence[DieRoll], selector: RerollSelector) -> Table:
    """Lists the dice of a roll with their priority counts, score and reroll rank."""
    table = Table(title="Dice", pad_edge=False)
    table.add_column("#", style="cyan")
    table.add_column("Color", style="bold")
    table.add_column("Face", justify="right")
    table.add_column("Symbols")
    table.add_column("Current", justify="right")
    table.add_column("Expected", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Reroll", justify="right")
    for entry in selector.assess_dice(dice):
        color_symbols = selector.faces.symbols_for(entry.color) or ()
        symbols = color_symbols[entry.face_index] if color_symbols else ()
        score_style = "red" if entry.score < 0 else "green"
        table.add_row(
            str(entry.index + 1),
            f"[{color_style(entry.color)}]{entry.color}[/]",
            str(entry.face_index),
            format_symbols(symbols),
            f"{entry.current:g}",
            f"{entry.expected:.2f}",
            f"[{score_style}]{entry.score:+.2f}[/]",
            f"[bold yellow]{entry.priority}[/]" if entry.priority else "",
        )
    return table


def full_reroll_summary(analysis: FullRerollAnalysis) -> str:
    """
    Describes whether the whole roll is worth rerolling.

    Args:
        analysis (FullRerollAnalysis): The roll compared to the pool expectation.

    Returns:
        str: Rich markup, one line per fact.

    """
    symbol = analysis.condition.symbol
    if not analysis.producible:
        return (
            f"[dim]No dice in this pool can produce {symbol.display_name}. "
            "Rerolling will not help.[/]"
        )
    diff_style = "red" if analysis.difference < 0 else "green"
    if analysis.should_reroll:
        verdict = "[bold red]Reroll recommended[/]"
    else:
        verdict = "[bold green]Keep roll[/]"
    return (
        f"Full reroll ({analysis.condition.type.display_name}): {verdict}\n"
        f"  {symbol.colored_name}: actual {analysis.actual}, "
        f"expected {analysis.expected:.2f}, "
        f"difference [{diff_style}]{analysis.difference:+.2f}[/]"
    )


class RerollExplorer:
    """
    Interactive explorer showing which dice a selective reroll would pick.

    Commands: ``r`` rolls every die, ``<n>`` rerolls die n, ``<n>=<face>``
    sets die n to a face, ``q`` quits.
    """

    def __init__(
        self,
        selector: RerollSelector,
        rng: RNG = random.random,
        session: PromptSession | None = None,
        condition: Optional[RerollCondition] = None,
    ) -> None:
        self.selector = selector
        self.rng = rng
        self.session = session or PromptSession(erase_when_done=True)
        if condition is None and selector.repeat_roll:
            condition = selector.repeat_roll.condition
        if condition is None:
            priority = Symbol.HIT
            if selector.repeat_dice:
                priority = selector.repeat_dice.priority_mode.symbol
            condition = RerollCondition(type=RerollConditionType.BELOW_EXPECTED, symbol=priority)
        self.condition = condition
        self.dice: list[DieRoll] = roll_pool_detailed(selector.pool, selector.faces, rng).dice

    def roll_all(self) -> None:
        self.dice = roll_pool_detailed(self.selector.pool, self.selector.faces, self.rng).dice

    def set_face(self, index: int, face_index: int) -> bool:
        """Shows a chosen face on a die. Returns False for an invalid die or face."""
        if not 0 <= index < len(self.dice) or not 0 <= face_index < FACES_PER_DIE:
            return False
        die = self.dice[index]
        color_faces = self.selector.faces.faces_for(die.color)
        if not color_faces:
            return False
        self.dice[index] = DieRoll(die.color, face_index, color_faces[face_index])
        return True

    def reroll_die(self, index: int) -> bool:
        return self.set_face(index, draw_face_index(self.rng))

    def handle_command(self, answer: str) -> bool:
        """
        Applies a command.

        Args:
            answer (str): The command typed by the user.

        Returns:
            bool: False when the explorer should stop.

        """
        answer = answer.strip().lower()
        if answer == "q":
            return False
        if answer == "r":
            self.roll_all()
        elif "=" in answer:
            die, _, face = answer.partition("=")
            if die.strip().isdigit() and face.strip().isdigit():
                self.set_face(int(die) - 1, int(face))
        elif answer.isdigit():
            self.reroll_die(int(answer) - 1)
        return True

    def total(self) -> Aggregate:
        total = Aggregate()
        for die in self.dice:
            total.add(die.symbols)
        return total

    def analyze(self) -> FullRerollAnalysis:
        """Checks the current dice against the full reroll condition."""
        return analyze_full_reroll(
            self.total(), self.condition, self.selector.pool, self.selector.faces
        )

    def render(self) -> str:
        return (
            "\n"
            + ccapture(assessment_table(self.dice, self.selector))
            + f"\nTotal: {ccapture(format_aggregate(self.total()))}"
            + f"\n{ccapture(full_reroll_summary(self.analyze()))}"
            + "\n[r] roll all, [n] reroll die n, [n=f] set face, [q] quit\nExplore > "
        )

    def run(self) -> None:
        while True:
            answer = self.session.prompt(ANSI(self.render()))
            if not answer:
                continue
            if not self.handle_command(answer):
                return
