"""
Constants and enumerations for the simulator.

Defines the dice symbols, die colors, reroll modes and the other core values
shared by the roll engine, the transform pipeline and the Monte Carlo
aggregator.
"""

from enum import Enum
from typing import Any

# Every die in the game has exactly this many faces.
FACES_PER_DIE = 8

# Default number of Monte Carlo trials for a simulation run.
DEFAULT_SIMULATION_COUNT = 10000

# Bounds for the number of dice a selective reroll may pick.
MIN_DICE_TO_REROLL = 1
MAX_DICE_TO_REROLL = 10

# The canonical die colors, attack colors first.
ATTACK_COLORS: tuple[str, ...] = ("RED", "ORANGE", "YELLOW")
DEFENSE_COLORS: tuple[str, ...] = ("GREEN", "BLUE", "BLACK")
CANONICAL_COLORS: tuple[str, ...] = ATTACK_COLORS + DEFENSE_COLORS


class NiceEnum(Enum):
    """An enumeration that provides a nicer string representation."""

    def __str__(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.name.replace("_", " ").lower().capitalize()

    @classmethod
    def parse(cls, value: Any) -> Any:
        """
        Parses a member from its name in any case, with or without
        separators, so ``BELOW_EXPECTED``, ``BelowExpected`` and
        ``below-expected`` are the same member.

        Args:
            value (Any): A member or its name.

        Returns:
            The parsed member.

        Raises:
            ValueError: If the value does not name a member.

        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            token = _squash(value)
            for member in cls:
                if _squash(member.name) == token:
                    return member
        raise ValueError(f"Invalid {cls.__name__}: {value!r}")


def _squash(token: str) -> str:
    return "".join(ch for ch in token if ch.isalnum()).upper()


class Symbol(NiceEnum):
    """Defines the symbols that can appear on a die face."""

    HIT = "HIT"
    HOLLOW_HIT = "HOLLOW_HIT"
    BLOCK = "BLOCK"
    HOLLOW_BLOCK = "HOLLOW_BLOCK"
    SPECIAL = "SPECIAL"
    HOLLOW_SPECIAL = "HOLLOW_SPECIAL"

    @property
    def field(self) -> str:
        """Returns the name of the aggregate field counting this symbol."""
        return _SYMBOL_FIELDS[self]

    @property
    def camel_field(self) -> str:
        """Returns the aggregate field name in camelCase."""
        head, *tail = self.field.split("_")
        return head + "".join(part.capitalize() for part in tail)

    @property
    def is_hollow(self) -> bool:
        return self.name.startswith("HOLLOW_")

    @property
    def filled(self) -> "Symbol":
        """Returns the filled counterpart of a hollow symbol (or itself)."""
        return Symbol[self.name.removeprefix("HOLLOW_")]

    @property
    def hollow(self) -> "Symbol":
        """Returns the hollow counterpart of a filled symbol (or itself)."""
        if self.is_hollow:
            return self
        return Symbol[f"HOLLOW_{self.name}"]

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this symbol."""
        return {
            Symbol.HIT: "⚔️",
            Symbol.HOLLOW_HIT: "🗡️",
            Symbol.BLOCK: "🛡️",
            Symbol.HOLLOW_BLOCK: "🔰",
            Symbol.SPECIAL: "✨",
            Symbol.HOLLOW_SPECIAL: "💫",
        }.get(self, "❔")

    @property
    def color(self) -> str:
        """Returns the color string associated with this symbol."""
        return {
            Symbol.HIT: "bold red",
            Symbol.HOLLOW_HIT: "red",
            Symbol.BLOCK: "bold blue",
            Symbol.HOLLOW_BLOCK: "blue",
            Symbol.SPECIAL: "bold yellow",
            Symbol.HOLLOW_SPECIAL: "yellow",
        }.get(self, "dim white")

    @property
    def colored_name(self) -> str:
        return self.colorize(self.display_name)

    def colorize(self, message: str) -> str:
        """Applies symbol color formatting to a message."""
        return f"[{self.color}]{message}[/]"

    @classmethod
    def parse(cls, value: "Symbol | str") -> "Symbol":
        """
        Parses a symbol from any of its accepted spellings.

        Accepts the symbol itself, the canonical token (``HIT``, case
        insensitive), the aggregate field name (``hollow_hits``) or its
        camelCase form (``hollowHits``).

        Args:
            value (Symbol | str): The value to parse.

        Returns:
            Symbol: The parsed symbol.

        Raises:
            ValueError: If the value does not name a symbol.

        """
        if isinstance(value, Symbol):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Invalid symbol: {value!r}")
        token = value.strip()
        symbol = _SYMBOL_LOOKUP.get(token) or _SYMBOL_LOOKUP.get(token.upper())
        if symbol is None:
            raise ValueError(f"Invalid symbol: {value!r}")
        return symbol


_SYMBOL_FIELDS: dict[Symbol, str] = {
    Symbol.HIT: "hits",
    Symbol.HOLLOW_HIT: "hollow_hits",
    Symbol.BLOCK: "blocks",
    Symbol.HOLLOW_BLOCK: "hollow_blocks",
    Symbol.SPECIAL: "specials",
    Symbol.HOLLOW_SPECIAL: "hollow_specials",
}

_SYMBOL_LOOKUP: dict[str, Symbol] = {}
for _symbol in Symbol:
    _SYMBOL_LOOKUP[_symbol.name] = _symbol
    _SYMBOL_LOOKUP[_symbol.field] = _symbol
    _SYMBOL_LOOKUP[_symbol.camel_field] = _symbol

# Order used whenever aggregates are walked field by field.
AGGREGATE_FIELDS: tuple[str, ...] = tuple(_SYMBOL_FIELDS[s] for s in Symbol)

# Hollow symbols in the order Elite Promotion processes them.
HOLLOW_SYMBOLS: tuple[Symbol, ...] = (
    Symbol.HOLLOW_HIT,
    Symbol.HOLLOW_BLOCK,
    Symbol.HOLLOW_SPECIAL,
)


class PriorityMode(NiceEnum):
    """Defines which symbol a selective reroll tries to improve."""

    HITS = "HITS"
    BLOCKS = "BLOCKS"
    SPECIALS = "SPECIALS"

    @property
    def symbol(self) -> Symbol:
        """Returns the filled symbol this priority mode targets."""
        return {
            PriorityMode.HITS: Symbol.HIT,
            PriorityMode.BLOCKS: Symbol.BLOCK,
            PriorityMode.SPECIALS: Symbol.SPECIAL,
        }[self]


class RerollConditionType(NiceEnum):
    """Defines the conditions that trigger a full reroll."""

    BELOW_EXPECTED = "BELOW_EXPECTED"
    MIN_SYMBOL = "MIN_SYMBOL"
    NO_SYMBOL = "NO_SYMBOL"


class CombatRole(NiceEnum):
    """Defines the side a pipeline acts for during combat."""

    ATTACKER = "ATTACKER"
    DEFENDER = "DEFENDER"


class CombatOutcome(NiceEnum):
    """Defines the outcome of a combat round from the attacker's view."""

    WIN = "WIN"
    TIE = "TIE"
    LOSS = "LOSS"

    @property
    def color(self) -> str:
        """Returns the color string associated with this outcome."""
        return {
            CombatOutcome.WIN: "bold green",
            CombatOutcome.TIE: "bold yellow",
            CombatOutcome.LOSS: "bold red",
        }.get(self, "dim white")


def normalize_color(color: str) -> str:
    """
    Normalizes a die color key to its canonical uppercase form.

    Args:
        color (str): The color as written by the caller (e.g. "Red").

    Returns:
        str: The uppercase color key (e.g. "RED").

    """
    return str(color).strip().upper()


def is_attack_color(color: str) -> bool:
    """Check if a color is one of the attack colors."""
    return normalize_color(color) in ATTACK_COLORS
