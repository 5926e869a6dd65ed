"""
Random sources for the simulator.

Every roll takes its random source explicitly. A random source is any
zero-argument callable returning a float in [0, 1); ``random.random`` is the
ambient default and ``XorShiftRng`` is the seeded, reproducible one used by
offloaded simulations.
"""

import random
from collections.abc import Callable

RNG = Callable[[], float]

# Largest value a seeded generator hands out, keeps face draws below 8.
_MAX_UNIT = 0.999999


class XorShiftRng:
    """Deterministic xorshift32 generator producing floats in [0, 1)."""

    def __init__(self, seed: int) -> None:
        """
        Initialize the generator.

        Args:
            seed (int): The seed. Zero is remapped since xorshift would stall.

        """
        state = int(seed) & 0xFFFFFFFF
        self.state = state or 0x9E3779B9

    def next_uint32(self) -> int:
        """Advances the generator and returns the next 32-bit state."""
        s = self.state
        s ^= (s << 13) & 0xFFFFFFFF
        s ^= s >> 17
        s ^= (s << 5) & 0xFFFFFFFF
        self.state = s
        return s

    def __call__(self) -> float:
        return min(_MAX_UNIT, self.next_uint32() / 0xFFFFFFFF)


def rng_from_seed(seed: int | None) -> RNG:
    """
    Returns a seeded generator, or the ambient source when no seed is given.

    Args:
        seed (int | None): The seed, or None for ambient randomness.

    Returns:
        RNG: The random source.

    """
    if seed is None:
        return random.random
    return XorShiftRng(seed)


def random_seed() -> int:
    """Draws a fresh seed for requests that must be reproducible remotely."""
    return random.randrange(1, 1_000_000_000)
