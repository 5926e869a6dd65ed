"""
Dice simulator package for the Warcrow dice calculator.

This package contains the roll engine, the reroll and state-effect
mechanics, the transform pipeline, combat resolution and the Monte Carlo
aggregator.
"""
