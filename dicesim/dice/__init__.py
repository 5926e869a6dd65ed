"""Dice mechanics: faces, rolls, rerolls and state effects."""
