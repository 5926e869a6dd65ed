"""User interface module for the dice simulator."""
