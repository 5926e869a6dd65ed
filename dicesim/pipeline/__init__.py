"""Post-roll and combat symbol transforms."""
