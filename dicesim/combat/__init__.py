"""Combat resolution between two dice pools."""
