"""Domain layer for the jelly core."""
