"""Infrastructure adapters for the jelly core."""
