"""Application layer: use cases that coordinate domain objects and ports."""
