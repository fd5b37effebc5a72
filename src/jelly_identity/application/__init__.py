"""Application layer for identity flows."""
