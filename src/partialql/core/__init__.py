"""Core domain layer for partialql."""
