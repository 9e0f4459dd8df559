"""Structural turn-restriction expansion for transport network tables."""

__version__ = "0.1.0"
