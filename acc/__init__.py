"""Adaptive cruise control kernel and tooling."""

__version__ = "0.1.0"
