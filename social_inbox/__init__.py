"""Social inbox permission service."""

__version__ = "1.0.0"
