"""Construction job costing engine."""

__version__ = "0.1.0"
