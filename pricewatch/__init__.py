"""Price alert evaluation and proximity tracking engine."""

__version__ = "1.0.0"
