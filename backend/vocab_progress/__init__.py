"""Review scheduling and league progression engine."""

__version__ = "0.1.0"
