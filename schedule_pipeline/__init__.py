"""Season schedule PDF pipeline."""

__version__ = "0.1.0"
