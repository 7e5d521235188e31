"""Correlate Spark listener events with the notebook command that triggered them."""

__version__ = "0.1.0"
