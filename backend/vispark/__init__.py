"""Vispark: streaming YouTube video summaries."""

__version__ = "0.1.0"
