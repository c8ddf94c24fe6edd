"""Automated generation and retrieval of small-body SPK files from JPL Horizons."""

__version__ = "0.1.0"
