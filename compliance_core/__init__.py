"""Regulatory-record rollups for a building portfolio."""

__version__ = "1.0.0"
