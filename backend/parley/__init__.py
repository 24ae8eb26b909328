"""Parley: a facilitated two-expert debate engine."""

__version__ = "1.0.0"
