"""Breakout candidate scanner combining chart patterns with market signals."""

__version__ = "0.1.0"
