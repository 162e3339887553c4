"""Rollcall: rotating member selection with gather notifications."""

__version__ = "1.0.0"
