"""Translate JSON localisation files while keeping markup and placeholders intact."""

__version__ = "0.1.0"
