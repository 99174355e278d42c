"""Chill Gamer: terminal client for browsing, searching and reviewing games."""

__version__ = "0.1.0"
