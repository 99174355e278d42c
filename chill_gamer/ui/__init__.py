"""Textual terminal UI for the Chill Gamer client."""

from .app import AppState, ChillGamerApp

__all__ = ["AppState", "ChillGamerApp"]
