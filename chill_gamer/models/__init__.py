"""Data models for the Chill Gamer client."""

from .catalog import CatalogSnapshot, Game, Review, ReviewDraft, WatchlistItem, WatchlistSnapshot
from .config import AppConfig
from .navigation import NAVIGATION, NavRoute, routes_for
from .session import ANONYMOUS, Capability, Session, SessionProvider

__all__ = [
    "ANONYMOUS",
    "AppConfig",
    "Capability",
    "CatalogSnapshot",
    "Game",
    "NAVIGATION",
    "NavRoute",
    "Review",
    "ReviewDraft",
    "Session",
    "SessionProvider",
    "WatchlistItem",
    "WatchlistSnapshot",
    "routes_for",
]
