"""Screen components for the TUI application."""

from .base import BaseScreen
from .games import GamesScreen
from .main_menu import MainMenuScreen, menu_options
from .reviews import ReviewsScreen
from .search import SearchScreen
from .watchlist import WatchlistScreen

# Screen registry for navigation; names match NavRoute.screen
_SCREEN_REGISTRY: dict[str, type[BaseScreen]] = {
    "main_menu": MainMenuScreen,
    "games": GamesScreen,
    "reviews": ReviewsScreen,
    "search": SearchScreen,
    "watchlist": WatchlistScreen,
}


def get_screen_by_name(name: str) -> BaseScreen | None:
    """Get a new screen instance by its registered name, or None if unknown."""
    screen_class = _SCREEN_REGISTRY.get(name)
    if screen_class:
        return screen_class()
    return None


def register_screen(name: str, screen_class: type[BaseScreen]) -> None:
    _SCREEN_REGISTRY[name] = screen_class


def get_registered_screens() -> list[str]:
    return list(_SCREEN_REGISTRY.keys())


__all__ = [
    "BaseScreen",
    "GamesScreen",
    "MainMenuScreen",
    "ReviewsScreen",
    "SearchScreen",
    "WatchlistScreen",
    "get_registered_screens",
    "get_screen_by_name",
    "menu_options",
    "register_screen",
]
