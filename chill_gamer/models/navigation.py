"""Declarative navigation table."""

from collections.abc import Iterable
from dataclasses import dataclass

from .session import Capability


@dataclass(frozen=True)
class NavRoute:
    """A navigation entry and the capability required to see it."""
    path: str
    label: str
    capability: Capability
    screen: str | None = None  # Terminal UI screen name, None if the route has no screen


NAVIGATION: tuple[NavRoute, ...] = (
    NavRoute("/", "Home", Capability.PUBLIC),
    NavRoute("/games", "All Games", Capability.PUBLIC, screen="games"),
    NavRoute("/reviews", "All Reviews", Capability.PUBLIC, screen="reviews"),
    NavRoute("/trending", "Trending", Capability.PUBLIC),
    NavRoute("/community", "Community", Capability.PUBLIC),
    NavRoute("/add-review", "Add Review", Capability.AUTHENTICATED),
    NavRoute("/my-reviews", "My Reviews", Capability.AUTHENTICATED),
    NavRoute("/my-watchlist", "Watch List", Capability.AUTHENTICATED, screen="watchlist"),
    NavRoute("/search", "Search", Capability.AUTHENTICATED, screen="search"),
    NavRoute("/admin", "Admin", Capability.ADMIN),
)


def routes_for(
    capabilities: Iterable[Capability],
    table: Iterable[NavRoute] = NAVIGATION,
) -> list[NavRoute]:
    """Return the routes visible to a caller holding the given capabilities.

    Table order is preserved.
    """
    granted = set(capabilities)
    return [route for route in table if route.capability in granted]
