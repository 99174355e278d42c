"""Catalog reads: snapshots, game details and trending lists."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from ..models import CatalogSnapshot, Game, Review
from .catalog_api import CatalogApiClient
from .errors import AppError, ErrorHandlingService, NetworkError, NotFoundError
from .query import GAMES, FilterSpec, derive_view
from .result import Result, Success, report_failure
from .search import DEFAULT_GENRES

log = structlog.stdlib.get_logger()

TRENDING_GAME_COUNT = 6


@dataclass(frozen=True)
class GameDetails:
    game: Game
    reviews: tuple[Review, ...]


@dataclass(frozen=True)
class Trending:
    reviews: tuple[Review, ...]
    games: tuple[Game, ...]


class CatalogService:
    """Read-only access to games and reviews."""

    def __init__(self, api: CatalogApiClient, error_service: ErrorHandlingService | None = None) -> None:
        self._api = api
        self._errors = error_service

    async def load_snapshot(self) -> Result[CatalogSnapshot]:
        """Fetch games and reviews together into one snapshot."""
        try:
            games, reviews = await asyncio.gather(self._api.get_games(), self._api.get_reviews())
        except AppError as e:
            return report_failure(e, self._errors, "load_snapshot", "CatalogService", "Failed to load the catalog")

        snapshot = CatalogSnapshot(
            games=tuple(games),
            reviews=tuple(reviews),
            fetched_at=datetime.now(timezone.utc),
        )
        log.info("Catalog snapshot loaded", games=len(games), reviews=len(reviews))
        return Success(snapshot)

    async def find_game(self, game_id: str) -> Result[Game]:
        """Look a game up by id in the full games collection."""
        try:
            games = await self._api.get_games()
            for game in games:
                if game.id == game_id:
                    return Success(game)
            raise NotFoundError("Game not found", entity="Game", entity_id=game_id)
        except AppError as e:
            return report_failure(e, self._errors, "find_game", "CatalogService", context={"game_id": game_id})

    async def game_details(self, game_id: str) -> Result[GameDetails]:
        """A game together with every review whose title matches it exactly."""
        found = await self.find_game(game_id)
        if not found.ok:
            return found
        game = found.value

        try:
            reviews = await self._api.get_reviews()
        except AppError as e:
            return report_failure(
                e,
                self._errors,
                "game_details",
                "CatalogService",
                "Failed to load reviews for this game",
                {"game_id": game_id},
            )

        matching = tuple(review for review in reviews if review.game_title == game.title)
        log.debug("Game details loaded", game_id=game_id, reviews=len(matching))
        return Success(GameDetails(game=game, reviews=matching))

    async def trending(self) -> Result[Trending]:
        """Highest-rated reviews from the server plus the top rated games."""
        try:
            reviews, games = await asyncio.gather(
                self._api.get_highest_rated_reviews(),
                self._api.get_games(),
            )
        except AppError as e:
            return report_failure(e, self._errors, "trending", "CatalogService", "Failed to load trending games")

        top_games = derive_view(games, FilterSpec(), "highest-rated", GAMES)[:TRENDING_GAME_COUNT]
        return Success(Trending(reviews=tuple(reviews), games=tuple(top_games)))

    async def genres(self) -> list[str]:
        try:
            genres = await self._api.get_genres()
        except NetworkError as e:
            log.warning("Failed to load genres, using defaults", error=e.message)
            return list(DEFAULT_GENRES)
        return genres or list(DEFAULT_GENRES)
