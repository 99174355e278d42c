"""Typed client for the Chill Gamer REST endpoints."""

from collections.abc import Callable
from typing import Any, TypeVar
from urllib.parse import quote

import structlog

from ..models import Game, Review, ReviewDraft, Session, WatchlistItem, WatchlistSnapshot
from .errors import DuplicateConstraintError, NetworkError, NotFoundError, StaleReferenceError
from .http_client import HttpClientService

log = structlog.stdlib.get_logger()

T = TypeVar("T")

ALL_GENRES = "all"


def build_search_params(query: str | None, genre: str | None, min_rating: float | None) -> dict[str, str]:
    """Query parameters for /search/reviews; inactive filters are left out."""
    params: dict[str, str] = {}
    if query and query.strip():
        params["q"] = query.strip()
    if genre and genre != ALL_GENRES:
        params["genre"] = genre
    if min_rating and min_rating > 0:
        value = float(min_rating)
        params["minRating"] = str(int(value)) if value.is_integer() else repr(value)
    return params


def _path_segment(value: str) -> str:
    return quote(value, safe="@")


class CatalogApiClient:
    """One method per endpoint. Responses are parsed into model objects.

    Every method raises `NetworkError` on failure. A response that does not
    parse into the expected shape is also reported as a `NetworkError`.
    Status codes with a specific meaning are re-raised as
    `DuplicateConstraintError` (409 on watchlist add), `StaleReferenceError`
    (404 on watchlist remove) or `NotFoundError` (404 on review lookup).
    """

    def __init__(self, http_client: HttpClientService) -> None:
        self._http = http_client

    # Games

    async def get_games(self) -> list[Game]:
        data = await self._http.get_json("/games")
        return self._parse_list(data, Game.from_dict, "/games")

    async def get_genres(self) -> list[str]:
        data = await self._http.get_json("/genres")
        if not isinstance(data, list):
            raise NetworkError("The server sent an unexpected genre list.", url="/genres")
        return [str(g) for g in data if g]

    # Reviews

    async def get_reviews(self) -> list[Review]:
        data = await self._http.get_json("/reviews")
        return self._parse_list(data, Review.from_dict, "/reviews")

    async def get_highest_rated_reviews(self) -> list[Review]:
        data = await self._http.get_json("/reviews/highest-rated")
        return self._parse_list(data, Review.from_dict, "/reviews/highest-rated")

    async def get_review(self, review_id: str) -> Review:
        path = f"/reviews/{_path_segment(review_id)}"
        try:
            data = await self._http.get_json(path)
        except NetworkError as e:
            if e.status_code == 404:
                raise NotFoundError("Review not found", entity="Review", entity_id=review_id) from e
            raise
        if data is None:
            raise NotFoundError("Review not found", entity="Review", entity_id=review_id)
        return self._parse_one(data, Review.from_dict, path)

    async def get_user_reviews(self, email: str) -> list[Review]:
        path = f"/reviews/user/{_path_segment(email)}"
        data = await self._http.get_json(path)
        return self._parse_list(data, Review.from_dict, path)

    async def create_review(self, draft: ReviewDraft) -> Review:
        data = await self._http.post_json("/reviews", draft.to_payload())
        return self._parse_one(data, Review.from_dict, "/reviews")

    async def update_review(self, review_id: str, changes: dict[str, Any]) -> Review:
        path = f"/reviews/{_path_segment(review_id)}"
        data = await self._http.put_json(path, changes)
        return self._parse_one(data, Review.from_dict, path)

    async def delete_review(self, review_id: str) -> None:
        await self._http.delete(f"/reviews/{_path_segment(review_id)}")

    async def search_reviews(
        self,
        query: str | None = None,
        genre: str | None = None,
        min_rating: float | None = None,
    ) -> list[Review]:
        params = build_search_params(query, genre, min_rating)
        data = await self._http.get_json("/search/reviews", params=params)
        return self._parse_list(data, Review.from_dict, "/search/reviews")

    # Watchlist

    async def get_watchlist(self, email: str) -> list[WatchlistItem]:
        path = f"/watchlist/{_path_segment(email)}"
        data = await self._http.get_json(path)
        return self._parse_list(data, WatchlistItem.from_dict, path)

    async def add_to_watchlist(self, snapshot: WatchlistSnapshot, session: Session) -> WatchlistItem:
        """POST a watchlist entry.

        Raises:
            DuplicateConstraintError: The server answered 409
            NetworkError: Any other failure
        """
        payload = snapshot.to_payload(user_email=session.user_email or "", user_name=session.user_name)
        try:
            data = await self._http.post_json("/watchlist", payload)
        except NetworkError as e:
            if e.status_code == 409:
                log.info("Watchlist add rejected as duplicate", game_title=snapshot.game_title)
                raise DuplicateConstraintError(
                    "Already in watchlist",
                    game_title=snapshot.game_title,
                    url=e.url,
                ) from e
            raise
        return self._parse_one(data, WatchlistItem.from_dict, "/watchlist")

    async def remove_from_watchlist(self, item_id: str) -> None:
        """DELETE a watchlist entry.

        Raises:
            StaleReferenceError: The server no longer has the item (404)
            NetworkError: Any other failure
        """
        try:
            await self._http.delete(f"/watchlist/{_path_segment(item_id)}")
        except NetworkError as e:
            if e.status_code == 404:
                raise StaleReferenceError(
                    "That watchlist entry no longer exists",
                    entity_id=item_id,
                    url=e.url,
                ) from e
            raise

    @staticmethod
    def _parse_list(data: Any, parse: Callable[[Any], T], path: str) -> list[T]:
        if not isinstance(data, list):
            log.warning("Expected a JSON array", path=path, got=type(data).__name__)
            raise NetworkError("The server sent an unexpected response.", url=path)
        try:
            return [parse(item) for item in data]
        except ValueError as e:
            log.warning("Malformed entity in response", path=path, error=str(e))
            raise NetworkError("The server sent an unexpected response.", original_error=e, url=path) from e

    @staticmethod
    def _parse_one(data: Any, parse: Callable[[Any], T], path: str) -> T:
        try:
            return parse(data)
        except ValueError as e:
            log.warning("Malformed entity in response", path=path, error=str(e))
            raise NetworkError("The server sent an unexpected response.", original_error=e, url=path) from e
