"""Review search with a local fallback when the search endpoint fails."""

from dataclasses import dataclass

import structlog

from ..models import Review
from .catalog_api import CatalogApiClient
from .errors import AppError, ErrorHandlingService, NetworkError
from .query import ALL, REVIEWS, derive_view, review_filters
from .result import Result, Success, report_failure

log = structlog.stdlib.get_logger()

DEFAULT_GENRES: tuple[str, ...] = ("Action", "Adventure", "RPG", "Strategy", "Sports")


def has_active_filters(query: str | None, genre: str | None, min_rating: float | None) -> bool:
    return bool((query and query.strip()) or (genre and genre != ALL) or (min_rating and min_rating > 0))


@dataclass(frozen=True)
class SearchResult:
    reviews: tuple[Review, ...]
    from_fallback: bool
    generation: int


class ReviewSearchService:
    """Runs review searches against the server, falling back to local filtering.

    The server's `/search/reviews` endpoint is tried first. When it fails for
    any reason the full `/reviews` collection is fetched and filtered with the
    Reviews predicate, which selects the same members the server would.

    Each call to `search` takes a new generation number. Presentation code
    should drop a completed result when `is_current(result.generation)` is
    False, since a newer search has been submitted in the meantime.
    """

    def __init__(self, api: CatalogApiClient, error_service: ErrorHandlingService | None = None) -> None:
        self._api = api
        self._errors = error_service
        self._generation = 0
        self._in_flight = 0

    @property
    def busy(self) -> bool:
        return self._in_flight > 0

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def search(
        self,
        query: str = "",
        genre: str = ALL,
        min_rating: float = 0,
    ) -> Result[SearchResult]:
        """Search reviews.

        Args:
            query: Free text matched against game title and description
            genre: Genre name or "all"
            min_rating: Minimum rating, 0 for any

        Returns:
            Success with the matching reviews, or Failure(NETWORK) when both
            the search endpoint and the fallback fetch failed
        """
        self._generation += 1
        generation = self._generation
        self._in_flight += 1
        log.info(
            "Searching reviews",
            query=query,
            genre=genre,
            min_rating=min_rating,
            generation=generation,
        )
        try:
            try:
                reviews = await self._api.search_reviews(query, genre, min_rating)
                log.info("Search completed", results=len(reviews), generation=generation)
                return Success(SearchResult(tuple(reviews), from_fallback=False, generation=generation))
            except NetworkError as e:
                log.warning(
                    "Search endpoint failed, filtering locally",
                    error=e.message,
                    status_code=e.status_code,
                    generation=generation,
                )

            try:
                everything = await self._api.get_reviews()
            except AppError as e:
                return report_failure(e, self._errors, "search_reviews", "ReviewSearchService", "Failed to search reviews")

            # No sort key: the fallback keeps collection order
            matched = derive_view(everything, review_filters(query, genre, min_rating), None, REVIEWS)
            log.info(
                "Fallback search completed",
                results=len(matched),
                total=len(everything),
                generation=generation,
            )
            return Success(SearchResult(tuple(matched), from_fallback=True, generation=generation))
        finally:
            self._in_flight -= 1

    async def genres(self) -> list[str]:
        """Genres for the search selector, or the built-in list if the request fails."""
        try:
            genres = await self._api.get_genres()
        except NetworkError as e:
            log.warning("Failed to load genres, using defaults", error=e.message)
            return list(DEFAULT_GENRES)
        return genres or list(DEFAULT_GENRES)
