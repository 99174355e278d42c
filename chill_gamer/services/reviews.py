"""Review authoring and the signed-in user's reviews."""

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

import structlog

from ..models import Game, Review, ReviewDraft, Session
from .catalog_api import CatalogApiClient
from .errors import AppError, AuthenticationRequiredError, ErrorHandlingService, ValidationError
from .result import Result, Success, report_failure

log = structlog.stdlib.get_logger()

FALLBACK_GENRE = "Action"
RELATED_REVIEW_COUNT = 3
MIN_REVIEW_RATING = 1
MAX_REVIEW_RATING = 5


@dataclass(frozen=True)
class MyReviews:
    reviews: tuple[Review, ...]
    average_rating: float


@dataclass(frozen=True)
class ReviewDetails:
    review: Review
    related: tuple[Review, ...]


def validate_rating(rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, (int, float)):
        raise ValidationError("Rating must be a whole number", field="rating", value=rating)
    if isinstance(rating, float) and not rating.is_integer():
        raise ValidationError("Rating must be a whole number", field="rating", value=rating)
    if not MIN_REVIEW_RATING <= rating <= MAX_REVIEW_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_REVIEW_RATING} and {MAX_REVIEW_RATING}",
            field="rating",
            value=rating,
            constraints=[f"{MIN_REVIEW_RATING} <= rating <= {MAX_REVIEW_RATING}"],
        )
    return int(rating)


def validate_draft(draft: ReviewDraft) -> None:
    """Raise ValidationError when a required field is missing or the rating is out of range."""
    if not draft.game_title.strip():
        raise ValidationError("Please select a game", field="gameTitle")
    if not draft.description.strip():
        raise ValidationError("Please write a review", field="description")
    validate_rating(draft.rating)


def complete_draft(draft: ReviewDraft, session: Session, games: Sequence[Game] = ()) -> ReviewDraft:
    """Fill in reviewer identity and the fields derived from the reviewed game."""
    game = next((g for g in games if g.title == draft.game_title), None)
    genre = draft.genre or (game.primary_genre if game else None) or FALLBACK_GENRE
    cover = draft.game_cover or (game.cover_image if game else "")
    year = draft.year or (game.release_year if game and game.release_year else datetime.now().year)
    return replace(
        draft,
        game_title=draft.game_title.strip(),
        description=draft.description.strip(),
        genre=genre,
        game_cover=cover,
        year=year,
        user_email=session.user_email or "",
        user_name=session.user_name,
        user_photo=session.avatar_url,
    )


class ReviewService:
    """Create, read, update and delete reviews on behalf of a session."""

    def __init__(self, api: CatalogApiClient, error_service: ErrorHandlingService | None = None) -> None:
        self._api = api
        self._errors = error_service

    async def submit_review(
        self,
        session: Session,
        draft: ReviewDraft,
        games: Sequence[Game] = (),
    ) -> Result[Review]:
        """Validate and post a new review.

        Args:
            session: The reviewer; must be signed in
            draft: Fields entered by the user
            games: Known games, used to default the genre and cover

        Returns:
            Success with the stored review, or Failure(VALIDATION),
            Failure(AUTHENTICATION) or Failure(NETWORK)
        """
        try:
            self._require_session(session, "submit_review")
            validate_draft(draft)
            review = await self._api.create_review(complete_draft(draft, session, games))
        except AppError as e:
            return report_failure(e, self._errors, "submit_review", "ReviewService", context={"game_title": draft.game_title})

        log.info("Review submitted", review_id=review.id, game_title=review.game_title)
        return Success(review, notice="Review added successfully")

    async def my_reviews(self, session: Session) -> Result[MyReviews]:
        try:
            self._require_session(session, "my_reviews")
            reviews = await self._api.get_user_reviews(session.user_email or "")
        except AppError as e:
            return report_failure(e, self._errors, "my_reviews", "ReviewService", "Failed to load your reviews")

        average = round(sum(r.rating for r in reviews) / len(reviews), 1) if reviews else 0.0
        return Success(MyReviews(reviews=tuple(reviews), average_rating=average))

    async def review_details(self, review_id: str) -> Result[ReviewDetails]:
        """A review and up to three other reviews of the same genre."""
        try:
            review = await self._api.get_review(review_id)
        except AppError as e:
            return report_failure(e, self._errors, "review_details", "ReviewService", context={"review_id": review_id})

        try:
            everything = await self._api.get_reviews()
        except AppError as e:
            log.warning("Failed to load related reviews", review_id=review_id, error=e.message)
            return Success(ReviewDetails(review=review, related=()))

        related = [r for r in everything if r.genre == review.genre and r.id != review.id]
        return Success(ReviewDetails(review=review, related=tuple(related[:RELATED_REVIEW_COUNT])))

    async def update_review(self, session: Session, review_id: str, changes: dict[str, Any]) -> Result[Review]:
        """Send a partial update (camelCase keys as on the wire)."""
        try:
            self._require_session(session, "update_review")
            if "rating" in changes:
                validate_rating(changes["rating"])
            for key in ("gameTitle", "description"):
                if key in changes and not str(changes[key]).strip():
                    raise ValidationError(f"{key} cannot be empty", field=key)
            review = await self._api.update_review(review_id, changes)
        except AppError as e:
            return report_failure(e, self._errors, "update_review", "ReviewService", context={"review_id": review_id})

        log.info("Review updated", review_id=review_id, fields=sorted(changes))
        return Success(review, notice="Review updated")

    async def delete_review(self, session: Session, review_id: str) -> Result[None]:
        try:
            self._require_session(session, "delete_review")
            await self._api.delete_review(review_id)
        except AppError as e:
            return report_failure(e, self._errors, "delete_review", "ReviewService", "Failed to delete review")

        log.info("Review deleted", review_id=review_id)
        return Success(None, notice="Review deleted")

    @staticmethod
    def _require_session(session: Session, operation: str) -> None:
        if not session.is_authenticated:
            raise AuthenticationRequiredError(operation=operation)
