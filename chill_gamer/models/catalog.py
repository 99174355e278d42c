"""Catalog entity models: games, reviews and watchlist items."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _require_mapping(data: Any, entity: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{entity} payload must be a JSON object, got {type(data).__name__}")
    return data


def _require_str(data: dict[str, Any], key: str, entity: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{entity} payload is missing '{key}'")
    return value


def _as_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, (float, str)):
        try:
            return int(float(value))
        except ValueError:
            return default
    return default


def _as_str_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value if v is not None)
    return ()


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp from the API into an aware datetime."""
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Game:
    """A game in the catalog. Read-only from the client's perspective."""
    id: str
    title: str
    developer: str = ""
    genre: tuple[str, ...] = ()  # First entry is the primary genre
    platforms: tuple[str, ...] = ()
    release_year: int = 0
    rating: float = 0.0  # 0.0-5.0
    price: float = 0.0  # 0 = free
    description: str = ""
    cover_image: str = ""

    @property
    def primary_genre(self) -> str | None:
        return self.genre[0] if self.genre else None

    @property
    def is_free(self) -> bool:
        return self.price == 0

    @classmethod
    def from_dict(cls, data: Any) -> "Game":
        payload = _require_mapping(data, "Game")
        return cls(
            id=_require_str(payload, "_id", "Game"),
            title=_require_str(payload, "title", "Game"),
            developer=str(payload.get("developer") or ""),
            genre=_as_str_tuple(payload.get("genre")),
            platforms=_as_str_tuple(payload.get("platforms")),
            release_year=_as_int(payload.get("releaseYear")),
            rating=_as_float(payload.get("rating")),
            price=_as_float(payload.get("price")),
            description=str(payload.get("description") or ""),
            cover_image=str(payload.get("coverImage") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "title": self.title,
            "developer": self.developer,
            "genre": list(self.genre),
            "platforms": list(self.platforms),
            "releaseYear": self.release_year,
            "rating": self.rating,
            "price": self.price,
            "description": self.description,
            "coverImage": self.cover_image,
        }


@dataclass(frozen=True)
class Review:
    """A user review, linked to a game by exact title only."""
    id: str
    game_title: str
    genre: str = ""
    rating: float = 0.0  # 0-5
    year: int = 0
    description: str = ""
    game_cover: str = ""
    user_email: str = ""
    user_name: str = ""
    user_photo: str = ""
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "Review":
        payload = _require_mapping(data, "Review")
        return cls(
            id=_require_str(payload, "_id", "Review"),
            game_title=_require_str(payload, "gameTitle", "Review"),
            genre=str(payload.get("genre") or ""),
            rating=_as_float(payload.get("rating")),
            year=_as_int(payload.get("year")),
            description=str(payload.get("description") or ""),
            game_cover=str(payload.get("gameCover") or ""),
            user_email=str(payload.get("userEmail") or ""),
            user_name=str(payload.get("userName") or ""),
            user_photo=str(payload.get("userPhoto") or ""),
            created_at=parse_timestamp(payload.get("createdAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "gameTitle": self.game_title,
            "genre": self.genre,
            "rating": self.rating,
            "year": self.year,
            "description": self.description,
            "gameCover": self.game_cover,
            "userEmail": self.user_email,
            "userName": self.user_name,
            "userPhoto": self.user_photo,
            "createdAt": format_timestamp(self.created_at),
        }


@dataclass(frozen=True)
class ReviewDraft:
    """Review fields as submitted by the authoring workflow (no id/createdAt)."""
    game_title: str
    description: str
    rating: int = 5
    year: int = 0
    genre: str = ""
    game_cover: str = ""
    user_email: str = ""
    user_name: str = ""
    user_photo: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "gameTitle": self.game_title,
            "gameCover": self.game_cover,
            "description": self.description,
            "rating": self.rating,
            "year": self.year,
            "genre": self.genre,
            "userEmail": self.user_email,
            "userName": self.user_name,
            "userPhoto": self.user_photo,
        }


@dataclass(frozen=True)
class WatchlistItem:
    """A (user, game title) membership record with a snapshot taken at add time."""
    id: str
    user_email: str
    game_title: str
    user_name: str = ""
    rating: float = 0.0
    genre: str = ""
    game_cover: str = ""
    price: float | None = None
    release_year: int | None = None
    platforms: tuple[str, ...] = ()
    review_id: str | None = None
    added_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "WatchlistItem":
        payload = _require_mapping(data, "WatchlistItem")
        price = payload.get("price")
        release_year = payload.get("releaseYear")
        review_id = payload.get("reviewId")
        return cls(
            id=_require_str(payload, "_id", "WatchlistItem"),
            user_email=str(payload.get("userEmail") or ""),
            game_title=_require_str(payload, "gameTitle", "WatchlistItem"),
            user_name=str(payload.get("userName") or ""),
            rating=_as_float(payload.get("rating")),
            genre=str(payload.get("genre") or ""),
            game_cover=str(payload.get("gameCover") or ""),
            price=_as_float(price) if price is not None else None,
            release_year=_as_int(release_year) if release_year is not None else None,
            platforms=_as_str_tuple(payload.get("platforms")),
            review_id=str(review_id) if review_id else None,
            added_at=parse_timestamp(payload.get("addedAt")),
        )


@dataclass(frozen=True)
class WatchlistSnapshot:
    """Denormalized game fields sent with a watchlist add request."""
    game_title: str
    game_cover: str = ""
    rating: float = 0.0
    genre: str = ""
    price: float | None = None
    release_year: int | None = None
    platforms: tuple[str, ...] = ()
    review_id: str | None = None

    @classmethod
    def from_game(cls, game: Game) -> "WatchlistSnapshot":
        return cls(
            game_title=game.title,
            game_cover=game.cover_image,
            rating=game.rating,
            genre=game.primary_genre or "",
            price=game.price,
            release_year=game.release_year,
            platforms=game.platforms,
        )

    @classmethod
    def from_review(cls, review: Review) -> "WatchlistSnapshot":
        return cls(
            game_title=review.game_title,
            game_cover=review.game_cover,
            rating=review.rating,
            genre=review.genre,
            review_id=review.id,
        )

    def to_payload(self, user_email: str, user_name: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "userEmail": user_email,
            "userName": user_name,
            "gameTitle": self.game_title,
            "gameCover": self.game_cover,
            "rating": self.rating,
            "genre": self.genre,
        }
        # Only the fields this entry point knows about are sent
        if self.price is not None:
            payload["price"] = self.price
        if self.release_year is not None:
            payload["releaseYear"] = self.release_year
        if self.platforms:
            payload["platforms"] = list(self.platforms)
        if self.review_id:
            payload["reviewId"] = self.review_id
        return payload


@dataclass(frozen=True)
class CatalogSnapshot:
    """One fetch of the catalog collections. Pure data holder."""
    games: tuple[Game, ...] = ()
    reviews: tuple[Review, ...] = ()
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
