"""Tests for entity parsing, snapshots and the session provider."""

from datetime import datetime, timezone

import pytest

from chill_gamer.models import (
    ANONYMOUS,
    Capability,
    Game,
    Review,
    ReviewDraft,
    Session,
    SessionProvider,
    WatchlistItem,
    WatchlistSnapshot,
)
from chill_gamer.models.catalog import parse_timestamp

from fake_server import GAMES, REVIEWS


class TestEntityParsing:

    def test_game_from_api_document(self) -> None:
        game = Game.from_dict(GAMES[2])
        assert game.title == "Fortnite"
        assert game.genre == ("Action", "Shooter")
        assert game.primary_genre == "Action"
        assert game.is_free
        assert Game.from_dict(game.to_dict()) == game

    def test_lenient_numeric_fields(self) -> None:
        game = Game.from_dict({"_id": "x", "title": "X", "rating": "4.5", "price": None, "releaseYear": "2020", "genre": "RPG"})
        assert (game.rating, game.price, game.release_year, game.genre) == (4.5, 0.0, 2020, ("RPG",))
        assert Game.from_dict({"_id": "y", "title": "Y", "rating": True}).rating == 0.0

    @pytest.mark.parametrize(
        "payload",
        [{"title": "No id"}, {"_id": "", "title": "Empty id"}, {"_id": "x"}, ["not", "a", "dict"], None],
    )
    def test_missing_required_fields_raise(self, payload) -> None:
        with pytest.raises(ValueError):
            Game.from_dict(payload)

    def test_review_timestamps(self) -> None:
        review = Review.from_dict(REVIEWS[0])
        assert review.created_at == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert Review.from_dict(REVIEWS[3]).created_at is None
        assert Review.from_dict(review.to_dict()) == review

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-01-02T03:04:05Z", datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
            ("2024-01-02T03:04:05", datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
            ("yesterday", None),
            ("", None),
            (1704164645, None),
        ],
    )
    def test_parse_timestamp(self, value, expected) -> None:
        assert parse_timestamp(value) == expected

    def test_watchlist_item_optional_fields(self) -> None:
        item = WatchlistItem.from_dict({"_id": "w1", "userEmail": "a@b.c", "gameTitle": "Y", "reviewId": "r1"})
        assert item.price is None
        assert item.release_year is None
        assert item.review_id == "r1"
        with pytest.raises(ValueError):
            WatchlistItem.from_dict({"_id": "w2", "userEmail": "a@b.c"})


class TestSnapshots:

    def test_review_draft_payload_uses_wire_names(self) -> None:
        payload = ReviewDraft(game_title="X", description="d", rating=3, user_email="a@b.c").to_payload()
        assert payload["gameTitle"] == "X"
        assert payload["userEmail"] == "a@b.c"
        assert "_id" not in payload and "createdAt" not in payload

    def test_snapshot_from_game_and_review_differ_in_fields(self) -> None:
        game = Game.from_dict(GAMES[0])
        from_game = WatchlistSnapshot.from_game(game).to_payload("a@b.c", "A")
        from_review = WatchlistSnapshot.from_review(Review.from_dict(REVIEWS[0])).to_payload("a@b.c", "A")

        assert from_game["genre"] == "RPG"
        assert {"price", "releaseYear", "platforms"} <= from_game.keys()
        assert "reviewId" not in from_game
        assert from_review["reviewId"] == "r1"
        assert not {"price", "releaseYear", "platforms"} & from_review.keys()

    def test_free_game_keeps_zero_price(self) -> None:
        payload = WatchlistSnapshot.from_game(Game.from_dict(GAMES[2])).to_payload("a@b.c", "A")
        assert payload["price"] == 0


class TestSession:

    def test_anonymous(self) -> None:
        assert not ANONYMOUS.is_authenticated
        assert ANONYMOUS.capabilities == frozenset({Capability.PUBLIC})
        assert ANONYMOUS.user_name == "anonymous"

    def test_display_name_and_avatar_fallbacks(self) -> None:
        session = Session(user_email="ana@example.com")
        assert session.user_name == "ana@example.com"
        assert "ui-avatars.com" in session.avatar_url
        assert Session(user_email="a@b.c", photo_url="p.png").avatar_url == "p.png"

    def test_provider_notifies_listeners(self) -> None:
        provider = SessionProvider()
        seen: list[Session] = []
        unsubscribe = provider.subscribe(seen.append)

        provider.sign_in("ana@example.com", display_name="Ana")
        provider.sign_out()
        unsubscribe()
        provider.sign_in("ben@example.com")

        assert [s.user_email for s in seen] == ["ana@example.com", None]
        assert provider.current.user_email == "ben@example.com"

    def test_sign_in_requires_email(self) -> None:
        with pytest.raises(ValueError):
            SessionProvider().sign_in("")

    def test_providers_are_independent(self) -> None:
        first, second = SessionProvider(), SessionProvider()
        first.sign_in("ana@example.com")
        assert not second.current.is_authenticated
