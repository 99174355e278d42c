"""Reviews browser with genre and minimum rating filters."""

from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Button, DataTable, Input, Select, Static

import structlog

from chill_gamer.models import Review
from chill_gamer.services.query import (
    ALL,
    MIN_RATING_CHOICES,
    REVIEWS,
    classify_rating,
    clear_filters,
    derive_view,
    review_filters,
)

from .base import BaseScreen

log = structlog.stdlib.get_logger()


def review_row(review: Review) -> tuple[str, ...]:
    band = classify_rating(review.rating)
    created = review.created_at.strftime("%Y-%m-%d") if review.created_at else "-"
    return (
        review.game_title[:40],
        review.genre,
        f"[{band.color}]{review.rating:g}[/]",
        review.user_name[:20],
        created,
    )


def review_genres(reviews: list[Review]) -> list[str]:
    seen: dict[str, None] = {}
    for review in reviews:
        if review.genre:
            seen.setdefault(review.genre, None)
    return list(seen)


class ReviewsScreen(BaseScreen):
    """All reviews, filtered locally from the loaded snapshot."""

    SCREEN_TITLE: ClassVar[str] = "All Reviews"
    SCREEN_NAME: ClassVar[str] = "reviews"

    CSS: ClassVar[str] = """
    #reviews-container {
        width: 100%;
        height: 100%;
        padding: 1 2;
    }

    #review-filter-row {
        height: 3;
    }

    #review-search {
        width: 2fr;
    }

    #review-filter-row Select, #review-filter-row Button {
        width: 1fr;
        margin-left: 1;
    }

    #review-stats {
        color: $text-muted;
        height: 1;
    }

    #review-table {
        height: 1fr;
    }

    #review-detail {
        height: auto;
        max-height: 12;
        padding: 1;
        border: solid $secondary;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "go_back", "Back", show=True),
        Binding("f", "focus_search", "Search", show=True),
        Binding("c", "clear_filters", "Clear", show=True),
        Binding("r", "refresh", "Refresh", show=True),
    ]

    _reviews: list[Review]
    _visible: list[Review]

    def __init__(self) -> None:
        super().__init__()
        self._reviews = []
        self._visible = []

    @override
    def compose(self) -> ComposeResult:
        sort_options = [(order.label, order.key) for order in REVIEWS.sort_orders]
        rating_options = [(label, str(value)) for value, label in MIN_RATING_CHOICES]
        with Container(id="reviews-container"):
            yield self.create_title_widget()
            with Horizontal(id="review-filter-row"):
                yield Input(placeholder="Search by game or review text...", id="review-search")
                yield Select([("All Genres", ALL)], value=ALL, allow_blank=False, id="review-genre-select")
                yield Select(rating_options, value="0", allow_blank=False, id="min-rating-select")
                yield Select(sort_options, value=REVIEWS.default_sort, allow_blank=False, id="review-sort-select")
                yield Button("Clear", id="btn-clear-reviews")
            yield Static("", id="review-stats")
            yield DataTable(id="review-table", cursor_type="row")
            yield Static("Select a review to read it.", id="review-detail")

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        self.query_one("#review-table", DataTable).add_columns("Game", "Genre", "Rating", "Reviewer", "Posted")
        context = self.chill_app.app_context
        if context is not None:
            self.query_one("#review-sort-select", Select).value = context.config.default_review_sort
        self.watch(self.chill_app, "app_state", self._on_app_state, init=True)

    def _on_app_state(self) -> None:
        snapshot = self.chill_app.app_state.snapshot
        reviews = list(snapshot.reviews) if snapshot else []
        if reviews == self._reviews and self._reviews:
            return
        self._reviews = reviews
        self.query_one("#review-genre-select", Select).set_options(
            [("All Genres", ALL)] + [(g, g) for g in review_genres(reviews)]
        )
        self._apply_filters()

    def _apply_filters(self) -> None:
        filters = review_filters(
            text=self.query_one("#review-search", Input).value,
            genre=str(self.query_one("#review-genre-select", Select).value),
            min_rating=float(str(self.query_one("#min-rating-select", Select).value)),
        )
        sort_key = str(self.query_one("#review-sort-select", Select).value)
        self._visible = derive_view(self._reviews, filters, sort_key, REVIEWS)

        table = self.query_one("#review-table", DataTable)
        table.clear()
        for review in self._visible:
            table.add_row(*review_row(review), key=review.id)
        self.query_one("#review-stats", Static).update(
            f"Showing {len(self._visible)} of {len(self._reviews)} reviews"
        )

    async def _show_details(self, review_id: str) -> None:
        result = await self.context.reviews.review_details(review_id)
        if not result.ok:
            self.show_failure(result)
            return
        review = result.value.review
        band = classify_rating(review.rating)
        related = ", ".join(r.game_title for r in result.value.related) or "none"
        self.query_one("#review-detail", Static).update(
            f"[b]{review.game_title}[/b] ({review.year}) - [{band.color}]{review.rating:g}/5 {band.label}[/]\n"
            f"{review.description}\n"
            f"by {review.user_name or review.user_email}\n"
            f"Related: {related}"
        )

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-clear-reviews":
            self.action_clear_filters()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "review-search":
            self._apply_filters()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id in ("review-genre-select", "min-rating-select", "review-sort-select"):
            self._apply_filters()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self.start_work(self._show_details(str(event.row_key.value)), "review-detail", exclusive=True)

    def action_focus_search(self) -> None:
        self.query_one("#review-search", Input).focus()

    def action_clear_filters(self) -> None:
        filters, sort_key = clear_filters(REVIEWS)
        self.query_one("#review-search", Input).value = filters.text
        self.query_one("#review-genre-select", Select).value = ALL
        self.query_one("#min-rating-select", Select).value = "0"
        self.query_one("#review-sort-select", Select).value = sort_key
        self._apply_filters()

    async def action_refresh(self) -> None:
        if await self.chill_app.reload_catalog():
            self.notify_success("Reviews refreshed")
