"""Submit-only review search against the server."""

from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Button, DataTable, Input, Select, Static

import structlog

from chill_gamer.services.query import ALL, MIN_RATING_CHOICES
from chill_gamer.services.search import has_active_filters

from .base import BaseScreen
from .reviews import review_row

log = structlog.stdlib.get_logger()


class SearchScreen(BaseScreen):
    """Search reviews by text, genre and minimum rating.

    Searches only run when submitted. Results from a search that has since
    been superseded by a newer submission are discarded.
    """

    SCREEN_TITLE: ClassVar[str] = "Search Reviews"
    SCREEN_NAME: ClassVar[str] = "search"

    CSS: ClassVar[str] = """
    #search-container {
        width: 100%;
        height: 100%;
        padding: 1 2;
    }

    #search-row {
        height: 3;
    }

    #search-query {
        width: 2fr;
    }

    #search-row Select, #search-row Button {
        width: 1fr;
        margin-left: 1;
    }

    #search-status {
        color: $text-muted;
        height: 1;
    }

    #search-results {
        height: 1fr;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "go_back", "Back", show=True),
        Binding("f", "focus_search", "Search", show=True),
    ]

    @override
    def compose(self) -> ComposeResult:
        rating_options = [(label, str(value)) for value, label in MIN_RATING_CHOICES]
        with Container(id="search-container"):
            yield self.create_title_widget()
            with Horizontal(id="search-row"):
                yield Input(placeholder="Search reviews...", id="search-query")
                yield Select([("All Genres", ALL)], value=ALL, allow_blank=False, id="search-genre")
                yield Select(rating_options, value="0", allow_blank=False, id="search-min-rating")
                yield Button("Search", id="btn-search", variant="primary")
            yield Static("Enter a search and press Search.", id="search-status")
            yield DataTable(id="search-results", cursor_type="row")

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        self.query_one("#search-results", DataTable).add_columns("Game", "Genre", "Rating", "Reviewer", "Posted")
        self.start_work(self._load_genres(), "genres")

    async def _load_genres(self) -> None:
        genres = await self.context.search.genres()
        self.query_one("#search-genre", Select).set_options([("All Genres", ALL)] + [(g, g) for g in genres])

    def _submit(self) -> None:
        if self.context.search.busy:
            return
        query = self.query_one("#search-query", Input).value
        genre = str(self.query_one("#search-genre", Select).value)
        min_rating = float(str(self.query_one("#search-min-rating", Select).value))
        self.start_work(self._search(query, genre, min_rating), "search")

    async def _search(self, query: str, genre: str, min_rating: float) -> None:
        button = self.query_one("#btn-search", Button)
        status = self.query_one("#search-status", Static)
        button.disabled = True
        status.update("Searching...")
        try:
            result = await self.context.search.search(query, genre, min_rating)
        finally:
            button.disabled = False

        if result.ok and not self.context.search.is_current(result.value.generation):
            log.debug("Discarding stale search result", generation=result.value.generation)
            return

        table = self.query_one("#search-results", DataTable)
        table.clear()
        if not result.ok:
            status.update("No results.")
            self.show_failure(result)
            return

        for review in result.value.reviews:
            table.add_row(*review_row(review), key=review.id)
        scope = "matching" if has_active_filters(query, genre, min_rating) else "in total"
        source = " (filtered locally, search service unavailable)" if result.value.from_fallback else ""
        status.update(f"{len(result.value.reviews)} reviews {scope}{source}")

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-search":
            self._submit()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "search-query":
            self._submit()

    def action_focus_search(self) -> None:
        self.query_one("#search-query", Input).focus()
