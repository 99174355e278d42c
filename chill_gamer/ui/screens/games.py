"""Games browser: live filtering, sorting and watchlist toggling."""

from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Input, Select, Static

import structlog

from chill_gamer.models import Game, WatchlistSnapshot
from chill_gamer.services.query import (
    ALL,
    GAMES,
    classify_rating,
    clear_filters,
    derive_view,
    filter_options,
    format_price,
    game_filters,
)
from chill_gamer.services.watchlist import MembershipState

from .base import BaseScreen

log = structlog.stdlib.get_logger()


def game_row(game: Game) -> tuple[str, ...]:
    band = classify_rating(game.rating)
    return (
        game.title[:40],
        game.developer[:24],
        ", ".join(game.genre),
        str(game.release_year or "-"),
        f"[{band.color}]{game.rating:.1f}[/]",
        format_price(game.price),
    )


def toggle_label(state: MembershipState) -> str:
    labels = {
        MembershipState.MEMBER: "Remove from Watchlist",
        MembershipState.ADDING: "Adding...",
        MembershipState.REMOVING: "Removing...",
        MembershipState.CHECKING: "Checking...",
    }
    return labels.get(state, "Add to Watchlist")


class GamesScreen(BaseScreen):
    """All games, narrowed by text, genre and platform, in the chosen order."""

    SCREEN_TITLE: ClassVar[str] = "All Games"
    SCREEN_NAME: ClassVar[str] = "games"

    CSS: ClassVar[str] = """
    #games-container {
        width: 100%;
        height: 100%;
        padding: 1 2;
    }

    #filter-row {
        height: 3;
    }

    #game-search {
        width: 2fr;
    }

    #filter-row Select {
        width: 1fr;
        margin-left: 1;
    }

    #game-stats {
        color: $text-muted;
        height: 1;
    }

    #game-table {
        height: 1fr;
    }

    #game-details {
        height: auto;
        padding: 1;
        border: solid $secondary;
        display: none;
    }

    #game-details.has-selection {
        display: block;
    }

    #game-buttons {
        height: auto;
        margin-top: 1;
    }

    #game-buttons Button {
        margin-right: 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "go_back", "Back", show=True),
        Binding("f", "focus_search", "Search", show=True),
        Binding("c", "clear_filters", "Clear", show=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("w", "toggle_watchlist", "Watchlist", show=True),
    ]

    _games: list[Game]
    _visible: list[Game]
    _selected: Game | None

    def __init__(self) -> None:
        super().__init__()
        self._games = []
        self._visible = []
        self._selected = None

    @override
    def compose(self) -> ComposeResult:
        sort_options = [(order.label, order.key) for order in GAMES.sort_orders]
        with Container(id="games-container"):
            yield self.create_title_widget()
            with Horizontal(id="filter-row"):
                yield Input(placeholder="Search by title or developer...", id="game-search")
                yield Select([("All Genres", ALL)], value=ALL, allow_blank=False, id="genre-select")
                yield Select([("All Platforms", ALL)], value=ALL, allow_blank=False, id="platform-select")
                yield Select(sort_options, value=GAMES.default_sort, allow_blank=False, id="sort-select")
            yield Static("", id="game-stats")
            yield DataTable(id="game-table", cursor_type="row")
            with Vertical(id="game-details"):
                yield Static("", id="game-detail-text")
                with Horizontal(id="game-buttons"):
                    yield Button("Add to Watchlist", id="btn-toggle", variant="primary", disabled=True)
                    yield Button("Clear Filters", id="btn-clear")

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        table = self.query_one("#game-table", DataTable)
        table.add_columns("Title", "Developer", "Genre", "Year", "Rating", "Price")
        config = self.chill_app.app_context.config if self.chill_app.app_context else None
        if config is not None:
            self.query_one("#sort-select", Select).value = config.default_game_sort
        self.watch(self.chill_app, "app_state", self._on_app_state, init=True)

    def _on_app_state(self) -> None:
        snapshot = self.chill_app.app_state.snapshot
        games = list(snapshot.games) if snapshot else []
        if games == self._games and self._games:
            return
        self._games = games
        genres, platforms = filter_options(games)
        self.query_one("#genre-select", Select).set_options([("All Genres", ALL)] + [(g, g) for g in genres])
        self.query_one("#platform-select", Select).set_options([("All Platforms", ALL)] + [(p, p) for p in platforms])
        self._apply_filters()

    def _apply_filters(self) -> None:
        genre = self.query_one("#genre-select", Select).value
        platform = self.query_one("#platform-select", Select).value
        sort_key = self.query_one("#sort-select", Select).value
        filters = game_filters(
            text=self.query_one("#game-search", Input).value,
            genre=str(genre) if genre != Select.BLANK else ALL,
            platform=str(platform) if platform != Select.BLANK else ALL,
        )
        self._visible = derive_view(self._games, filters, str(sort_key), GAMES)

        table = self.query_one("#game-table", DataTable)
        table.clear()
        for game in self._visible:
            table.add_row(*game_row(game), key=game.id)
        self.query_one("#game-stats", Static).update(f"Showing {len(self._visible)} of {len(self._games)} games")

    def _show_details(self, game: Game) -> None:
        self._selected = game
        band = classify_rating(game.rating)
        self.query_one("#game-detail-text", Static).update(
            f"[b]{game.title}[/b] by {game.developer or 'unknown'}\n"
            f"{', '.join(game.genre)} | {', '.join(game.platforms)} | {game.release_year}\n"
            f"[{band.color}]{game.rating:.1f} {band.label}[/]  {format_price(game.price)}\n"
            f"{game.description}"
        )
        self.query_one("#game-details", Vertical).add_class("has-selection")
        self._refresh_toggle()
        session = self.chill_app.session
        if session.is_authenticated and self.context.watchlist.state_of(session, game.title) == MembershipState.IDLE:
            self.start_work(self._check_membership(game), "membership")

    def _refresh_toggle(self) -> None:
        button = self.query_one("#btn-toggle", Button)
        if self._selected is None:
            button.disabled = True
            return
        session = self.chill_app.session
        state = self.context.watchlist.state_of(session, self._selected.title)
        button.label = toggle_label(state)
        button.disabled = self.context.watchlist.is_busy(session, self._selected.title)

    async def _check_membership(self, game: Game) -> None:
        self._refresh_toggle()
        result = await self.context.watchlist.check_membership(self.chill_app.session, game.title)
        if not result.ok:
            self.show_failure(result)
        self._refresh_toggle()

    async def _toggle(self, game: Game) -> None:
        self.query_one("#btn-toggle", Button).disabled = True
        result = await self.context.watchlist.toggle(self.chill_app.session, WatchlistSnapshot.from_game(game))
        if result.ok:
            if result.notice:
                self.notify_success(result.notice)
            elif result.value.is_member:
                self.notify_success(f"Added '{game.title}' to your watchlist")
            else:
                self.notify_success(f"Removed '{game.title}' from your watchlist")
        else:
            self.show_failure(result)
        self._refresh_toggle()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-toggle":
            await self.action_toggle_watchlist()
        elif event.button.id == "btn-clear":
            self.action_clear_filters()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "game-search":
            self._apply_filters()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id in ("genre-select", "platform-select", "sort-select"):
            self._apply_filters()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        game_id = str(event.row_key.value)
        for game in self._visible:
            if game.id == game_id:
                self._show_details(game)
                return
        log.warning("Selected game not found", game_id=game_id)

    def action_focus_search(self) -> None:
        self.query_one("#game-search", Input).focus()

    def action_clear_filters(self) -> None:
        filters, sort_key = clear_filters(GAMES)
        self.query_one("#game-search", Input).value = filters.text
        self.query_one("#genre-select", Select).value = ALL
        self.query_one("#platform-select", Select).value = ALL
        self.query_one("#sort-select", Select).value = sort_key
        self._apply_filters()

    async def action_refresh(self) -> None:
        if await self.chill_app.reload_catalog():
            self.notify_success("Games refreshed")

    async def action_toggle_watchlist(self) -> None:
        if self._selected is None:
            self.notify_warning("No game selected")
            return
        if self.context.watchlist.is_busy(self.chill_app.session, self._selected.title):
            return
        self.start_work(self._toggle(self._selected), "membership")
