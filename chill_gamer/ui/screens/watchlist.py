"""The signed-in user's watchlist."""

from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Button, DataTable, Static

import structlog

from chill_gamer.models import WatchlistItem
from chill_gamer.services.query import classify_rating, format_price

from .base import BaseScreen

log = structlog.stdlib.get_logger()


def watchlist_row(item: WatchlistItem) -> tuple[str, ...]:
    band = classify_rating(item.rating)
    added = item.added_at.strftime("%Y-%m-%d") if item.added_at else "-"
    return (
        item.game_title[:40],
        item.genre,
        f"[{band.color}]{item.rating:.1f}[/]",
        format_price(item.price),
        added,
    )


class WatchlistScreen(BaseScreen):
    """Watched games in the order they were added, with removal."""

    SCREEN_TITLE: ClassVar[str] = "Watch List"
    SCREEN_NAME: ClassVar[str] = "watchlist"

    CSS: ClassVar[str] = """
    #watchlist-container {
        width: 100%;
        height: 100%;
        padding: 1 2;
    }

    #watchlist-status {
        color: $text-muted;
        height: 1;
    }

    #watchlist-table {
        height: 1fr;
    }

    #watchlist-buttons {
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "go_back", "Back", show=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("delete", "remove_selected", "Remove", show=True),
    ]

    _items: list[WatchlistItem]

    def __init__(self) -> None:
        super().__init__()
        self._items = []

    @override
    def compose(self) -> ComposeResult:
        with Container(id="watchlist-container"):
            yield self.create_title_widget()
            yield Static("Loading...", id="watchlist-status")
            yield DataTable(id="watchlist-table", cursor_type="row")
            with Horizontal(id="watchlist-buttons"):
                yield Button("Remove Selected", id="btn-remove", variant="error")
                yield Button("Refresh", id="btn-refresh-watchlist")

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        self.query_one("#watchlist-table", DataTable).add_columns("Game", "Genre", "Rating", "Price", "Added")
        self.start_work(self._load(), "watchlist", exclusive=True)

    @override
    def on_screen_resume(self) -> None:
        super().on_screen_resume()
        self.start_work(self._load(), "watchlist", exclusive=True)

    async def _load(self) -> None:
        result = await self.context.watchlist.load_watchlist(self.chill_app.session)
        status = self.query_one("#watchlist-status", Static)
        if not result.ok:
            status.update("Watchlist unavailable.")
            self.show_failure(result)
            return
        self._items = result.value
        table = self.query_one("#watchlist-table", DataTable)
        table.clear()
        for item in self._items:
            table.add_row(*watchlist_row(item), key=item.id)
        status.update(f"{len(self._items)} games" if self._items else "Your watchlist is empty.")

    def _selected_item(self) -> WatchlistItem | None:
        table = self.query_one("#watchlist-table", DataTable)
        if not self._items or table.cursor_row < 0 or table.cursor_row >= len(self._items):
            return None
        return self._items[table.cursor_row]

    async def _remove(self, item: WatchlistItem) -> None:
        button = self.query_one("#btn-remove", Button)
        button.disabled = True
        try:
            result = await self.context.watchlist.remove_item(self.chill_app.session, item)
        finally:
            button.disabled = False
        if result.ok:
            self.notify_success(f"Removed '{item.game_title}' from your watchlist")
        else:
            self.show_failure(result)
        await self._load()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-remove":
            self.action_remove_selected()
        elif event.button.id == "btn-refresh-watchlist":
            self.action_refresh()

    def action_refresh(self) -> None:
        self.start_work(self._load(), "watchlist", exclusive=True)

    def action_remove_selected(self) -> None:
        item = self._selected_item()
        if item is None:
            self.notify_warning("No game selected")
            return
        self.start_work(self._remove(item), "watchlist-remove")
