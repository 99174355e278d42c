"""Main menu screen built from the navigation table."""

from collections.abc import Iterable
from typing import ClassVar, override

from textual import events
from textual.app import ComposeResult
from textual.containers import Container, Vertical
from textual.widgets import Button, Static

import structlog

from chill_gamer.models import Capability, routes_for

from .base import BaseScreen

log = structlog.stdlib.get_logger()


def menu_options(capabilities: Iterable[Capability]) -> list[tuple[str, str, str]]:
    """(option id, label, target screen) for every visible route that has a screen."""
    options = []
    for route in routes_for(capabilities):
        if route.screen is None:
            continue
        options.append((route.screen, f"{len(options) + 1}. {route.label}", route.screen))
    return options


class MainMenuScreen(BaseScreen):
    """Entry screen listing the destinations the current session may reach."""

    SCREEN_TITLE: ClassVar[str] = "Main Menu"
    SCREEN_NAME: ClassVar[str] = "main_menu"

    CSS: ClassVar[str] = """
    MainMenuScreen {
        align: center middle;
    }

    #menu-container {
        width: 60;
        height: auto;
        padding: 2 4;
        border: solid $primary;
        background: $surface;
    }

    #menu-title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }

    #menu-subtitle {
        text-align: center;
        color: $text-muted;
        margin-bottom: 2;
    }

    .menu-button {
        width: 100%;
        margin-bottom: 1;
    }
    """

    @property
    def options(self) -> list[tuple[str, str, str]]:
        return menu_options(self.chill_app.session.capabilities)

    @override
    def compose(self) -> ComposeResult:
        session = self.chill_app.session
        with Container(id="menu-container"):
            yield Static("Chill Gamer", id="menu-title")
            yield Static(
                f"Signed in as {session.user_name}" if session.is_authenticated else "Browsing as guest",
                id="menu-subtitle",
            )
            with Vertical(id="menu-buttons"):
                for option_id, label, _ in self.options:
                    yield Button(label, id=f"btn-{option_id}", classes="menu-button")

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if not button_id:
            return

        option = button_id.removeprefix("btn-")
        for opt_id, _, target in self.options:
            if opt_id == option:
                log.info("Menu option selected", option=option, target=target)
                await self._navigate_to(target)
                return

        log.warning("Unknown menu option", button_id=button_id)

    async def on_key(self, event: events.Key) -> None:
        if event.character and event.character.isdigit():
            index = int(event.character) - 1
            options = self.options
            if 0 <= index < len(options):
                await self._navigate_to(options[index][2])

    async def _navigate_to(self, screen_name: str) -> None:
        await self.chill_app.push_screen_with_tracking(screen_name)

    @override
    async def action_go_back(self) -> None:
        """From the main menu, back quits the application."""
        log.info("Quit requested from main menu")
        self.chill_app.exit()
