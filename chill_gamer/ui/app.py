"""The Textual app: screen stack, session tracking and the catalog snapshot."""

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, ClassVar, override

from textual.app import App, ComposeResult
from textual.binding import Binding, BindingType
from textual.reactive import reactive
from textual.widgets import Footer, Header

import structlog

from chill_gamer.models import ANONYMOUS, CatalogSnapshot, Session

if TYPE_CHECKING:
    from chill_gamer.main import ApplicationContext

log = structlog.stdlib.get_logger()


@dataclass(frozen=True)
class AppState:
    """Application state shared by every screen."""
    snapshot: CatalogSnapshot | None = None
    session: Session = ANONYMOUS
    loading: bool = False
    generation: int = 0  # Bumped per catalog reload; older completions are discarded


class ChillGamerApp(App[None]):
    """Root Textual application: owns navigation and the shared catalog snapshot."""

    CSS: ClassVar[str] = """
    Screen {
        background: $surface;
    }

    .title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }
    """

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("q", "quit", "Quit", show=True, priority=True),
        Binding("escape", "go_back", "Back", show=True),
        Binding("?", "show_help", "Help", show=True),
    ]

    app_state: reactive[AppState] = reactive(AppState, init=False)

    _app_context: "ApplicationContext | None"
    _navigation_stack: list[str]
    _unsubscribe: Any

    def __init__(self, context: "ApplicationContext | None" = None) -> None:
        super().__init__()
        self.title = "Chill Gamer"  # type: ignore[assignment]
        self.sub_title = "Game reviews and watchlist"  # type: ignore[assignment]
        self._app_context = context
        self._navigation_stack = []
        self._unsubscribe = None
        session = context.session if context is not None else ANONYMOUS
        self.app_state = AppState(session=session)

    @property
    def app_context(self) -> "ApplicationContext | None":
        return self._app_context

    @property
    def session(self) -> Session:
        return self.app_state.session

    @property
    def navigation_stack(self) -> list[str]:
        return self._navigation_stack.copy()

    @override
    def compose(self) -> ComposeResult:
        yield Header()
        yield Footer()

    async def on_mount(self) -> None:
        if self._app_context is not None:
            self._unsubscribe = self._app_context.session_provider.subscribe(self._on_session_changed)
        await self.push_screen_with_tracking("main_menu")
        if self._app_context is not None:
            self.run_worker(self.reload_catalog(), exclusive=True, group="catalog")

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()

    def _on_session_changed(self, session: Session) -> None:
        self.app_state = replace(self.app_state, session=session)
        log.info("Session changed", user=session.user_email)

    async def reload_catalog(self) -> bool:
        """Fetch a fresh snapshot. Returns False when the load failed or was superseded."""
        if self._app_context is None:
            return False

        generation = self.app_state.generation + 1
        self.app_state = replace(self.app_state, loading=True, generation=generation)
        result = await self._app_context.catalog.load_snapshot()

        if generation != self.app_state.generation:
            log.debug("Discarding superseded catalog load", generation=generation)
            return False

        if not result.ok:
            self.app_state = replace(self.app_state, loading=False)
            self.notify(result.message, severity="error")
            return False

        self.app_state = replace(self.app_state, snapshot=result.value, loading=False)
        log.info("Catalog loaded", games=len(result.value.games), reviews=len(result.value.reviews))
        return True

    async def push_screen_with_tracking(self, screen_name: str) -> None:
        """Push a screen by registry name and track it in the navigation stack."""
        from chill_gamer.ui.screens import get_screen_by_name

        screen = get_screen_by_name(screen_name)
        if screen is None:
            log.warning("No screen registered under that name", screen=screen_name)
            return
        self._navigation_stack.append(screen_name)
        await self.push_screen(screen)
        log.info("Screen opened", screen=screen_name, depth=len(self._navigation_stack))

    async def action_go_back(self) -> None:
        if len(self._navigation_stack) <= 1:
            log.debug("Back ignored at root screen")
            return
        current = self._navigation_stack.pop()
        _ = self.pop_screen()
        log.info("Back", left=current, depth=len(self._navigation_stack))

    async def action_show_help(self) -> None:
        self.notify("Press 'q' to quit, 'escape' to go back, 'r' to refresh a list")
