"""Shared behaviour for every Chill Gamer screen."""

import logging
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any, ClassVar

from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import Static
from textual.worker import Worker, WorkerState

import structlog

from chill_gamer.services.errors import ErrorHandlingService, ErrorSeverity, UserFriendlyError
from chill_gamer.services.result import Failure

if TYPE_CHECKING:
    from chill_gamer.main import ApplicationContext
    from chill_gamer.ui.app import ChillGamerApp

log = structlog.stdlib.get_logger()

_TOAST_LEVELS = {
    ErrorSeverity.INFO: ("information", logging.INFO),
    ErrorSeverity.WARNING: ("warning", logging.WARNING),
    ErrorSeverity.ERROR: ("error", logging.ERROR),
    ErrorSeverity.CRITICAL: ("error", logging.ERROR),
}


class BaseScreen(Screen[None]):
    """Escape goes back; failures become toasts.

    Screens start their I/O through `start_work`, so an exception escaping a
    worker is reported with `handle_exception` rather than ending the app.
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "go_back", "Back", show=True),
    ]

    SCREEN_TITLE: ClassVar[str] = "Screen"
    SCREEN_NAME: ClassVar[str] = "base"

    _is_active: bool

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name=name or self.SCREEN_NAME)
        self._is_active = False

    @property
    def chill_app(self) -> "ChillGamerApp":
        from chill_gamer.ui.app import ChillGamerApp

        if not isinstance(self.app, ChillGamerApp):
            raise RuntimeError("Screen is not attached to a ChillGamerApp")
        return self.app

    @property
    def context(self) -> "ApplicationContext":
        context = self.chill_app.app_context
        if context is None:
            raise RuntimeError("Application context is not available")
        return context

    async def on_mount(self) -> None:
        self._is_active = True
        log.info("Screen mounted", screen=self.SCREEN_NAME)

    async def on_unmount(self) -> None:
        self._is_active = False
        log.info("Screen unmounted", screen=self.SCREEN_NAME)

    def on_screen_resume(self) -> None:
        self._is_active = True

    def on_screen_suspend(self) -> None:
        self._is_active = False

    async def action_go_back(self) -> None:
        await self.chill_app.action_go_back()

    def create_title_widget(self, title: str | None = None) -> Static:
        return Static(title or self.SCREEN_TITLE, classes="title")

    def start_work(
        self,
        work: Coroutine[Any, Any, Any],
        group: str,
        exclusive: bool = False,
    ) -> Worker[Any]:
        return self.run_worker(work, name=group, group=group, exclusive=exclusive, exit_on_error=False)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        error = event.worker.error
        if event.state == WorkerState.ERROR and isinstance(error, Exception):
            self.handle_exception(error, event.worker.name)

    def _toast(self, message: str, severity: ErrorSeverity) -> None:
        toast, level = _TOAST_LEVELS[severity]
        self.notify(message, severity=toast)
        log.log(level, "User notification", message=message, screen=self.SCREEN_NAME)

    def notify_success(self, message: str) -> None:
        self._toast(message, ErrorSeverity.INFO)

    def notify_warning(self, message: str) -> None:
        self._toast(message, ErrorSeverity.WARNING)

    def show_failure(self, failure: Failure) -> None:
        self._toast(failure.message, failure.severity)

    def handle_exception(
        self,
        error: Exception,
        operation: str,
        context: dict[str, Any] | None = None,
    ) -> UserFriendlyError:
        """Classify and log `error`, then show its message as a toast.

        Falls back to a throwaway ErrorHandlingService when the app runs
        without an ApplicationContext.
        """
        app_context = self.chill_app.app_context
        service = app_context.error_service if app_context is not None else ErrorHandlingService()
        friendly = service.handle_error(error, operation, self.SCREEN_NAME, context)
        self._toast(service.create_user_message(friendly, include_suggestions=False), friendly.severity)
        return friendly
