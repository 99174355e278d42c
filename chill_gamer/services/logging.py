"""structlog setup for the Chill Gamer client.

Everything goes through the standard `logging` root logger so that httpx,
textual and our own structlog loggers share handlers. Log files are always
JSON lines; the console gets the coloured dev renderer unless
`CHILL_GAMER_ENV` is set to something other than "development".
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

ENV_VAR = "CHILL_GAMER_ENV"

MEGABYTE = 1024 * 1024


class LoggingService:
    """Owns the handler set on the root logger and the structlog pipeline.

    In `tui_mode` nothing is written to stdout, since Textual draws on it.
    """

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Path | None = None,
        tui_mode: bool = False,
    ) -> None:
        self.log_level = log_level.upper()
        self.log_dir = log_dir
        self.tui_mode = tui_mode
        self.is_development = os.getenv(ENV_VAR, "development") == "development"

    @property
    def numeric_level(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)

    def configure(self) -> None:
        self._install_handlers()
        structlog.configure(
            processors=self._processors(),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _install_handlers(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(self.numeric_level)

        plain = logging.Formatter("%(message)s")
        handlers: list[logging.Handler] = []
        if not self.tui_mode:
            handlers.append(self._with_level(logging.StreamHandler(sys.stdout), self.numeric_level))
        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(self._rotating("app.log", 10, 5, self.numeric_level))
            handlers.append(self._rotating("error.log", 5, 3, logging.ERROR))

        for handler in handlers:
            handler.setFormatter(plain)
            root.addHandler(handler)

        # httpx reports each request at INFO and HttpClientService already does
        logging.getLogger("httpx").setLevel(max(self.numeric_level, logging.WARNING))

    def _rotating(self, filename: str, size_mb: int, backups: int, level: int) -> logging.Handler:
        assert self.log_dir is not None
        handler = logging.handlers.RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=size_mb * MEGABYTE,
            backupCount=backups,
            encoding="utf-8",
        )
        return self._with_level(handler, level)

    @staticmethod
    def _with_level(handler: logging.Handler, level: int) -> logging.Handler:
        handler.setLevel(level)
        return handler

    def _processors(self) -> list[Any]:
        shared: list[Any] = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]
        console_only = not self.log_dir and not self.tui_mode
        if self.is_development and console_only:
            shared.append(structlog.dev.ConsoleRenderer(colors=True))
        else:
            shared.append(structlog.processors.JSONRenderer())
        return shared

    def get_logger(self, name: str | None = None) -> structlog.stdlib.BoundLogger:
        return structlog.stdlib.get_logger(name)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    environment: str | None = None,
    tui_mode: bool = False,
) -> LoggingService:
    """Configure logging for the whole process and return the service.

    `environment` overrides `CHILL_GAMER_ENV` when given.
    """
    if environment:
        os.environ[ENV_VAR] = environment

    service = LoggingService(log_level=log_level, log_dir=log_dir, tui_mode=tui_mode)
    service.configure()
    return service
