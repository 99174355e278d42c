"""`chill-gamer` command: wires the services together and starts the TUI.

With `--no-tui` it prints a short catalog summary instead, which is handy
for checking a server from a script.
"""

import argparse
import asyncio
import signal
import sys
from dataclasses import dataclass, replace
from pathlib import Path

import httpx
import structlog

from chill_gamer.models import AppConfig, CatalogSnapshot, Session, SessionProvider
from chill_gamer.services.catalog import CatalogService, Trending
from chill_gamer.services.catalog_api import CatalogApiClient
from chill_gamer.services.config import VALID_LOG_LEVELS, ConfigurationService
from chill_gamer.services.errors import ErrorHandlingService
from chill_gamer.services.http_client import HttpClientService
from chill_gamer.services.logging import setup_logging
from chill_gamer.services.query import classify_rating, format_price
from chill_gamer.services.reviews import ReviewService
from chill_gamer.services.search import ReviewSearchService
from chill_gamer.services.watchlist import MembershipSynchronizer

log = structlog.stdlib.get_logger()

VERSION = "0.1.0"


class ApplicationContext:
    """Builds each service on first use and hands out the same instance after.

    All API-facing services share one `HttpClientService`; `cleanup` closes
    it and a later access opens a fresh one.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        log_level: str = "INFO",
        log_dir: Path | None = None,
        api_url: str | None = None,
        user_email: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config_path: Path | None = config_path
        self._log_level: str = log_level
        self._log_dir: Path | None = log_dir
        self._api_url: str | None = api_url
        self._user_email: str | None = user_email
        self._transport = transport

        self._config_service: ConfigurationService | None = None
        self._config: AppConfig | None = None
        self._session_provider: SessionProvider | None = None
        self._error_service: ErrorHandlingService | None = None
        self._http_client: HttpClientService | None = None
        self._api: CatalogApiClient | None = None
        self._catalog: CatalogService | None = None
        self._reviews: ReviewService | None = None
        self._search: ReviewSearchService | None = None
        self._watchlist: MembershipSynchronizer | None = None

        self._shutdown_requested: bool = False

    @property
    def config_service(self) -> ConfigurationService:
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self._config_path)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        """Config file plus environment, with a valid `--api-url` on top."""
        if self._config is None:
            config = self.config_service.load_config()
            if self._api_url:
                candidate = replace(config, api_base_url=self._api_url)
                validation = self.config_service.validate_config(candidate)
                if validation.is_valid:
                    config = candidate
                else:
                    log.warning("Ignoring invalid --api-url", errors=validation.errors)
            self._config = config
        return self._config

    @property
    def session_provider(self) -> SessionProvider:
        if self._session_provider is None:
            self._session_provider = SessionProvider()
            email = self._user_email or self.config.user_email
            if email:
                name = self.config.user_name if email == self.config.user_email else None
                self._session_provider.sign_in(email, display_name=name)
        return self._session_provider

    @property
    def session(self) -> Session:
        return self.session_provider.current

    @property
    def error_service(self) -> ErrorHandlingService:
        if self._error_service is None:
            self._error_service = ErrorHandlingService()
        return self._error_service

    @property
    def http_client(self) -> HttpClientService:
        if self._http_client is None:
            self._http_client = HttpClientService(
                base_url=self.config.api_base_url,
                timeout=self.config.request_timeout,
                transport=self._transport,
            )
        return self._http_client

    @property
    def api(self) -> CatalogApiClient:
        if self._api is None:
            self._api = CatalogApiClient(self.http_client)
        return self._api

    @property
    def catalog(self) -> CatalogService:
        if self._catalog is None:
            self._catalog = CatalogService(self.api, self.error_service)
        return self._catalog

    @property
    def reviews(self) -> ReviewService:
        if self._reviews is None:
            self._reviews = ReviewService(self.api, self.error_service)
        return self._reviews

    @property
    def search(self) -> ReviewSearchService:
        if self._search is None:
            self._search = ReviewSearchService(self.api, self.error_service)
        return self._search

    @property
    def watchlist(self) -> MembershipSynchronizer:
        if self._watchlist is None:
            self._watchlist = MembershipSynchronizer(self.api, self.error_service)
        return self._watchlist

    def request_shutdown(self) -> None:
        self._shutdown_requested = True
        log.info("Shutdown requested")

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    async def cleanup(self) -> None:
        """Close the HTTP client if one was opened."""
        if self._http_client is not None:
            await self._http_client.close()
            self._http_client = None
            log.debug("HTTP client closed")


@dataclass(frozen=True)
class ParsedArgs:
    config: Path | None
    log_level: str
    log_dir: Path | None
    api_url: str | None
    user: str | None
    no_tui: bool


def parse_arguments(argv: list[str] | None = None) -> ParsedArgs:
    """Parse `argv` (sys.argv[1:] when None); argparse exits on bad input."""
    parser = argparse.ArgumentParser(
        prog="chill-gamer",
        description="Browse, search and review games from a Chill Gamer server in your terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  chill-gamer                                  Start the TUI application
  chill-gamer --user me@example.com            Start signed in
  chill-gamer --no-tui                         Print a catalog summary and exit
  chill-gamer --api-url https://host/chill-gamer --log-level DEBUG
        """,
    )

    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ~/.config/chill-gamer/config.json)",
    )
    _ = parser.add_argument(
        "--log-level",
        choices=list(VALID_LOG_LEVELS),
        default="INFO",
        help="Set the logging level (default: INFO)",
    )
    _ = parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for log files (default: ./logs when running the TUI)",
    )
    _ = parser.add_argument(
        "--api-url",
        default=None,
        help="Base URL of the Chill Gamer API (overrides config and environment)",
    )
    _ = parser.add_argument(
        "--user",
        default=None,
        metavar="EMAIL",
        help="Sign in as this user",
    )
    _ = parser.add_argument(
        "--no-tui",
        action="store_true",
        help="Print a catalog summary instead of starting the TUI",
    )

    ns = parser.parse_args(argv)

    return ParsedArgs(
        config=ns.config,
        log_level=ns.log_level or "INFO",
        log_dir=ns.log_dir,
        api_url=ns.api_url,
        user=ns.user,
        no_tui=bool(ns.no_tui),
    )


def setup_signal_handlers(context: ApplicationContext) -> None:
    def on_signal(signum: int, _frame: object) -> None:
        log.info("Shutdown signal", signal=signal.Signals(signum).name)
        context.request_shutdown()

    for signum in (signal.SIGINT, signal.SIGTERM):
        _ = signal.signal(signum, on_signal)


def render_summary(context: ApplicationContext, snapshot: CatalogSnapshot, trending: Trending) -> list[str]:
    """Text lines describing the catalog and the trending lists."""
    lines = [
        f"Chill Gamer {VERSION}",
        f"API: {context.config.api_base_url}",
        f"Signed in as: {context.session.user_email or 'anonymous'}",
        f"Games: {len(snapshot.games)}  Reviews: {len(snapshot.reviews)}",
        "",
        "Top rated games:",
    ]
    for game in trending.games:
        band = classify_rating(game.rating)
        lines.append(f"  {game.title} ({game.release_year})  {game.rating:.1f} {band.label}  {format_price(game.price)}")
    lines.append("")
    lines.append("Highest rated reviews:")
    for review in trending.reviews:
        lines.append(f"  {review.game_title}  {review.rating:g}/5  by {review.user_name or 'anonymous'}")
    return lines


async def run_summary(context: ApplicationContext) -> int:
    """Print the catalog summary. Returns a process exit code."""
    try:
        snapshot = await context.catalog.load_snapshot()
        if not snapshot.ok:
            print(f"Error: {snapshot.message}", file=sys.stderr)
            return 1
        trending = await context.catalog.trending()
        if not trending.ok:
            print(f"Error: {trending.message}", file=sys.stderr)
            return 1
        for line in render_summary(context, snapshot.value, trending.value):
            print(line)
        return 0
    finally:
        await context.cleanup()


async def run_tui(context: ApplicationContext) -> int:
    """Run the Textual app until it exits; returns the process exit code."""
    from chill_gamer.ui.app import ChillGamerApp

    try:
        await ChillGamerApp(context).run_async()
    except Exception as exc:
        log.error("TUI crashed", error=str(exc), exc_info=True)
        return 1
    else:
        return 0
    finally:
        await context.cleanup()


def main(argv: list[str] | None = None) -> None:
    args = parse_arguments(argv)
    tui = not args.no_tui
    log_dir = args.log_dir or (Path("logs") if tui else None)

    _ = setup_logging(log_level=args.log_level, log_dir=log_dir, tui_mode=tui)
    log.info("Chill Gamer starting", version=VERSION, config=str(args.config or "default"), tui=tui)

    context = ApplicationContext(
        config_path=args.config,
        log_level=args.log_level,
        log_dir=log_dir,
        api_url=args.api_url,
        user_email=args.user,
    )
    setup_signal_handlers(context)

    runner = run_tui if tui else run_summary
    try:
        exit_code = asyncio.run(runner(context))
    except KeyboardInterrupt:
        exit_code = 130
    except Exception as exc:
        log.error("Unhandled exception", error=str(exc), exc_info=True)
        print(f"Fatal error: {exc}", file=sys.stderr)
        exit_code = 1

    log.info("Chill Gamer exiting", exit_code=exit_code)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
