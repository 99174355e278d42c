"""Tests for argument parsing, the application context and the summary mode."""

import json
from pathlib import Path

import httpx
import pytest

from chill_gamer.main import VERSION, ApplicationContext, main, parse_arguments, run_summary
from chill_gamer.models.config import DEFAULT_API_BASE_URL
from chill_gamer.services.config import ENV_API_URL, ENV_TIMEOUT

from fake_server import FakeChillGamerServer


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ENV_API_URL, raising=False)
    monkeypatch.delenv(ENV_TIMEOUT, raising=False)


def write_config(tmp_path: Path, **values: object) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(values), encoding="utf-8")
    return path


class TestParseArguments:

    def test_defaults(self) -> None:
        args = parse_arguments([])
        assert args.config is None
        assert args.log_level == "INFO"
        assert args.api_url is None
        assert args.user is None
        assert args.no_tui is False

    def test_all_options(self) -> None:
        args = parse_arguments(
            [
                "--config", "/tmp/c.json",
                "--log-level", "DEBUG",
                "--log-dir", "/tmp/logs",
                "--api-url", "https://api.example.com/chill-gamer",
                "--user", "ana@example.com",
                "--no-tui",
            ]
        )
        assert args.config == Path("/tmp/c.json")
        assert args.log_dir == Path("/tmp/logs")
        assert args.api_url == "https://api.example.com/chill-gamer"
        assert args.user == "ana@example.com"
        assert args.no_tui

    def test_invalid_log_level_exits(self) -> None:
        with pytest.raises(SystemExit):
            parse_arguments(["--log-level", "LOUD"])

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments(["--version"])
        assert exc_info.value.code == 0
        assert VERSION in capsys.readouterr().out


class TestApplicationContext:

    def test_config_defaults_when_file_missing(self, tmp_path: Path) -> None:
        context = ApplicationContext(config_path=tmp_path / "missing.json")
        assert context.config.api_base_url == DEFAULT_API_BASE_URL
        assert not context.session.is_authenticated

    def test_api_url_override(self, tmp_path: Path) -> None:
        context = ApplicationContext(config_path=tmp_path / "c.json", api_url="https://api.example.com/x")
        assert context.config.api_base_url == "https://api.example.com/x"

    def test_invalid_api_url_override_is_ignored(self, tmp_path: Path) -> None:
        context = ApplicationContext(config_path=tmp_path / "c.json", api_url="not-a-url")
        assert context.config.api_base_url == DEFAULT_API_BASE_URL

    def test_session_from_config(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, user_email="cy@example.com", user_name="Cy")
        session = ApplicationContext(config_path=path).session
        assert session.user_email == "cy@example.com"
        assert session.user_name == "Cy"

    def test_user_flag_overrides_config_identity(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, user_email="cy@example.com", user_name="Cy")
        session = ApplicationContext(config_path=path, user_email="ana@example.com").session
        assert session.user_email == "ana@example.com"
        assert session.display_name is None

    def test_services_share_one_api_client(self, tmp_path: Path) -> None:
        context = ApplicationContext(config_path=tmp_path / "c.json")
        assert context.api is context.api
        assert context.catalog is context.catalog
        assert context.watchlist is context.watchlist
        assert context.http_client.timeout == context.config.request_timeout

    @pytest.mark.asyncio
    async def test_cleanup_closes_http_client(self, tmp_path: Path) -> None:
        context = ApplicationContext(config_path=tmp_path / "c.json")
        first = context.http_client
        await context.cleanup()
        assert context.http_client is not first
        await context.cleanup()

    def test_request_shutdown(self) -> None:
        context = ApplicationContext()
        assert not context.shutdown_requested
        context.request_shutdown()
        assert context.shutdown_requested


class TestSummaryMode:

    @pytest.mark.asyncio
    async def test_summary_lists_top_games_and_reviews(
        self,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        server = FakeChillGamerServer()
        context = ApplicationContext(
            config_path=tmp_path / "c.json",
            user_email="ana@example.com",
            transport=httpx.MockTransport(server.handle),
        )

        assert await run_summary(context) == 0

        out = capsys.readouterr().out
        assert "Signed in as: ana@example.com" in out
        assert "Games: 5  Reviews: 5" in out
        assert "Elden Ring (2022)  4.8 Exceptional  $59.99" in out
        assert "Fortnite (2017)  3.9 Average  Free" in out
        assert out.index("Elden Ring (2022)") < out.index("Anthem (2019)")
        assert "Elden Ring  5/5  by Ana" in out

    @pytest.mark.asyncio
    async def test_summary_reports_failure(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        server = FakeChillGamerServer()
        server.fail("GET", "/games", 503)
        context = ApplicationContext(config_path=tmp_path / "c.json", transport=httpx.MockTransport(server.handle))

        assert await run_summary(context) == 1
        assert "Error: Failed to load the catalog" in capsys.readouterr().err

    def test_main_exits_with_summary_code(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        # Nothing listens on this port, so the summary fails cleanly
        monkeypatch.setattr("chill_gamer.main.setup_signal_handlers", lambda context: None)
        monkeypatch.setattr("chill_gamer.main.setup_logging", lambda **kwargs: None)
        with pytest.raises(SystemExit) as exc_info:
            main(["--no-tui", "--config", str(tmp_path / "c.json"), "--api-url", "http://127.0.0.1:9/chill-gamer"])
        assert exc_info.value.code == 1
