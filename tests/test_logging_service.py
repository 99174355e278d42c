"""Tests for the logging service."""

import json
import logging
import os
from collections.abc import Iterator
from io import StringIO
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog
from hypothesis import HealthCheck, given, settings, strategies as st

from chill_gamer.services.logging import ENV_VAR, LoggingService, setup_logging


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def read_json_lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


class TestLoggingService:

    def test_development_console_is_human_readable(self) -> None:
        with patch.dict(os.environ, {ENV_VAR: "development"}):
            with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
                service = LoggingService(log_level="INFO")
                service.configure()
                service.get_logger("test").info("catalog loaded", games=5)
                output = mock_stdout.getvalue()

        assert "catalog loaded" in output
        assert not output.strip().startswith("{")

    def test_production_console_is_json(self) -> None:
        with patch.dict(os.environ, {ENV_VAR: "production"}):
            with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
                service = LoggingService(log_level="INFO")
                service.configure()
                service.get_logger("test").info("catalog loaded", games=5)
                output = mock_stdout.getvalue()

        parsed = json.loads(output.strip().splitlines()[0])
        assert parsed["event"] == "catalog loaded"
        assert parsed["games"] == 5
        assert parsed["level"] == "info"
        assert "timestamp" in parsed

    def test_tui_mode_has_no_console_handler(self, tmp_path: Path) -> None:
        service = LoggingService(log_level="INFO", log_dir=tmp_path, tui_mode=True)
        service.configure()

        handlers = logging.getLogger().handlers
        assert not any(type(h) is logging.StreamHandler for h in handlers)
        assert {Path(h.baseFilename).name for h in handlers if isinstance(h, logging.FileHandler)} == {
            "app.log",
            "error.log",
        }

    def test_tui_mode_without_log_dir_logs_nowhere_visible(self) -> None:
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            service = LoggingService(log_level="DEBUG", tui_mode=True)
            service.configure()
            service.get_logger("test").warning("should not reach the terminal")

        assert mock_stdout.getvalue() == ""

    def test_file_logging_is_json_even_in_development(self, tmp_path: Path) -> None:
        with patch.dict(os.environ, {ENV_VAR: "development"}):
            service = LoggingService(log_level="INFO", log_dir=tmp_path, tui_mode=True)
            service.configure()
            service.get_logger("test").info("watchlist loaded", items=2)

        (entry,) = read_json_lines(tmp_path / "app.log")
        assert entry["event"] == "watchlist loaded"
        assert entry["items"] == 2
        assert entry["logger"] == "test"

    def test_errors_also_go_to_error_log(self, tmp_path: Path) -> None:
        service = LoggingService(log_level="DEBUG", log_dir=tmp_path, tui_mode=True)
        service.configure()
        logger = service.get_logger("test")
        logger.info("routine")
        logger.error("search failed", status_code=500)

        errors = read_json_lines(tmp_path / "error.log")
        assert [e["event"] for e in errors] == ["search failed"]
        assert errors[0]["status_code"] == 500
        assert len(read_json_lines(tmp_path / "app.log")) == 2

    def test_level_filters_lower_events(self, tmp_path: Path) -> None:
        service = LoggingService(log_level="warning", log_dir=tmp_path, tui_mode=True)
        service.configure()
        logger = service.get_logger("test")
        logger.debug("hidden")
        logger.info("hidden too")
        logger.warning("shown")

        assert [e["event"] for e in read_json_lines(tmp_path / "app.log")] == ["shown"]

    @pytest.mark.parametrize("level, expected", [("DEBUG", logging.WARNING), ("ERROR", logging.ERROR)])
    def test_httpx_request_logging_is_quieted(self, level: str, expected: int) -> None:
        LoggingService(log_level=level, tui_mode=True).configure()
        assert logging.getLogger("httpx").level == expected


class TestStructuredLoggingProperties:

    @given(
        log_level=st.sampled_from(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
        logger_name=st.text(alphabet="abcdefghij_", min_size=1, max_size=20).map(lambda x: f"test_{x}"),
        message=st.text(min_size=1, max_size=100).filter(lambda x: "\n" not in x and "\r" not in x),
        context_data=st.dictionaries(
            keys=st.text(alphabet="abcdefghij", min_size=1, max_size=15).map(lambda x: f"ctx_{x}"),
            values=st.one_of(st.text(max_size=50), st.integers(), st.booleans()),
            max_size=5,
        ),
    )
    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture], deadline=None)
    def test_structured_fields_are_preserved(
        self,
        tmp_path: Path,
        log_level: str,
        logger_name: str,
        message: str,
        context_data: dict[str, str | int | bool],
    ) -> None:
        """Every event keeps its level, logger name and context fields."""
        log_dir = tmp_path / logger_name
        service = LoggingService(log_level="DEBUG", log_dir=log_dir, tui_mode=True)
        service.configure()

        getattr(service.get_logger(logger_name), log_level.lower())(message, **context_data)
        for handler in logging.getLogger().handlers:
            handler.flush()

        parsed = read_json_lines(log_dir / "app.log")[-1]
        assert parsed["event"] == message
        assert parsed["level"] == log_level.lower()
        assert parsed["logger"] == logger_name
        assert "T" in parsed["timestamp"]
        for key, value in context_data.items():
            assert parsed[key] == value

    def test_exceptions_include_traceback(self, tmp_path: Path) -> None:
        service = LoggingService(log_level="DEBUG", log_dir=tmp_path, tui_mode=True)
        service.configure()

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            service.get_logger("test").error("Unhandled error", exc_info=True)

        (entry,) = read_json_lines(tmp_path / "error.log")
        assert "Traceback" in entry["exception"]
        assert "RuntimeError: boom" in entry["exception"]


def test_setup_logging_function(tmp_path: Path) -> None:
    with patch.dict(os.environ, {}):
        service = setup_logging(log_level="DEBUG", log_dir=tmp_path, environment="production", tui_mode=True)

        assert isinstance(service, LoggingService)
        assert os.environ[ENV_VAR] == "production"
        assert not service.is_development

    service.get_logger("test_setup").info("setup test", component="test")
    assert read_json_lines(tmp_path / "app.log")[0]["event"] == "setup test"
