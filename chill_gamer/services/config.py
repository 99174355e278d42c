"""Reads and writes the client settings file (JSON)."""

import json
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import structlog

from ..models import AppConfig
from .query import GAMES, REVIEWS

log = structlog.stdlib.get_logger()

ENV_API_URL = "CHILL_GAMER_API_URL"
ENV_TIMEOUT = "CHILL_GAMER_TIMEOUT"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
MAX_REQUEST_TIMEOUT = 120.0


@dataclass(frozen=True)
class ValidationResult:
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ConfigurationService:
    """Loads and saves `AppConfig` as JSON.

    A missing, unreadable or invalid file yields the defaults rather than an
    error. Environment variables override the API URL and timeout.
    """

    def __init__(self, config_path: Path | None = None, environ: Mapping[str, str] | None = None) -> None:
        self.config_path: Path = config_path or Path.home() / ".config" / "chill-gamer" / "config.json"
        self._environ = environ if environ is not None else os.environ

    def load_config(self) -> AppConfig:
        """Load configuration from file (or defaults), then apply environment overrides."""
        return self.apply_env_overrides(self._load_file())

    def _load_file(self) -> AppConfig:
        if not self.config_path.exists():
            log.info("No settings file, using defaults", config_path=str(self.config_path))
            return self._defaults()

        try:
            config = self._from_dict(json.loads(self.config_path.read_text(encoding="utf-8")))
        except (OSError, KeyError, TypeError, ValueError) as exc:
            log.error("Unreadable settings file, using defaults", config_path=str(self.config_path), error=str(exc))
            return self._defaults()

        problems = self.validate_config(config).errors
        if problems:
            log.warning("Settings file rejected, using defaults", errors=problems)
            return self._defaults()

        log.info("Settings loaded", config_path=str(self.config_path))
        return config

    def apply_env_overrides(self, config: AppConfig) -> AppConfig:
        """Override the API URL and timeout from the environment when the values are valid."""
        api_url = self._environ.get(ENV_API_URL)
        if api_url:
            candidate = replace(config, api_base_url=api_url)
            if self.validate_config(candidate).is_valid:
                config = candidate
                log.info("API URL overridden from environment", api_base_url=api_url)
            else:
                log.warning("Ignoring invalid API URL from environment", value=api_url)

        timeout = self._environ.get(ENV_TIMEOUT)
        if timeout:
            try:
                candidate = replace(config, request_timeout=float(timeout))
            except ValueError:
                log.warning("Ignoring non-numeric timeout from environment", value=timeout)
            else:
                if self.validate_config(candidate).is_valid:
                    config = candidate
                    log.info("Request timeout overridden from environment", request_timeout=candidate.request_timeout)
                else:
                    log.warning("Ignoring out-of-range timeout from environment", value=timeout)

        return config

    def save_config(self, config: AppConfig) -> None:
        """Write `config` as JSON; raises ValueError if it does not validate."""
        problems = self.validate_config(config).errors
        if problems:
            raise ValueError("Invalid configuration: " + "; ".join(problems))

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(json.dumps(asdict(config), indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            log.error("Could not write settings file", config_path=str(self.config_path), error=str(exc))
            raise
        log.info("Settings saved", config_path=str(self.config_path))

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Every rule `config` breaks, as readable messages."""
        errors: list[str] = []

        parsed = urlparse(config.api_base_url) if isinstance(config.api_base_url, str) else None
        if parsed is None or parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append("api_base_url must be an http(s) URL")

        timeout = config.request_timeout
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or not 0 < timeout <= MAX_REQUEST_TIMEOUT:
            errors.append(f"request_timeout must be a number in (0, {MAX_REQUEST_TIMEOUT:g}] seconds")

        if config.log_level not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")

        if config.default_game_sort not in GAMES.sort_keys:
            errors.append(f"default_game_sort must be one of: {', '.join(GAMES.sort_keys)}")
        if config.default_review_sort not in REVIEWS.sort_keys:
            errors.append(f"default_review_sort must be one of: {', '.join(REVIEWS.sort_keys)}")

        if config.user_email is not None and "@" not in config.user_email:
            errors.append("user_email must be an email address")

        return ValidationResult(errors)

    def _defaults(self) -> AppConfig:
        return AppConfig()

    def _from_dict(self, data: Any) -> AppConfig:
        """Missing keys keep their defaults."""
        if not isinstance(data, dict):
            raise TypeError("configuration file must hold a JSON object")

        defaults = AppConfig()
        timeout_raw = data.get("request_timeout", defaults.request_timeout)
        user_email = data.get("user_email")
        user_name = data.get("user_name")

        return AppConfig(
            api_base_url=str(data.get("api_base_url", defaults.api_base_url)),
            request_timeout=float(timeout_raw) if isinstance(timeout_raw, (int, float)) else -1.0,
            log_level=str(data.get("log_level", defaults.log_level)).upper(),
            default_game_sort=str(data.get("default_game_sort", defaults.default_game_sort)),
            default_review_sort=str(data.get("default_review_sort", defaults.default_review_sort)),
            user_email=str(user_email) if user_email else None,
            user_name=str(user_name) if user_name else None,
        )
