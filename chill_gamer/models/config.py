"""Configuration data models."""

from dataclasses import dataclass

DEFAULT_API_BASE_URL = "http://localhost:5000/chill-gamer"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 15.0  # Seconds; bounds every API request
    log_level: str = "INFO"
    default_game_sort: str = "newest"
    default_review_sort: str = "newest"
    user_email: str | None = None  # Signed-in identity for the terminal UI, None = anonymous
    user_name: str | None = None
