"""Service layer: API access, query pipeline, search and watchlist sync."""

from .catalog import CatalogService, GameDetails, Trending
from .catalog_api import CatalogApiClient, build_search_params
from .config import ConfigurationService, ValidationResult
from .errors import (
    AppError,
    AuthenticationRequiredError,
    DuplicateConstraintError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    NetworkError,
    NotFoundError,
    StaleReferenceError,
    UserFriendlyError,
    ValidationError,
)
from .http_client import HttpClientService
from .query import (
    ALL,
    GAMES,
    REVIEWS,
    WATCHLIST,
    DomainSpec,
    FilterSpec,
    RatingBand,
    classify_rating,
    clear_filters,
    derive_view,
    filter_options,
    format_price,
    game_filters,
    review_filters,
)
from .result import Failure, Result, Success
from .reviews import MyReviews, ReviewDetails, ReviewService
from .search import DEFAULT_GENRES, ReviewSearchService, SearchResult, has_active_filters
from .watchlist import MembershipState, MembershipSynchronizer, ToggleAction, ToggleOutcome

__all__ = [
    "ALL",
    "AppError",
    "AuthenticationRequiredError",
    "CatalogApiClient",
    "CatalogService",
    "ConfigurationService",
    "DEFAULT_GENRES",
    "DomainSpec",
    "DuplicateConstraintError",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorSeverity",
    "Failure",
    "FilterSpec",
    "GAMES",
    "GameDetails",
    "HttpClientService",
    "MembershipState",
    "MembershipSynchronizer",
    "MyReviews",
    "NetworkError",
    "NotFoundError",
    "REVIEWS",
    "RatingBand",
    "Result",
    "ReviewDetails",
    "ReviewSearchService",
    "ReviewService",
    "SearchResult",
    "StaleReferenceError",
    "Success",
    "ToggleAction",
    "ToggleOutcome",
    "Trending",
    "UserFriendlyError",
    "ValidationError",
    "ValidationResult",
    "WATCHLIST",
    "build_search_params",
    "classify_rating",
    "clear_filters",
    "derive_view",
    "filter_options",
    "format_price",
    "game_filters",
    "has_active_filters",
    "review_filters",
]
