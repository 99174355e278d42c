"""Filter, sort and rating-band logic shared by every catalog view.

`derive_view` is the single entry point the presentation layer uses to turn a
collection into what is shown. It is pure: the source is never mutated and no
state is kept between calls, so a view can always be re-derived from the
current snapshot and filters.
"""

import unicodedata
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

import structlog

from ..models import Game, Review, WatchlistItem

log = structlog.stdlib.get_logger()

E = TypeVar("E")

# Sentinel for "do not constrain" on categorical selectors
ALL = "all"

EARLIEST = datetime.min.replace(tzinfo=timezone.utc)

MIN_RATING_CHOICES: tuple[tuple[float, str], ...] = (
    (0, "Any"),
    (4, "4+"),
    (3, "3+"),
    (2, "2+"),
)


class RatingBand(Enum):
    """Fixed rating bands used wherever a rating is shown or thresholded."""
    EXCEPTIONAL = ("Exceptional", "green", 4.5)
    RECOMMENDED = ("Recommended", "blue", 4.0)
    AVERAGE = ("Average", "yellow", 3.0)
    BELOW_AVERAGE = ("Below Average", "dark_orange", 2.0)
    POOR = ("Poor", "red", 0.0)

    def __init__(self, label: str, color: str, lower_bound: float) -> None:
        self.label = label
        self.color = color
        self.lower_bound = lower_bound


def classify_rating(rating: float) -> RatingBand:
    for band in RatingBand:
        if rating >= band.lower_bound:
            return band
    return RatingBand.POOR


def format_price(price: float | None) -> str:
    if price is None:
        return "-"
    if price == 0:
        return "Free"
    return f"${price:.2f}"


def collation_key(text: str) -> tuple[str, str]:
    """Locale-style ordering: accents stripped and case folded, then the raw string."""
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), text)


@dataclass(frozen=True)
class CategoricalFilter:
    """A selector over a single-valued field (equality) or a list field (containment)."""
    name: str
    accessor: Callable[[Any], str | Sequence[str]]
    containment: bool = False

    def matches(self, entity: Any, selected: str) -> bool:
        value = self.accessor(entity)
        if self.containment:
            return selected in value
        return value == selected


@dataclass(frozen=True)
class NumericFilter:
    """A minimum threshold: passes when the field is >= the selected value."""
    name: str
    accessor: Callable[[Any], float]

    def matches(self, entity: Any, threshold: float) -> bool:
        return self.accessor(entity) >= threshold


@dataclass(frozen=True)
class SortOrder:
    key: str
    label: str
    sort_key: Callable[[Any], Any]
    descending: bool = False

    def apply(self, items: list[E]) -> list[E]:
        # sorted() keeps equal elements in input order, reverse=True included
        return sorted(items, key=self.sort_key, reverse=self.descending)


@dataclass(frozen=True)
class DomainSpec:
    """Everything the pipeline needs to know about one kind of collection."""
    name: str
    text_fields: tuple[Callable[[Any], str], ...]
    categorical: tuple[CategoricalFilter, ...]
    numeric: tuple[NumericFilter, ...]
    sort_orders: tuple[SortOrder, ...]
    default_sort: str

    @property
    def sort_keys(self) -> tuple[str, ...]:
        return tuple(order.key for order in self.sort_orders)

    def sort_order(self, key: str) -> SortOrder | None:
        for order in self.sort_orders:
            if order.key == key:
                return order
        return None

    def categorical_filter(self, name: str) -> CategoricalFilter | None:
        for selector in self.categorical:
            if selector.name == name:
                return selector
        return None

    def numeric_filter(self, name: str) -> NumericFilter | None:
        for threshold in self.numeric:
            if threshold.name == name:
                return threshold
        return None


@dataclass(frozen=True)
class FilterSpec:
    """The current filter choices for one view.

    Empty text, the `ALL` sentinel (or an empty string) and a zero threshold
    are all inactive. Names the domain does not know are ignored.
    """
    text: str = ""
    categories: Mapping[str, str] = field(default_factory=dict)
    minimums: Mapping[str, float] = field(default_factory=dict)

    def with_text(self, text: str) -> "FilterSpec":
        return replace(self, text=text)

    def with_category(self, name: str, value: str) -> "FilterSpec":
        return replace(self, categories={**self.categories, name: value})

    def with_minimum(self, name: str, value: float) -> "FilterSpec":
        return replace(self, minimums={**self.minimums, name: value})

    @property
    def needle(self) -> str | None:
        stripped = self.text.strip()
        return stripped.lower() if stripped else None

    def active_categories(self) -> dict[str, str]:
        return {name: value for name, value in self.categories.items() if value and value != ALL}

    def active_minimums(self) -> dict[str, float]:
        return {name: value for name, value in self.minimums.items() if value and value > 0}

    @property
    def is_active(self) -> bool:
        return bool(self.needle or self.active_categories() or self.active_minimums())


def _created(review: Review) -> datetime:
    return review.created_at or EARLIEST


def _added(item: WatchlistItem) -> datetime:
    return item.added_at or EARLIEST


GAMES = DomainSpec(
    name="games",
    text_fields=(lambda g: g.title, lambda g: g.developer),
    categorical=(
        CategoricalFilter("genre", lambda g: g.genre, containment=True),
        CategoricalFilter("platform", lambda g: g.platforms, containment=True),
    ),
    numeric=(),
    sort_orders=(
        SortOrder("newest", "Newest First", lambda g: g.release_year, descending=True),
        SortOrder("oldest", "Oldest First", lambda g: g.release_year),
        SortOrder("highest-rated", "Highest Rated", lambda g: g.rating, descending=True),
        SortOrder("lowest-rated", "Lowest Rated", lambda g: g.rating),
        SortOrder("price-low", "Price: Low to High", lambda g: g.price),
        SortOrder("price-high", "Price: High to Low", lambda g: g.price, descending=True),
        SortOrder("title-asc", "Title: A-Z", lambda g: collation_key(g.title)),
        SortOrder("title-desc", "Title: Z-A", lambda g: collation_key(g.title), descending=True),
    ),
    default_sort="newest",
)

REVIEWS = DomainSpec(
    name="reviews",
    text_fields=(lambda r: r.game_title, lambda r: r.description),
    categorical=(CategoricalFilter("genre", lambda r: r.genre),),
    numeric=(NumericFilter("minRating", lambda r: r.rating),),
    sort_orders=(
        SortOrder("newest", "Newest First", _created, descending=True),
        SortOrder("oldest", "Oldest First", _created),
        SortOrder("highest-rated", "Highest Rated", lambda r: r.rating, descending=True),
        SortOrder("lowest-rated", "Lowest Rated", lambda r: r.rating),
    ),
    default_sort="newest",
)

WATCHLIST = DomainSpec(
    name="watchlist",
    text_fields=(),
    categorical=(),
    numeric=(),
    sort_orders=(SortOrder("added", "Date Added", _added),),
    default_sort="added",
)

DOMAINS: dict[str, DomainSpec] = {spec.name: spec for spec in (GAMES, REVIEWS, WATCHLIST)}


def matches(entity: Any, filters: FilterSpec, domain: DomainSpec) -> bool:
    """True when `entity` satisfies every active constraint in `filters`."""
    needle = filters.needle
    if needle is not None and domain.text_fields:
        if not any(needle in field_of(entity).lower() for field_of in domain.text_fields):
            return False

    for name, selected in filters.active_categories().items():
        selector = domain.categorical_filter(name)
        if selector is not None and not selector.matches(entity, selected):
            return False

    for name, threshold in filters.active_minimums().items():
        numeric = domain.numeric_filter(name)
        if numeric is not None and not numeric.matches(entity, threshold):
            return False

    return True


def derive_view(
    source: Iterable[E],
    filters: FilterSpec,
    sort_key: str | None,
    domain: DomainSpec,
) -> list[E]:
    """Filter then sort `source` for display.

    Args:
        source: The collection snapshot; never mutated
        filters: Current filter choices
        sort_key: One of `domain.sort_keys`; anything else keeps input order
        domain: Which fields and comparators apply

    Returns:
        A new list holding the matching entities in display order
    """
    filtered = [entity for entity in source if matches(entity, filters, domain)]

    order = domain.sort_order(sort_key) if sort_key else None
    if order is None:
        if sort_key:
            log.debug("Unknown sort key, keeping input order", domain=domain.name, sort_key=sort_key)
        return filtered
    return order.apply(filtered)


def clear_filters(domain: DomainSpec) -> tuple[FilterSpec, str]:
    """Reset every constraint to its sentinel and pick the domain's default sort."""
    return (
        FilterSpec(
            text="",
            categories={selector.name: ALL for selector in domain.categorical},
            minimums={threshold.name: 0 for threshold in domain.numeric},
        ),
        domain.default_sort,
    )


def game_filters(text: str = "", genre: str = ALL, platform: str = ALL) -> FilterSpec:
    return FilterSpec(text=text, categories={"genre": genre, "platform": platform})


def review_filters(text: str = "", genre: str = ALL, min_rating: float = 0) -> FilterSpec:
    return FilterSpec(text=text, categories={"genre": genre}, minimums={"minRating": min_rating})


def filter_options(games: Iterable[Game]) -> tuple[list[str], list[str]]:
    """Unique genres and platforms across `games`, in first-seen order."""
    genres: dict[str, None] = {}
    platforms: dict[str, None] = {}
    for game in games:
        for genre in game.genre:
            genres.setdefault(genre, None)
        for platform in game.platforms:
            platforms.setdefault(platform, None)
    return list(genres), list(platforms)
