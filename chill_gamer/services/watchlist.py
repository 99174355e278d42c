"""Watchlist membership tracking with optimistic add/remove."""

import asyncio
from dataclasses import dataclass
from enum import Enum

import structlog

from ..models import Session, WatchlistItem, WatchlistSnapshot
from .catalog_api import CatalogApiClient
from .errors import (
    AppError,
    DuplicateConstraintError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    StaleReferenceError,
)
from .query import WATCHLIST, FilterSpec, derive_view
from .result import Failure, Result, Success, report_failure

log = structlog.stdlib.get_logger()

ALREADY_IN_WATCHLIST = "Already in watchlist"


class MembershipState(Enum):
    IDLE = "idle"
    CHECKING = "checking"
    MEMBER = "member"
    NON_MEMBER = "non_member"
    ADDING = "adding"
    REMOVING = "removing"


IN_FLIGHT = frozenset({MembershipState.CHECKING, MembershipState.ADDING, MembershipState.REMOVING})


class ToggleAction(Enum):
    ADDED = "added"
    ALREADY_MEMBER = "already_member"
    REMOVED = "removed"


@dataclass(frozen=True)
class ToggleOutcome:
    action: ToggleAction
    is_member: bool
    item_id: str | None = None


@dataclass
class _Membership:
    state: MembershipState = MembershipState.IDLE
    item_id: str | None = None


class MembershipSynchronizer:
    """Keeps the client's view of (user, game title) watchlist membership.

    Membership is optimistic: a toggle moves the entry into ADDING or REMOVING
    straight away and settles once the server answers. A failed request puts
    the entry back where it was, and so does a cancelled one. A duplicate-add rejection from the server
    means the game is already watched, so it settles as MEMBER.

    Only one operation per (user, title) may be in flight. A second toggle
    while one is pending is rejected without touching the network.
    """

    def __init__(self, api: CatalogApiClient, error_service: ErrorHandlingService | None = None) -> None:
        self._api = api
        self._errors = error_service
        self._entries: dict[tuple[str, str], _Membership] = {}

    def state_of(self, session: Session, game_title: str) -> MembershipState:
        if not session.is_authenticated:
            return MembershipState.NON_MEMBER
        entry = self._entries.get(self._key(session, game_title))
        return entry.state if entry else MembershipState.IDLE

    def is_busy(self, session: Session, game_title: str) -> bool:
        return self.state_of(session, game_title) in IN_FLIGHT

    def is_member(self, session: Session, game_title: str) -> bool:
        return self.state_of(session, game_title) == MembershipState.MEMBER

    async def check_membership(self, session: Session, game_title: str) -> Result[bool]:
        """Fetch the user's watchlist and report whether `game_title` is on it."""
        if not session.is_authenticated:
            return Success(False)
        if self.is_busy(session, game_title):
            return self._busy_failure(game_title)

        entry = self._entry(session, game_title)
        previous = (entry.state, entry.item_id)
        entry.state = MembershipState.CHECKING
        try:
            items = await self._api.get_watchlist(session.user_email)
        except AppError as e:
            entry.state, entry.item_id = previous
            return self._failure(e, "check_membership", "Failed to check watchlist", game_title)
        except asyncio.CancelledError:
            entry.state, entry.item_id = previous
            raise

        match = self._find(items, game_title)
        entry.state = MembershipState.MEMBER if match else MembershipState.NON_MEMBER
        entry.item_id = match.id if match else None
        self._prime(session, items)
        log.debug("Membership checked", game_title=game_title, is_member=match is not None)
        return Success(match is not None)

    async def toggle(self, session: Session, snapshot: WatchlistSnapshot) -> Result[ToggleOutcome]:
        """Add the game if it is not watched, remove it if it is.

        Returns:
            Success(ToggleOutcome) when membership changed, or when an add
            was rejected as a duplicate (with an informational notice).
            Failure(AUTHENTICATION) for anonymous sessions and
            Failure(VALIDATION) while another operation is pending, both
            without any request. Failure(NETWORK) or Failure(STALE_REFERENCE)
            when the server call failed; membership is then left as it was.
        """
        if not session.is_authenticated:
            return Failure(
                kind=ErrorCategory.AUTHENTICATION,
                message="Please login to add games to your watchlist",
                severity=ErrorSeverity.WARNING,
            )
        if self.is_busy(session, snapshot.game_title):
            return self._busy_failure(snapshot.game_title)

        entry = self._entry(session, snapshot.game_title)
        if entry.state == MembershipState.MEMBER:
            return await self._remove(session, snapshot.game_title, entry.item_id)
        return await self._add(session, snapshot)

    async def load_watchlist(self, session: Session) -> Result[list[WatchlistItem]]:
        """The user's watchlist in the order items were added."""
        if not session.is_authenticated:
            return Failure(
                kind=ErrorCategory.AUTHENTICATION,
                message="Please login to view your watchlist",
                severity=ErrorSeverity.WARNING,
            )
        try:
            items = await self._api.get_watchlist(session.user_email)
        except AppError as e:
            return self._failure(e, "load_watchlist", "Failed to load watchlist")

        self._prime(session, items)
        ordered = derive_view(items, FilterSpec(), WATCHLIST.default_sort, WATCHLIST)
        log.info("Watchlist loaded", user=session.user_email, items=len(ordered))
        return Success(ordered)

    async def remove_item(self, session: Session, item: WatchlistItem) -> Result[ToggleOutcome]:
        """Remove an item picked from the watchlist view."""
        if not session.is_authenticated:
            return Failure(
                kind=ErrorCategory.AUTHENTICATION,
                message="Please login to manage your watchlist",
                severity=ErrorSeverity.WARNING,
            )
        if self.is_busy(session, item.game_title):
            return self._busy_failure(item.game_title)
        entry = self._entry(session, item.game_title)
        entry.state = MembershipState.MEMBER
        entry.item_id = item.id
        return await self._remove(session, item.game_title, item.id)

    async def _add(self, session: Session, snapshot: WatchlistSnapshot) -> Result[ToggleOutcome]:
        title = snapshot.game_title
        entry = self._entry(session, title)
        previous = (entry.state, entry.item_id)
        entry.state = MembershipState.ADDING
        log.info("Adding to watchlist", game_title=title, user=session.user_email)

        try:
            item = await self._api.add_to_watchlist(snapshot, session)
        except DuplicateConstraintError:
            # The store already holds the pair; the item id is resolved on demand
            entry.state = MembershipState.MEMBER
            entry.item_id = None
            log.info("Game already in watchlist", game_title=title)
            return Success(ToggleOutcome(ToggleAction.ALREADY_MEMBER, is_member=True), notice=ALREADY_IN_WATCHLIST)
        except AppError as e:
            entry.state = MembershipState.NON_MEMBER
            return self._failure(e, "add_to_watchlist", "Failed to add to watchlist", title)
        except asyncio.CancelledError:
            entry.state, entry.item_id = previous
            raise

        entry.state = MembershipState.MEMBER
        entry.item_id = item.id
        log.info("Added to watchlist", game_title=title, item_id=item.id)
        return Success(ToggleOutcome(ToggleAction.ADDED, is_member=True, item_id=item.id))

    async def _remove(self, session: Session, title: str, item_id: str | None) -> Result[ToggleOutcome]:
        entry = self._entry(session, title)
        previous = (entry.state, entry.item_id)
        entry.state = MembershipState.REMOVING
        log.info("Removing from watchlist", game_title=title, item_id=item_id)

        try:
            if item_id is None:
                match = self._find(await self._api.get_watchlist(session.user_email), title)
                if match is None:
                    raise StaleReferenceError("That watchlist entry no longer exists", entity_id=title)
                item_id = match.id
                entry.item_id = item_id
            await self._api.remove_from_watchlist(item_id)
        except AppError as e:
            entry.state = MembershipState.MEMBER
            return self._failure(e, "remove_from_watchlist", "Failed to remove from watchlist", title)
        except asyncio.CancelledError:
            entry.state, entry.item_id = previous
            raise

        entry.state = MembershipState.NON_MEMBER
        entry.item_id = None
        log.info("Removed from watchlist", game_title=title, item_id=item_id)
        return Success(ToggleOutcome(ToggleAction.REMOVED, is_member=False, item_id=item_id))

    def _prime(self, session: Session, items: list[WatchlistItem]) -> None:
        """Settle every idle or known entry for this user from a full watchlist fetch."""
        by_title = {item.game_title: item for item in items}
        for title, item in by_title.items():
            entry = self._entry(session, title)
            if entry.state not in IN_FLIGHT:
                entry.state = MembershipState.MEMBER
                entry.item_id = item.id
        for (user, title), entry in self._entries.items():
            if user == session.user_email and title not in by_title and entry.state not in IN_FLIGHT:
                entry.state = MembershipState.NON_MEMBER
                entry.item_id = None

    def _failure(self, error: AppError, operation: str, message: str, game_title: str | None = None) -> Failure:
        return report_failure(
            error,
            self._errors,
            operation,
            "MembershipSynchronizer",
            message=message,
            context={"game_title": game_title} if game_title else None,
        )

    @staticmethod
    def _busy_failure(game_title: str) -> Failure:
        log.debug("Watchlist operation already in progress", game_title=game_title)
        return Failure(
            kind=ErrorCategory.VALIDATION,
            message="A watchlist update for this game is already in progress",
            severity=ErrorSeverity.INFO,
        )

    @staticmethod
    def _find(items: list[WatchlistItem], game_title: str) -> WatchlistItem | None:
        for item in items:
            if item.game_title == game_title:
                return item
        return None

    @staticmethod
    def _key(session: Session, game_title: str) -> tuple[str, str]:
        return (session.user_email or "", game_title)

    def _entry(self, session: Session, game_title: str) -> _Membership:
        return self._entries.setdefault(self._key(session, game_title), _Membership())
