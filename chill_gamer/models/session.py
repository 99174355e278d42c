"""Session and capability models.

The session is an explicit object owned by the application context. Nothing in
the package reads identity from a module global; services receive the session
they act on as an argument.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

import structlog

log = structlog.stdlib.get_logger()


class Capability(Enum):
    """What a caller is allowed to reach."""
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


@dataclass(frozen=True)
class Session:
    """Identity of the current caller, or anonymous."""
    user_email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    role: str = "user"

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_email)

    @property
    def user_name(self) -> str:
        """Display name, falling back to the email address."""
        return self.display_name or self.user_email or "anonymous"

    @property
    def avatar_url(self) -> str:
        if self.photo_url:
            return self.photo_url
        return f"https://ui-avatars.com/api/?name={quote(self.user_name)}&background=random"

    @property
    def capabilities(self) -> frozenset[Capability]:
        if not self.is_authenticated:
            return frozenset({Capability.PUBLIC})
        if self.role == "admin":
            return frozenset({Capability.PUBLIC, Capability.AUTHENTICATED, Capability.ADMIN})
        return frozenset({Capability.PUBLIC, Capability.AUTHENTICATED})


ANONYMOUS = Session()

SessionListener = Callable[[Session], None]


class SessionProvider:
    """Holds the current session for one application instance.

    Created by the composition root and passed to whoever needs it. Listeners
    are notified whenever the session changes.
    """

    def __init__(self, initial: Session = ANONYMOUS) -> None:
        self._session = initial
        self._listeners: list[SessionListener] = []

    @property
    def current(self) -> Session:
        return self._session

    def sign_in(
        self,
        user_email: str,
        display_name: str | None = None,
        photo_url: str | None = None,
        role: str = "user",
    ) -> Session:
        """Replace the current session with an authenticated one."""
        if not user_email:
            raise ValueError("user_email is required to sign in")
        self._set(Session(user_email=user_email, display_name=display_name, photo_url=photo_url, role=role))
        log.info("Signed in", user=user_email, role=role)
        return self._session

    def sign_out(self) -> None:
        self._set(ANONYMOUS)
        log.info("Signed out")

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, session: Session) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)
