"""
Identity: sessions from the identity provider, roles from the coach registry.

The identity provider (hosted auth service, or the in-memory mock) owns
sign-in and session tokens. We only consume it through the
IdentityProvider protocol.

The resolver maps a session's email to a Role by looking up the coaches
collection. The result is cached per session id and dropped the moment
the provider reports a session change, so an admin check never runs
against a stale role.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Protocol

from .models import Coach, Role, utc_now
from .store import Collections, RecordStore

logger = logging.getLogger(__name__)


class SessionEvent(Enum):
    """Session-change notifications emitted by an identity provider."""
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    TOKEN_REFRESHED = "token_refreshed"


@dataclass(frozen=True)
class Session:
    """An authenticated session as reported by the identity provider."""
    session_id: str
    user_id: str
    email: str
    access_token: str = ""
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utc_now()) >= self.expires_at


SessionChangeHandler = Callable[[SessionEvent, Optional[Session]], None]


class IdentityProvider(Protocol):
    """
    Interface to the identity provider.

    The resolver and access gate don't know whether sessions come from the
    hosted auth service or an in-memory mock.
    """

    def get_session(self) -> Optional[Session]:
        """Current session, or None when signed out or expired."""
        ...

    def on_session_change(self, handler: SessionChangeHandler) -> Callable[[], None]:
        """Subscribe to session changes. Returns an unsubscribe callable."""
        ...

    def sign_in(self, email: str, password: str) -> Session:
        """Authenticate. Raises InvalidCredentials on rejection."""
        ...

    def sign_out(self) -> None:
        """End the current session."""
        ...


class RoleCache:
    """
    Session-keyed role cache.

    A cached None means "looked up, no coach row" and is kept just like a
    role, so a denied principal isn't looked up again on every request.

    Entries live no longer than their session: an entry whose session has
    expired is dropped on lookup, and every put sweeps the expired ones.
    Sessions without an expiry are bounded by `max_entries`, oldest first.
    """

    def __init__(
        self,
        max_entries: int = 10_000,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._roles: dict[str, tuple[Optional[Role], Optional[datetime]]] = {}
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()

    def lookup(self, session_id: str) -> tuple[bool, Optional[Role]]:
        """Return (hit, role)."""
        with self._lock:
            entry = self._roles.get(session_id)
            if entry is None:
                return False, None
            role, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._roles[session_id]
                return False, None
            return True, role

    def put(
        self,
        session_id: str,
        role: Optional[Role],
        expires_at: Optional[datetime] = None,
    ) -> None:
        with self._lock:
            now = self._clock()
            self._prune(now)
            if expires_at is not None and now >= expires_at:
                return
            self._roles.pop(session_id, None)
            self._roles[session_id] = (role, expires_at)
            while len(self._roles) > self._max_entries:
                del self._roles[next(iter(self._roles))]

    def invalidate(self, session_id: str) -> None:
        with self._lock:
            self._roles.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._roles.clear()

    def is_cached(self, session_id: str) -> bool:
        return self.lookup(session_id)[0]

    def __len__(self) -> int:
        with self._lock:
            return len(self._roles)

    def _prune(self, now: datetime) -> None:
        expired = [
            session_id
            for session_id, (_, expires_at) in self._roles.items()
            if expires_at is not None and now >= expires_at
        ]
        for session_id in expired:
            del self._roles[session_id]


class IdentityResolver:
    """
    Resolves principals to roles against the coach registry.

    Store errors propagate. A lookup that fails is not cached and is not
    confused with "no such coach".
    """

    def __init__(self, store: RecordStore, cache: Optional[RoleCache] = None) -> None:
        self._store = store
        self._cache = cache if cache is not None else RoleCache()

    @property
    def cache(self) -> RoleCache:
        return self._cache

    def find_coach(self, email: str) -> Optional[Coach]:
        """Exact email match against the coach registry."""
        rows = self._store.list(Collections.COACHES, filter={"email": email})
        if not rows:
            return None
        if len(rows) > 1:
            logger.warning(
                "Multiple coach rows share an email",
                extra={"email": email, "count": len(rows)}
            )
        return Coach.from_record(rows[0])

    def resolve_role(self, email: str) -> Optional[Role]:
        """
        Role for an email, or None when no coach row matches.

        None means the caller must deny access.
        """
        coach = self.find_coach(email)
        if coach is None:
            logger.warning("No coach registered for principal", extra={"email": email})
            return None
        return coach.role

    def role_for_session(self, session: Session) -> Optional[Role]:
        """Resolve once per session; later calls hit the cache."""
        hit, cached = self._cache.lookup(session.session_id)
        if hit:
            return cached

        role = self.resolve_role(session.email)
        self._cache.put(session.session_id, role, session.expires_at)

        logger.info(
            "Resolved role for session",
            extra={
                "session_id": session.session_id,
                "role": role.value if role else None,
            }
        )
        return role

    def handle_session_change(
        self,
        event: SessionEvent,
        session: Optional[Session],
    ) -> None:
        """Drop cached roles synchronously with the notification."""
        if session is not None:
            self._cache.invalidate(session.session_id)
        elif event == SessionEvent.SIGNED_OUT:
            self._cache.clear()

        logger.debug(
            "Role cache invalidated",
            extra={
                "event": event.value,
                "session_id": session.session_id if session else None,
            }
        )

    def bind(self, provider: IdentityProvider) -> Callable[[], None]:
        """Subscribe to a provider's session changes."""
        return provider.on_session_change(self.handle_session_change)
