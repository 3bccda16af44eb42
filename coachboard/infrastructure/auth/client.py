"""
Hosted identity provider client.

A thin wrapper around the hosted auth service's REST API that:
1. Implements our IdentityProvider protocol
2. Verifies access tokens locally (see tokens.py)
3. Emits session-change notifications to subscribers
4. Maps HTTP failures onto the domain error taxonomy

One provider instance represents one client's session, the same way a
browser holds one auth client. The API builds one per request from the
bearer token with `restore`.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ...core.errors import IdentityUnavailable, InvalidCredentials
from ...core.identity import Session, SessionChangeHandler, SessionEvent
from .tokens import decode_access_token

logger = logging.getLogger(__name__)


class SessionSubscriptions:
    """Handler bookkeeping shared by every provider implementation."""

    def __init__(self) -> None:
        self._handlers: list[SessionChangeHandler] = []
        self._handlers_lock = threading.Lock()

    def on_session_change(self, handler: SessionChangeHandler) -> Callable[[], None]:
        with self._handlers_lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._handlers_lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def _notify(self, event: SessionEvent, session: Optional[Session]) -> None:
        with self._handlers_lock:
            handlers = list(self._handlers)
        # Synchronous: invalidation must finish before the caller continues
        for handler in handlers:
            handler(event, session)

    def _notify_if_refreshed(self, previous: Optional[Session], session: Session) -> None:
        """TOKEN_REFRESHED when a new token arrives for the current session."""
        if (
            previous is not None
            and previous.session_id == session.session_id
            and previous.access_token != session.access_token
        ):
            self._notify(SessionEvent.TOKEN_REFRESHED, session)


@dataclass
class HostedAuthConfig:
    """
    Configuration for the hosted auth service.

    Using a dataclass instead of raw values means:
    - Configuration is explicit and documented
    - We can validate at construction time
    - Easy to create test configurations
    """
    url: str
    anon_key: str
    jwt_secret: str
    audience: str = "authenticated"
    timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("Auth service URL is required")
        if not self.jwt_secret:
            raise ValueError("JWT secret is required")
        self.url = self.url.rstrip("/")


class HostedIdentityProvider(SessionSubscriptions):
    """IdentityProvider backed by the hosted auth REST API."""

    def __init__(
        self,
        config: HostedAuthConfig,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__()
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            base_url=config.url,
            timeout=config.timeout_seconds,
        )
        self._session: Optional[Session] = None

    def get_session(self) -> Optional[Session]:
        if self._session is not None and self._session.is_expired():
            logger.info("Session expired", extra={"session_id": self._session.session_id})
            self._session = None
        return self._session

    def restore(self, access_token: str) -> Session:
        """
        Adopt an existing access token as the current session.

        The initial-session read sends no notification. A newer token for
        the session already held is a refresh and sends TOKEN_REFRESHED.
        """
        session = decode_access_token(
            access_token,
            self._config.jwt_secret,
            self._config.audience,
        )
        previous, self._session = self._session, session
        self._notify_if_refreshed(previous, session)
        return session

    def sign_in(self, email: str, password: str) -> Session:
        try:
            response = self._client.post(
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.error("Auth service unreachable", extra={"error": str(e)})
            raise IdentityUnavailable(f"Auth service unreachable: {e}") from e

        if response.status_code in (400, 401, 403, 422):
            logger.warning("Sign-in rejected", extra={"email": email})
            raise InvalidCredentials("Invalid email or password")
        if response.status_code >= 300:
            logger.error(
                "Auth service error",
                extra={"status_code": response.status_code}
            )
            raise IdentityUnavailable(f"Auth service returned {response.status_code}")

        payload = response.json()
        session = decode_access_token(
            payload.get("access_token", ""),
            self._config.jwt_secret,
            self._config.audience,
        )
        self._session = session

        logger.info("Signed in", extra={"session_id": session.session_id})
        self._notify(SessionEvent.SIGNED_IN, session)
        return session

    def sign_out(self) -> None:
        session = self._session
        if session is None:
            return

        try:
            response = self._client.post(
                "/auth/v1/logout",
                headers={
                    **self._headers(),
                    "Authorization": f"Bearer {session.access_token}",
                },
            )
            if response.status_code >= 300:
                logger.warning(
                    "Remote sign-out failed; ending local session anyway",
                    extra={"status_code": response.status_code}
                )
        except httpx.HTTPError as e:
            logger.warning(
                "Remote sign-out failed; ending local session anyway",
                extra={"error": str(e)}
            )

        self._session = None
        logger.info("Signed out", extra={"session_id": session.session_id})
        self._notify(SessionEvent.SIGNED_OUT, session)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _headers(self) -> dict[str, str]:
        return {"apikey": self._config.anon_key}
