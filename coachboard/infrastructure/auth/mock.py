"""
In-memory identity provider for local development and tests.

MockAuthBackend is the shared "service": accounts and revoked sessions.
MockIdentityProvider is one client's view of it, with the same
interface as HostedIdentityProvider. Tokens are real signed JWTs, so
the API verifies them exactly as it would hosted ones.
"""

import hmac
import logging
import threading
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from ...core.errors import InvalidCredentials
from ...core.identity import Session, SessionEvent
from ...core.models import utc_now
from .client import SessionSubscriptions
from .tokens import decode_access_token, encode_access_token

logger = logging.getLogger(__name__)


class MockAuthBackend:
    """Accounts, issued sessions and revocations, held in memory."""

    def __init__(
        self,
        accounts: Optional[dict[str, str]] = None,
        jwt_secret: str = "mock-secret",
        audience: str = "authenticated",
        token_ttl: timedelta = timedelta(hours=1),
    ) -> None:
        self.jwt_secret = jwt_secret
        self.audience = audience
        self._token_ttl = token_ttl
        self._passwords: dict[str, str] = {}
        self._user_ids: dict[str, str] = {}
        self._revoked: dict[str, Optional[datetime]] = {}
        self._lock = threading.Lock()

        for email, password in (accounts or {}).items():
            self.add_account(email, password)

        logger.info(
            "Initialized mock auth backend",
            extra={"account_count": len(self._passwords)}
        )

    def add_account(self, email: str, password: str) -> str:
        with self._lock:
            self._passwords[email] = password
            return self._user_ids.setdefault(email, str(uuid4()))

    def issue_token(self, email: str, password: str) -> str:
        with self._lock:
            expected = self._passwords.get(email)
            user_id = self._user_ids.get(email)

        if expected is None or not hmac.compare_digest(expected, password):
            logger.warning("Mock sign-in rejected", extra={"email": email})
            raise InvalidCredentials("Invalid email or password")

        now = utc_now()
        return encode_access_token(
            {
                "sub": user_id,
                "email": email,
                "aud": self.audience,
                "session_id": str(uuid4()),
                "iat": int(now.timestamp()),
                "exp": int((now + self._token_ttl).timestamp()),
            },
            self.jwt_secret,
        )

    def revoke(self, session_id: str, expires_at: Optional[datetime] = None) -> None:
        """
        Reject the session from now on.

        An expired token is already rejected by verification, so its
        revocation is only kept until `expires_at`.
        """
        with self._lock:
            now = utc_now()
            expired = [
                revoked_id
                for revoked_id, until in self._revoked.items()
                if until is not None and now >= until
            ]
            for revoked_id in expired:
                del self._revoked[revoked_id]
            self._revoked[session_id] = expires_at

    def revoked_count(self) -> int:
        with self._lock:
            return len(self._revoked)

    def is_revoked(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._revoked


class MockIdentityProvider(SessionSubscriptions):
    """IdentityProvider over a MockAuthBackend."""

    def __init__(self, backend: MockAuthBackend) -> None:
        super().__init__()
        self._backend = backend
        self._session: Optional[Session] = None

    def get_session(self) -> Optional[Session]:
        session = self._session
        if session is None:
            return None
        if session.is_expired() or self._backend.is_revoked(session.session_id):
            self._session = None
            return None
        return session

    def restore(self, access_token: str) -> Session:
        session = decode_access_token(
            access_token,
            self._backend.jwt_secret,
            self._backend.audience,
        )
        if self._backend.is_revoked(session.session_id):
            raise InvalidCredentials("Session has been signed out")
        previous, self._session = self._session, session
        self._notify_if_refreshed(previous, session)
        return session

    def sign_in(self, email: str, password: str) -> Session:
        token = self._backend.issue_token(email, password)
        session = decode_access_token(token, self._backend.jwt_secret, self._backend.audience)
        self._session = session
        self._notify(SessionEvent.SIGNED_IN, session)
        return session

    def sign_out(self) -> None:
        session = self._session
        if session is None:
            return
        self._backend.revoke(session.session_id, session.expires_at)
        self._session = None
        self._notify(SessionEvent.SIGNED_OUT, session)

    def close(self) -> None:
        pass
