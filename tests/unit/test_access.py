"""
Tests for the access gate and the per-client auth context.

The gate is a pure function of (principal, required role). The context
is a small state machine driven by session-change notifications.
"""

from typing import Optional

import pytest

from coachboard.core.access import (
    AccessGate,
    Allow,
    AuthContext,
    GateState,
    Principal,
    Redirect,
)
from coachboard.core.errors import Forbidden, StoreUnavailable, Unauthorized
from coachboard.core.identity import IdentityResolver, Session, SessionEvent
from coachboard.core.models import Role
from coachboard.core.store import Collections


class FakeProvider:
    """Identity provider that signs in anyone with password 'pw'."""

    def __init__(self, session: Optional[Session] = None):
        self.session = session
        self.handlers = []
        self._counter = 0

    def get_session(self):
        return self.session

    def on_session_change(self, handler):
        self.handlers.append(handler)
        return lambda: self.handlers.remove(handler)

    def sign_in(self, email, password):
        self._counter += 1
        self.session = Session(f"s-{self._counter}", f"u-{email}", email)
        self.emit(SessionEvent.SIGNED_IN, self.session)
        return self.session

    def sign_out(self):
        previous, self.session = self.session, None
        self.emit(SessionEvent.SIGNED_OUT, previous)

    def emit(self, event, session):
        for handler in list(self.handlers):
            handler(event, session)


@pytest.fixture
def gate():
    return AccessGate(login_path="/login", default_area_path="/dashboard")


def principal(role: Optional[Role]) -> Principal:
    return Principal(email="someone@example.com", role=role)


# ---------------------------------------------------------------------------
# AccessGate
# ---------------------------------------------------------------------------

class TestAccessGate:

    @pytest.mark.parametrize("required", [None, Role.COACH, Role.ADMIN])
    def test_no_principal_redirects_to_login(self, gate, required):
        decision = gate.authorize(None, required, requested_path="/players/7")
        assert decision == Redirect("/login", "unauthenticated", from_path="/players/7")

    def test_principal_without_role_redirects_to_login(self, gate):
        decision = gate.authorize(principal(None), None, "/dashboard")
        assert isinstance(decision, Redirect)
        assert decision.target == "/login"

    def test_coach_denied_admin_area(self, gate):
        decision = gate.authorize(principal(Role.COACH), Role.ADMIN, "/admin")
        assert decision == Redirect("/dashboard", "forbidden")

    def test_admin_allowed_admin_area(self, gate):
        p = principal(Role.ADMIN)
        assert gate.authorize(p, Role.ADMIN) == Allow(p)

    @pytest.mark.parametrize("role", [Role.COACH, Role.ADMIN])
    def test_any_coach_allowed_unrestricted_area(self, gate, role):
        assert isinstance(gate.authorize(principal(role), None), Allow)

    def test_enforce_raises_unauthorized_with_path(self, gate):
        with pytest.raises(Unauthorized) as exc_info:
            gate.enforce(None, None, "/players")
        assert exc_info.value.requested_path == "/players"

    def test_enforce_raises_forbidden(self, gate):
        with pytest.raises(Forbidden):
            gate.enforce(principal(Role.COACH), Role.ADMIN)

    def test_enforce_returns_principal(self, gate):
        p = principal(Role.ADMIN)
        assert gate.enforce(p, Role.ADMIN) is p


# ---------------------------------------------------------------------------
# AuthContext
# ---------------------------------------------------------------------------

class TestAuthContext:

    def test_starts_unresolved(self, store, gate):
        context = AuthContext(FakeProvider(), IdentityResolver(store), gate)
        assert context.state == GateState.UNRESOLVED

    def test_no_session_resolves_unauthenticated(self, store, gate):
        context = AuthContext(FakeProvider(), IdentityResolver(store), gate)
        assert context.resolve() == GateState.UNAUTHENTICATED
        assert context.principal is None

    def test_coach_session(self, store, gate, coach1):
        provider = FakeProvider(Session("s", "u", coach1.email))
        context = AuthContext(provider, IdentityResolver(store), gate)
        assert context.resolve() == GateState.AUTHENTICATED_COACH
        assert context.principal.role == Role.COACH

    def test_admin_session(self, store, gate, admin_coach):
        provider = FakeProvider(Session("s", "u", admin_coach.email))
        context = AuthContext(provider, IdentityResolver(store), gate)
        assert context.resolve() == GateState.AUTHENTICATED_ADMIN
        assert isinstance(context.authorize(Role.ADMIN, "/admin"), Allow)

    def test_unregistered_session_is_unauthenticated(self, store, gate):
        provider = FakeProvider(Session("s", "u", "stranger@example.com"))
        context = AuthContext(provider, IdentityResolver(store), gate)
        assert context.resolve() == GateState.UNAUTHENTICATED
        decision = context.authorize(None, "/dashboard")
        assert decision.target == "/login"

    def test_expired_session_is_unauthenticated(self, store, gate, coach1):
        from datetime import datetime, timezone
        expired = Session("s", "u", coach1.email, expires_at=datetime(2000, 1, 1, tzinfo=timezone.utc))
        context = AuthContext(FakeProvider(expired), IdentityResolver(store), gate)
        assert context.resolve() == GateState.UNAUTHENTICATED

    def test_sign_in_then_out(self, store, gate, admin_coach):
        provider = FakeProvider()
        resolver = IdentityResolver(store)
        context = AuthContext(provider, resolver, gate)

        session = context.sign_in(admin_coach.email, "pw")
        assert context.state == GateState.AUTHENTICATED_ADMIN
        assert resolver.cache.is_cached(session.session_id)

        context.sign_out()
        assert context.state == GateState.UNAUTHENTICATED
        assert not resolver.cache.is_cached(session.session_id)
        with pytest.raises(Unauthorized):
            context.require(None, "/players")

    def test_no_stale_admin_after_demotion_and_session_change(self, store, gate, admin_coach):
        session = Session("s", "u", admin_coach.email)
        provider = FakeProvider(session)
        context = AuthContext(provider, IdentityResolver(store), gate)
        assert context.resolve() == GateState.AUTHENTICATED_ADMIN

        store.update(Collections.COACHES, admin_coach.id, {"is_admin": False})
        provider.emit(SessionEvent.TOKEN_REFRESHED, session)

        assert context.state == GateState.AUTHENTICATED_COACH
        with pytest.raises(Forbidden):
            context.require(Role.ADMIN, "/admin")

    def test_store_failure_on_change_stays_unresolved(self, store, gate, coach1):
        session = Session("s", "u", coach1.email)
        provider = FakeProvider(session)
        context = AuthContext(provider, IdentityResolver(store), gate)
        context.resolve()

        store.fail_on("list", Collections.COACHES)
        provider.emit(SessionEvent.TOKEN_REFRESHED, session)
        assert context.state == GateState.UNRESOLVED
        assert context.principal is None

        # Next resolve retries
        assert context.resolve() == GateState.AUTHENTICATED_COACH

    def test_store_failure_on_resolve_propagates(self, store, gate, coach1):
        provider = FakeProvider(Session("s", "u", coach1.email))
        context = AuthContext(provider, IdentityResolver(store), gate)
        store.fail_on("list", Collections.COACHES)

        with pytest.raises(StoreUnavailable):
            context.require(None, "/dashboard")
        assert context.state == GateState.UNRESOLVED

    def test_close_unsubscribes(self, store, gate):
        provider = FakeProvider()
        context = AuthContext(provider, IdentityResolver(store), gate)
        assert len(provider.handlers) == 1
        context.close()
        assert provider.handlers == []
