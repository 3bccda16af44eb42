"""
Tests for access tokens and the two identity provider implementations.

The hosted provider is exercised against httpx.MockTransport, so no
network is touched.
"""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from coachboard.core.errors import IdentityUnavailable, InvalidCredentials
from coachboard.core.identity import SessionEvent
from coachboard.infrastructure.auth import (
    HostedAuthConfig,
    HostedIdentityProvider,
    MockAuthBackend,
    MockIdentityProvider,
    decode_access_token,
    encode_access_token,
)

SECRET = "test-secret"


def claims(**overrides):
    now = datetime.now(timezone.utc)
    base = {
        "sub": "user-1",
        "email": "coach@example.com",
        "aud": "authenticated",
        "session_id": "sess-1",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=1)).timestamp()),
    }
    base.update(overrides)
    return base


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

class TestTokens:

    def test_round_trip_to_session(self):
        token = encode_access_token(claims(), SECRET)
        session = decode_access_token(token, SECRET)
        assert session.session_id == "sess-1"
        assert session.email == "coach@example.com"
        assert session.access_token == token
        assert session.expires_at > datetime.now(timezone.utc)

    def test_wrong_secret_rejected(self):
        token = encode_access_token(claims(), SECRET)
        with pytest.raises(InvalidCredentials):
            decode_access_token(token, "other-secret")

    def test_wrong_audience_rejected(self):
        token = encode_access_token(claims(aud="someone-else"), SECRET)
        with pytest.raises(InvalidCredentials):
            decode_access_token(token, SECRET)

    def test_expired_token_rejected(self):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = encode_access_token(
            claims(iat=int(past.timestamp()), exp=int((past + timedelta(hours=1)).timestamp())),
            SECRET,
        )
        with pytest.raises(InvalidCredentials):
            decode_access_token(token, SECRET)

    def test_missing_email_rejected(self):
        payload = claims()
        del payload["email"]
        with pytest.raises(InvalidCredentials):
            decode_access_token(encode_access_token(payload, SECRET), SECRET)

    def test_session_id_falls_back_to_jti(self):
        payload = claims(jti="jwt-id")
        del payload["session_id"]
        session = decode_access_token(encode_access_token(payload, SECRET), SECRET)
        assert session.session_id == "jwt-id"

    @pytest.mark.parametrize("token,secret", [("", SECRET), ("abc", "")])
    def test_missing_token_or_secret(self, token, secret):
        with pytest.raises(InvalidCredentials):
            decode_access_token(token, secret)


# ---------------------------------------------------------------------------
# Mock provider
# ---------------------------------------------------------------------------

@pytest.fixture
def backend():
    return MockAuthBackend({"coach@example.com": "pw"}, jwt_secret=SECRET)


class TestMockIdentityProvider:

    def test_sign_in_notifies(self, backend):
        provider = MockIdentityProvider(backend)
        events = []
        provider.on_session_change(lambda event, session: events.append(event))

        session = provider.sign_in("coach@example.com", "pw")

        assert provider.get_session() == session
        assert events == [SessionEvent.SIGNED_IN]

    def test_bad_password(self, backend):
        with pytest.raises(InvalidCredentials):
            MockIdentityProvider(backend).sign_in("coach@example.com", "wrong")

    def test_unknown_account(self, backend):
        with pytest.raises(InvalidCredentials):
            MockIdentityProvider(backend).sign_in("nobody@example.com", "pw")

    def test_restore_from_token_without_event(self, backend):
        token = MockIdentityProvider(backend).sign_in("coach@example.com", "pw").access_token

        provider = MockIdentityProvider(backend)
        events = []
        provider.on_session_change(lambda event, session: events.append(event))

        session = provider.restore(token)
        assert session.email == "coach@example.com"
        assert events == []

    def test_sign_out_revokes_token(self, backend):
        provider = MockIdentityProvider(backend)
        session = provider.sign_in("coach@example.com", "pw")
        events = []
        provider.on_session_change(lambda event, s: events.append((event, s)))

        provider.sign_out()

        assert provider.get_session() is None
        assert events == [(SessionEvent.SIGNED_OUT, session)]
        with pytest.raises(InvalidCredentials):
            MockIdentityProvider(backend).restore(session.access_token)

    def test_each_sign_in_is_a_new_session(self, backend):
        provider = MockIdentityProvider(backend)
        first = provider.sign_in("coach@example.com", "pw")
        second = provider.sign_in("coach@example.com", "pw")
        assert first.session_id != second.session_id
        assert first.user_id == second.user_id

    def test_unsubscribe(self, backend):
        provider = MockIdentityProvider(backend)
        events = []
        unsubscribe = provider.on_session_change(lambda event, session: events.append(event))
        unsubscribe()
        provider.sign_in("coach@example.com", "pw")
        assert events == []


# ---------------------------------------------------------------------------
# Hosted provider
# ---------------------------------------------------------------------------

def hosted_provider(handler) -> HostedIdentityProvider:
    config = HostedAuthConfig(url="https://auth.example.com/", anon_key="anon", jwt_secret=SECRET)
    client = httpx.Client(base_url=config.url, transport=httpx.MockTransport(handler))
    return HostedIdentityProvider(config, http_client=client)


class TestHostedIdentityProvider:

    def test_config_strips_trailing_slash(self):
        config = HostedAuthConfig(url="https://auth.example.com/", anon_key="a", jwt_secret="s")
        assert config.url == "https://auth.example.com"

    def test_config_requires_secret(self):
        with pytest.raises(ValueError):
            HostedAuthConfig(url="https://auth.example.com", anon_key="a", jwt_secret="")

    def test_sign_in_posts_password_grant(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"access_token": encode_access_token(claims(), SECRET)})

        provider = hosted_provider(handler)
        events = []
        provider.on_session_change(lambda event, session: events.append(event))

        session = provider.sign_in("coach@example.com", "pw")

        sent = requests[0]
        assert sent.url.path == "/auth/v1/token"
        assert sent.url.params["grant_type"] == "password"
        assert sent.headers["apikey"] == "anon"
        assert json.loads(sent.content) == {"email": "coach@example.com", "password": "pw"}
        assert session.session_id == "sess-1"
        assert provider.get_session() == session
        assert events == [SessionEvent.SIGNED_IN]

    def test_rejected_credentials(self):
        provider = hosted_provider(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))
        with pytest.raises(InvalidCredentials):
            provider.sign_in("coach@example.com", "bad")
        assert provider.get_session() is None

    def test_server_error_is_unavailable(self):
        provider = hosted_provider(lambda request: httpx.Response(502))
        with pytest.raises(IdentityUnavailable) as exc_info:
            provider.sign_in("coach@example.com", "pw")
        assert exc_info.value.retryable is True

    def test_network_error_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(IdentityUnavailable):
            hosted_provider(handler).sign_in("coach@example.com", "pw")

    def test_sign_out_ends_session_even_if_remote_fails(self):
        def handler(request):
            if request.url.path == "/auth/v1/logout":
                return httpx.Response(500)
            return httpx.Response(200, json={"access_token": encode_access_token(claims(), SECRET)})

        provider = hosted_provider(handler)
        provider.sign_in("coach@example.com", "pw")
        events = []
        provider.on_session_change(lambda event, session: events.append(event))

        provider.sign_out()

        assert provider.get_session() is None
        assert events == [SessionEvent.SIGNED_OUT]

    def test_restore(self):
        provider = hosted_provider(lambda request: httpx.Response(500))
        session = provider.restore(encode_access_token(claims(), SECRET))
        assert provider.get_session() == session


class TestTokenRefresh:

    def test_mock_restore_of_newer_token_for_same_session(self, backend):
        provider = MockIdentityProvider(backend)
        provider.restore(encode_access_token(claims(), SECRET))
        events = []
        provider.on_session_change(lambda event, session: events.append((event, session)))

        later = int((datetime.now(timezone.utc) + timedelta(hours=2)).timestamp())
        refreshed = provider.restore(encode_access_token(claims(exp=later), SECRET))

        assert events == [(SessionEvent.TOKEN_REFRESHED, refreshed)]
        assert provider.get_session() == refreshed

    def test_hosted_restore_of_newer_token_for_same_session(self):
        provider = hosted_provider(lambda request: httpx.Response(500))
        provider.restore(encode_access_token(claims(), SECRET))
        events = []
        provider.on_session_change(lambda event, session: events.append(event))

        later = int((datetime.now(timezone.utc) + timedelta(hours=2)).timestamp())
        provider.restore(encode_access_token(claims(exp=later), SECRET))

        assert events == [SessionEvent.TOKEN_REFRESHED]

    def test_same_token_or_other_session_is_not_a_refresh(self):
        provider = hosted_provider(lambda request: httpx.Response(500))
        token = encode_access_token(claims(), SECRET)
        provider.restore(token)
        events = []
        provider.on_session_change(lambda event, session: events.append(event))

        provider.restore(token)
        provider.restore(encode_access_token(claims(session_id="sess-2"), SECRET))

        assert events == []


def test_expired_revocations_are_pruned(backend):
    past = datetime.now(timezone.utc) - timedelta(minutes=1)
    for i in range(50):
        backend.revoke(f"old-{i}", expires_at=past)

    backend.revoke("current", expires_at=datetime.now(timezone.utc) + timedelta(hours=1))

    assert backend.revoked_count() == 1
    assert backend.is_revoked("current")
