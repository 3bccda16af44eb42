"""
API test fixtures.

Each test gets a fresh app in mock store + mock auth mode. The mock
accounts are seeded as coaches on startup; `stranger@example.com` can
sign in at the identity provider but has no coach row.
"""

import pytest
from fastapi.testclient import TestClient

from coachboard.config.settings import get_settings
from coachboard.main import create_app

PASSWORD = "password"
COACH_EMAIL = "coach@example.com"
ADMIN_EMAIL = "admin@example.com"
STRANGER_EMAIL = "stranger@example.com"


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("STORE_MOCK_MODE", "true")
    monkeypatch.setenv("AUTH_MOCK_MODE", "true")
    monkeypatch.setenv("AUTH_JWT_SECRET", "api-test-secret")
    monkeypatch.setenv("AUTH_MOCK_ACCOUNTS", f"{COACH_EMAIL}:{PASSWORD},{ADMIN_EMAIL}:{PASSWORD}")
    monkeypatch.setenv("AUTH_MOCK_ADMIN_EMAILS", ADMIN_EMAIL)
    get_settings.cache_clear()

    app = create_app()
    app.state.mock_auth.add_account(STRANGER_EMAIL, PASSWORD)
    yield app

    get_settings.cache_clear()


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def store(app):
    return app.state.mock_store


def _sign_in(client, email: str, password: str = PASSWORD) -> dict:
    response = client.post("/api/v1/auth/sign-in", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def sign_in(client):
    """Sign in and return bearer headers."""
    return lambda email, password=PASSWORD: _sign_in(client, email, password)


@pytest.fixture
def coach_headers(client):
    return _sign_in(client, COACH_EMAIL)


@pytest.fixture
def admin_headers(client):
    return _sign_in(client, ADMIN_EMAIL)


@pytest.fixture
def player_id(client, coach_headers):
    response = client.post(
        "/api/v1/players",
        json={"first_name": "Jane", "last_name": "Doe", "position": "Midfield"},
        headers=coach_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]
