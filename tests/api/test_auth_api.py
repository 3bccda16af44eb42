"""Sign-in, sign-out and route guard tests."""

COACH_EMAIL = "coach@example.com"
ADMIN_EMAIL = "admin@example.com"
STRANGER_EMAIL = "stranger@example.com"


class TestSignIn:

    def test_coach_sign_in(self, client):
        response = client.post(
            "/api/v1/auth/sign-in",
            json={"email": COACH_EMAIL, "password": "password"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "coach"
        assert body["token_type"] == "bearer"
        assert body["access_token"]

    def test_admin_sign_in(self, client):
        response = client.post(
            "/api/v1/auth/sign-in",
            json={"email": ADMIN_EMAIL, "password": "password"},
        )
        assert response.json()["role"] == "admin"

    def test_wrong_password(self, client):
        response = client.post(
            "/api/v1/auth/sign-in",
            json={"email": COACH_EMAIL, "password": "nope"},
        )
        assert response.status_code == 401

    def test_unregistered_user_is_refused(self, client, app):
        response = client.post(
            "/api/v1/auth/sign-in",
            json={"email": STRANGER_EMAIL, "password": "password"},
        )
        assert response.status_code == 401
        assert "No coach account" in response.json()["detail"]
        # The provider session was ended, so nothing is left cached
        assert len(app.state.role_cache) == 0


class TestMe:

    def test_me(self, client, coach_headers):
        response = client.get("/api/v1/auth/me", headers=coach_headers)
        assert response.status_code == 200
        body = response.json()
        assert body == {
            "email": COACH_EMAIL,
            "role": "coach",
            "is_admin": False,
            "state": "authenticated_coach",
        }

    def test_me_without_token_redirects_to_login(self, client):
        response = client.get("/api/v1/auth/me")
        assert response.status_code == 401
        body = response.json()
        assert body["redirect"] == "/login"
        assert body["from"] == "/api/v1/auth/me"

    def test_garbage_token(self, client):
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_role_is_cached_per_session(self, client, app, coach_headers):
        client.get("/api/v1/auth/me", headers=coach_headers)
        client.get("/api/v1/auth/me", headers=coach_headers)
        assert len(app.state.role_cache) == 1


class TestSignOut:

    def test_sign_out_revokes_token(self, client, app, coach_headers):
        assert len(app.state.role_cache) == 1

        response = client.post("/api/v1/auth/sign-out", headers=coach_headers)
        assert response.status_code == 204
        assert len(app.state.role_cache) == 0

        assert client.get("/api/v1/auth/me", headers=coach_headers).status_code == 401

    def test_sign_out_requires_session(self, client):
        assert client.post("/api/v1/auth/sign-out").status_code == 401


class TestAuthorize:

    def test_anonymous_redirected_to_login_with_from(self, client):
        response = client.get("/api/v1/auth/authorize", params={"path": "/players/7"})
        assert response.status_code == 200
        assert response.json() == {
            "decision": "redirect",
            "target": "/login",
            "reason": "unauthenticated",
            "from_path": "/players/7",
            "email": None,
            "role": None,
        }

    def test_coach_redirected_from_admin_area(self, client, coach_headers):
        response = client.get(
            "/api/v1/auth/authorize",
            params={"path": "/admin", "required_role": "admin"},
            headers=coach_headers,
        )
        body = response.json()
        assert body["decision"] == "redirect"
        assert body["target"] == "/dashboard"
        assert body["reason"] == "forbidden"

    def test_admin_allowed(self, client, admin_headers):
        response = client.get(
            "/api/v1/auth/authorize",
            params={"path": "/admin", "required_role": "admin"},
            headers=admin_headers,
        )
        body = response.json()
        assert body["decision"] == "allow"
        assert body["role"] == "admin"

    def test_coach_allowed_unrestricted_path(self, client, coach_headers):
        response = client.get(
            "/api/v1/auth/authorize",
            params={"path": "/dashboard"},
            headers=coach_headers,
        )
        assert response.json()["decision"] == "allow"


def test_registered_stranger_can_sign_in(client, admin_headers, sign_in):
    response = client.post(
        "/api/v1/admin/coaches",
        json={"email": STRANGER_EMAIL, "first_name": "New", "last_name": "Coach"},
        headers=admin_headers,
    )
    assert response.status_code == 201

    headers = sign_in(STRANGER_EMAIL)
    assert client.get("/api/v1/auth/me", headers=headers).json()["role"] == "coach"
