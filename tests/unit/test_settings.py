"""Tests for environment-driven settings."""

from coachboard.config.settings import MOCK_JWT_SECRET, Settings


def test_mock_accounts_parsing():
    settings = Settings(auth_mock_accounts="a@example.com:one, b@example.com:two:extra,bad")
    assert settings.mock_accounts == {"a@example.com": "one", "b@example.com": "two:extra"}


def test_cors_origins_list():
    assert Settings(cors_origins="*").cors_origins_list == ["*"]
    assert Settings(cors_origins="http://a, http://b,").cors_origins_list == ["http://a", "http://b"]


def test_jwt_secret_falls_back_only_in_mock_mode():
    assert Settings(auth_mock_mode=True, auth_jwt_secret="").jwt_signing_secret == MOCK_JWT_SECRET
    assert Settings(auth_mock_mode=False, auth_jwt_secret="").jwt_signing_secret == ""
    assert Settings(auth_mock_mode=True, auth_jwt_secret="real").jwt_signing_secret == "real"


def test_required_fields_depend_on_mock_modes():
    settings = Settings(
        store_mock_mode=False,
        auth_mock_mode=False,
        snowflake_account="",
        snowflake_user="",
        snowflake_password="",
        auth_url="",
        auth_anon_key="",
        auth_jwt_secret="",
    )
    missing = settings.validate_required_fields()
    assert "SNOWFLAKE_ACCOUNT" in missing
    assert "AUTH_URL" in missing

    assert Settings(store_mock_mode=True, auth_mock_mode=True).validate_required_fields() == []


def test_env_vars_override_defaults(monkeypatch):
    monkeypatch.setenv("RECENT_OBSERVATION_DAYS", "14")
    monkeypatch.setenv("STORE_MOCK_MODE", "true")
    settings = Settings()
    assert settings.recent_observation_days == 14
    assert settings.store_mock_mode is True
