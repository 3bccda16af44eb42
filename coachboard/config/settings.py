"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock modes enable local development without external services.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Only used when AUTH_MOCK_MODE is on and no secret is configured
MOCK_JWT_SECRET = "coachboard-mock-signing-secret-not-for-production"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "CoachBoard API"
    api_version: str = "v1"

    # Record store
    store_mock_mode: bool = Field(
        default=False,
        description="Use the in-memory record store instead of Snowflake."
    )

    # Snowflake Configuration
    snowflake_account: str = Field(
        default="",
        description="Snowflake account identifier"
    )
    snowflake_user: str = Field(
        default="",
        description="Snowflake service account username"
    )
    snowflake_password: str = Field(
        default="",
        description="Snowflake service account password"
    )
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="Base64-encoded private key (for deployment, alternative to file path)"
    )
    snowflake_database: str = Field(
        default="COACHBOARD",
        description="Snowflake database name"
    )
    snowflake_schema: str = Field(
        default="PUBLIC",
        description="Snowflake schema name"
    )
    snowflake_warehouse: str = Field(
        default="COMPUTE_WH",
        description="Snowflake warehouse for query execution"
    )
    snowflake_role: Optional[str] = Field(
        default=None,
        description="Snowflake role to use (optional)"
    )

    # Identity provider
    auth_mock_mode: bool = Field(
        default=False,
        description="Use in-memory accounts instead of the hosted auth service."
    )
    auth_url: str = Field(
        default="",
        description="Base URL of the hosted auth service (e.g. https://<project>.supabase.co)"
    )
    auth_anon_key: str = Field(
        default="",
        description="Public API key sent with auth requests"
    )
    auth_jwt_secret: str = Field(
        default="",
        description="Secret used to verify access tokens (HS256)"
    )
    auth_jwt_audience: str = Field(
        default="authenticated",
        description="Expected 'aud' claim on access tokens"
    )
    auth_timeout_seconds: float = Field(
        default=10.0,
        description="HTTP timeout for auth service calls"
    )
    auth_mock_accounts: str = Field(
        default="coach@example.com:password,admin@example.com:password",
        description="Comma-separated email:password pairs for mock mode."
    )
    auth_mock_admin_emails: str = Field(
        default="admin@example.com",
        description="Comma-separated mock account emails seeded as admins."
    )

    # Access gate
    login_path: str = Field(
        default="/login",
        description="Where unauthenticated callers are sent"
    )
    default_area_path: str = Field(
        default="/dashboard",
        description="Where callers lacking a required role are sent"
    )

    # Roster behaviour
    recent_observation_days: int = Field(
        default=7,
        description="Window for 'recent' observations and the weekly count"
    )
    observation_list_limit: int = Field(
        default=100,
        description="Maximum observations returned by list endpoints"
    )
    activity_log_limit: int = Field(
        default=50,
        description="Maximum activity entries returned"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def mock_accounts(self) -> dict[str, str]:
        """Parse email:password pairs."""
        accounts = {}
        for pair in self.auth_mock_accounts.split(","):
            email, sep, password = pair.strip().partition(":")
            if sep and email:
                accounts[email.strip()] = password
        return accounts

    @property
    def mock_admin_emails_list(self) -> list[str]:
        return [email.strip() for email in self.auth_mock_admin_emails.split(",") if email.strip()]

    @property
    def jwt_signing_secret(self) -> str:
        """
        Secret for verifying (and in mock mode, signing) access tokens.

        Falls back to a fixed development secret only in mock mode.
        """
        if self.auth_jwt_secret:
            return self.auth_jwt_secret
        if self.auth_mock_mode:
            return MOCK_JWT_SECRET
        return ""

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        # Snowflake only required if not in mock mode
        if not self.store_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            # Need either password or private key
            if (
                not self.snowflake_password
                and not self.snowflake_private_key_path
                and not self.snowflake_private_key_base64
            ):
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        # Hosted auth only required if not in mock mode
        if not self.auth_mock_mode:
            if not self.auth_url:
                missing.append("AUTH_URL")
            if not self.auth_anon_key:
                missing.append("AUTH_ANON_KEY")
            if not self.auth_jwt_secret:
                missing.append("AUTH_JWT_SECRET")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
