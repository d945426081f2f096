"""Application configuration loaded from environment variables.

Settings for the database, HTTP surface, session tokens, credential
lifecycle and mail delivery. Uses pydantic-settings for validation and
.env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "fintrack_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "fintrack"
    database_user: str = "fintrack_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Public origin of the web app. Post-auth redirects are confined to it
    # and email links are built from it.
    app_base_url: str = "http://localhost:3000"

    # Session tokens
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "fintrack"
    auth_audience: str = "fintrack"
    auth_cookie_name: str = "fintrack.session-token"
    auth_cookie_secure: bool = True
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    auth_cookie_domain: str = ""
    session_max_age_seconds: int = 30 * 24 * 60 * 60
    session_refresh_interval_seconds: int = 60 * 60

    # Credential lifecycle
    verification_token_ttl_seconds: int = 7 * 24 * 60 * 60
    password_reset_token_ttl_seconds: int = 60 * 60
    unverified_grace_period_days: int = 30
    bcrypt_rounds: int = 12

    # External identity providers (the credentials provider is always on)
    google_client_id: str = ""
    google_client_secret: SecretStr = SecretStr("")
    github_client_id: str = ""
    github_client_secret: SecretStr = SecretStr("")

    # Email
    email_from: str = "onboarding@resend.dev"
    resend_api_key: SecretStr = SecretStr("")

    # Rate Limiting (Security)
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def enabled_providers(self) -> list[str]:
        """Sign-in providers available in this deployment.

        External providers are listed only when both client id and secret
        are configured. ``credentials`` is always last and always present.
        """
        providers = []
        if self.google_client_id and self.google_client_secret.get_secret_value():
            providers.append("google")
        if self.github_client_id and self.github_client_secret.get_secret_value():
            providers.append("github")
        providers.append("credentials")
        return providers

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate production security requirements.

        Security: Prevents deployment with known insecure defaults.
        Checks:
        - Token lifetimes and bcrypt cost must be positive (all environments)
        - CORS must not use wildcard origin (incompatible with credentials)
        - SameSite=None requires Secure flag (browser requirement)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        """
        if self.auth_cookie_samesite == "none" and not self.auth_cookie_secure:
            msg = (
                "AUTH_COOKIE_SECURE must be true when AUTH_COOKIE_SAMESITE=none. "
                "Browsers reject SameSite=None cookies without the Secure flag."
            )
            raise ValueError(msg)

        for name in (
            "session_max_age_seconds",
            "session_refresh_interval_seconds",
            "verification_token_ttl_seconds",
            "password_reset_token_ttl_seconds",
        ):
            if getattr(self, name) <= 0:
                msg = f"{name.upper()} must be positive. Got: {getattr(self, name)}"
                raise ValueError(msg)

        # bcrypt accepts cost factors 4..31
        if not 4 <= self.bcrypt_rounds <= 31:
            msg = f"BCRYPT_ROUNDS must be between 4 and 31. Got: {self.bcrypt_rounds}"
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "AUTH_SECRET must be set in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters for adequate security."
                )
                raise ValueError(msg)

        return self


settings = Settings()
