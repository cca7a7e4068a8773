"""Application configuration loaded from environment variables.

Settings for the database, HTTP surface, logging, token signing and email
delivery. Uses pydantic-settings for validation and .env file support.
"""

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

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
    database_url: str = "sqlite+aiosqlite:///./sheroshayari.db"

    # CORS (Security)
    # Default allows the single-page client dev servers
    # CRITICAL: Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = [
        "http://localhost:5160",
        "https://localhost:7160",
        "http://localhost:5173",
    ]

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False

    # Bearer tokens
    auth_secret: SecretStr = SecretStr("")
    # Retired signing keys still accepted for purpose tokens (oldest first)
    auth_previous_secrets: list[SecretStr] = []
    auth_issuer: str = "SheroShayariAPI"
    auth_audience: str = "SheroShayariUsers"
    access_token_ttl_minutes: int = 60

    # Purpose tokens (email confirmation, password reset)
    purpose_token_ttl_hours: int = 24

    # Passwords
    password_hash_rounds: int = 12
    password_min_length: int = 6
    require_confirmed_email: bool = False

    # Anti-enumeration: when true, forgot-password hides email transport
    # failures behind the generic success message instead of returning 503
    mask_forgot_password_email_errors: bool = False

    # Email (Resend HTTP API)
    email_from: str = "noreply@sheroshayari.com"
    email_from_name: str = "SheroShayari"
    resend_api_key: SecretStr = SecretStr("")
    resend_api_url: str = "https://api.resend.com/emails"
    email_timeout_seconds: float = 10.0

    # Single-page client URL (password reset links land here)
    frontend_url: str = "http://localhost:5160"

    # API URL (email confirmation links hit the API directly)
    backend_url: str = "http://localhost:8000"

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_login: str = "5/15minute"
    rate_limit_register: str = "3/hour"
    rate_limit_password_reset: str = "5/hour"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def signing_secrets(self) -> list[str]:
        """Secret keys for purpose tokens, oldest first, current last."""
        return [s.get_secret_value() for s in self.auth_previous_secrets] + [
            self.auth_secret.get_secret_value()
        ]

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate production security requirements.

        Security: Prevents deployment with known insecure defaults.
        Checks:
        - Token lifetimes must be positive (all environments)
        - CORS must not use wildcard origin (incompatible with credentials)
        - AUTH_SECRET must be set and >= 32 chars in production
        - RESEND_API_KEY must be set in production
        """
        if self.access_token_ttl_minutes <= 0:
            msg = (
                "ACCESS_TOKEN_TTL_MINUTES must be positive. "
                f"Got: {self.access_token_ttl_minutes}"
            )
            raise ValueError(msg)
        if self.purpose_token_ttl_hours <= 0:
            msg = (
                "PURPOSE_TOKEN_TTL_HOURS must be positive. "
                f"Got: {self.purpose_token_ttl_hours}"
            )
            raise ValueError(msg)

        # CORS wildcard with credentials is invalid (all environments)
        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application sends credentials which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
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
            if not self.resend_api_key.get_secret_value():
                msg = "RESEND_API_KEY must be set in production."
                raise ValueError(msg)

        return self


settings = Settings()
