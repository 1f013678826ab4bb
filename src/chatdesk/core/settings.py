"""Application settings and configuration.

This module defines all configuration options for the Chatdesk application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    This class defines all configuration options for the Chatdesk application.
    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Chatdesk", alias="APP_NAME")
    admin_email: str | None = Field(default=None, alias="ADMIN_EMAIL")
    base_url: str | None = Field(default=None, alias="BASE_URL")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    strict_config: bool = Field(default=False, alias="STRICT_CONFIG")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    password_reset_secret: str | None = Field(default=None, alias="PASSWORD_RESET_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    password_reset_expire_minutes: int = Field(
        default=15,
        alias="PASSWORD_RESET_EXPIRE_MINUTES",
    )
    password_min_length: int = Field(default=6, alias="PASSWORD_MIN_LENGTH")

    # Database configuration
    database_url: str = Field(default="sqlite:///./chatdesk.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis backs the expiring store and realtime fan-out when configured
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Realtime fan-out advertised to clients
    realtime_endpoint: str = Field(default="/api/chat/ws", alias="REALTIME_ENDPOINT")
    realtime_key: str | None = Field(default=None, alias="REALTIME_KEY")

    # Chat subsystem
    chat_encryption_key: str | None = Field(default=None, alias="CHAT_ENCRYPTION_KEY")
    chat_retention_limit: int = Field(default=500, alias="CHAT_RETENTION_LIMIT")
    chat_history_limit: int = Field(default=100, alias="CHAT_HISTORY_LIMIT")
    chat_max_message_length: int = Field(default=2000, alias="CHAT_MAX_MESSAGE_LENGTH")

    # Registration and login throttling
    verification_code_ttl_seconds: int = Field(
        default=300,
        alias="VERIFICATION_CODE_TTL_SECONDS",
    )
    login_rate_limit_attempts: int = Field(default=5, alias="LOGIN_RATE_LIMIT_ATTEMPTS")
    login_rate_limit_window_seconds: int = Field(
        default=900,
        alias="LOGIN_RATE_LIMIT_WINDOW_SECONDS",
    )

    # Transactional email (Resend)
    resend_api_key: str | None = Field(default=None, alias="RESEND_API_KEY")
    resend_api_url: str = Field(default="https://api.resend.com/emails", alias="RESEND_API_URL")
    mail_from_address: str | None = Field(default=None, alias="MAIL_FROM_ADDRESS")
    mail_from_name: str = Field(default="Chatdesk", alias="MAIL_FROM_NAME")

    # Bot verification (Cloudflare Turnstile)
    turnstile_secret_key: str | None = Field(default=None, alias="TURNSTILE_SECRET_KEY")
    turnstile_verify_url: str = Field(
        default="https://challenges.cloudflare.com/turnstile/v0/siteverify",
        alias="TURNSTILE_VERIFY_URL",
    )
    external_http_timeout_seconds: float = Field(
        default=10.0,
        alias="EXTERNAL_HTTP_TIMEOUT_SECONDS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_password_reset_secret(self) -> str:
        """Return the reset-token signing secret, deriving one if unset."""
        return self.password_reset_secret or f"{self.secret_key}:password-reset"

    def missing_required(self) -> list[str]:
        """Return the env names of external settings that are not configured.

        Returns:
            Environment variable names, in declaration order
        """
        required = {
            "PASSWORD_RESET_SECRET": self.password_reset_secret,
            "BASE_URL": self.base_url,
            "TURNSTILE_SECRET_KEY": self.turnstile_secret_key,
            "RESEND_API_KEY": self.resend_api_key,
            "MAIL_FROM_ADDRESS": self.mail_from_address,
        }
        return [name for name, value in required.items() if not value]


settings = Settings()  # type: ignore[call-arg]
