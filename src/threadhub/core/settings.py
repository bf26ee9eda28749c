"""Application settings and configuration.

This module defines all configuration options for the threadhub application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files. The
    three signing secrets have no defaults and must always be provided.
    """

    # Application metadata
    app_name: str = Field(default="threadhub", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./threadhub.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")

    # JWT authentication settings
    jwt_access_secret: str = Field(alias="JWT_ACCESS_SECRET")
    jwt_refresh_secret: str = Field(alias="JWT_REFRESH_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    refresh_token_expire_days: int = Field(default=7, alias="REFRESH_TOKEN_EXPIRE_DAYS")

    # Server-side key for hashing stored refresh tokens
    hmac_refresh_salt: str = Field(alias="HMAC_REFRESH_SALT")

    # bcrypt cost factor for account passwords
    password_hash_rounds: int = Field(default=12, alias="PASSWORD_HASH_ROUNDS")

    # Media storage
    media_root: str = Field(default="./media", alias="MEDIA_ROOT")
    media_base_url: str = Field(default="/media", alias="MEDIA_BASE_URL")
    max_media_bytes: int = Field(default=10 * 1024 * 1024, alias="MAX_MEDIA_BYTES")
    max_avatar_bytes: int = Field(default=2 * 1024 * 1024, alias="MAX_AVATAR_BYTES")

    # Refresh token cookie
    refresh_cookie_name: str = Field(default="refreshToken", alias="REFRESH_COOKIE_NAME")
    refresh_cookie_samesite: str = Field(default="none", alias="REFRESH_COOKIE_SAMESITE")
    refresh_cookie_secure: bool | None = Field(default=None, alias="REFRESH_COOKIE_SECURE")

    # Offset pagination
    default_page_size: int = Field(default=10, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=50, alias="MAX_PAGE_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:5174"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
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
        populate_by_name=True,
    )

    @property
    def is_production(self) -> bool:
        """Return True when running with production hardening enabled."""
        return self.environment.lower() == "production"

    @property
    def cookie_secure(self) -> bool:
        """Return whether the refresh cookie carries the ``Secure`` flag.

        Browsers drop ``SameSite=None`` cookies that are not ``Secure``, so that
        combination always sets the flag. Otherwise an explicit
        ``REFRESH_COOKIE_SECURE`` wins, and failing that the flag follows the
        environment.
        """
        if self.refresh_cookie_samesite.lower() == "none":
            return True
        if self.refresh_cookie_secure is not None:
            return self.refresh_cookie_secure
        return self.is_production

    @property
    def refresh_max_age_seconds(self) -> int:
        """Return the refresh-token lifetime in seconds."""
        return self.refresh_token_expire_days * 24 * 60 * 60


def get_settings() -> Settings:
    """Load settings from the environment."""
    return Settings()  # type: ignore[call-arg]
