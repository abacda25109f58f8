"""Application settings and configuration.

This module defines all configuration options for the Divine Panel service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Shared secrets default to unset. An unset secret never crashes the
    service; the endpoints guarded by it simply deny every attempt.
    """

    # Application metadata
    app_name: str = Field(default="Divine Panel", alias="APP_NAME")
    app_version: str = Field(default="0.3.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Shared secrets
    admin_pin: str = Field(default="", alias="ADMIN_PIN")
    auth_pin: str = Field(default="", alias="AUTH_PIN")
    unban_pin: str = Field(default="", alias="UNBAN_PIN")

    # Durable storage
    database_url: str = Field(default="sqlite:///./divine_panel.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Source address resolution for IP bans
    trust_proxy: bool = Field(default=False, alias="TRUST_PROXY")

    # Broadcast messages
    broadcast_ttl_seconds: int = Field(default=24 * 60 * 60, alias="BROADCAST_TTL_SECONDS")
    broadcast_max_length: int = Field(default=1000, alias="BROADCAST_MAX_LENGTH")

    # Desktop-traffic reclassification
    heuristic_enabled: bool = Field(default=True, alias="HEURISTIC_ENABLED")

    # CORS configuration for the static site
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "X-Admin-Pin"],
        alias="CORS_ALLOW_HEADERS",
    )

    # HTTP server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def broadcast_ttl_ms(self) -> int:
        """Return the broadcast lifetime in milliseconds."""
        return self.broadcast_ttl_seconds * 1000

    @property
    def unset_secrets(self) -> list[str]:
        """Return the environment names of shared secrets that are not configured."""
        missing = []
        if not self.admin_pin:
            missing.append("ADMIN_PIN")
        if not self.auth_pin:
            missing.append("AUTH_PIN")
        if not self.unban_pin:
            missing.append("UNBAN_PIN")
        return missing


settings = Settings()
