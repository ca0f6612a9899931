"""Application configuration.

Process-level settings come from the environment (or ``.env``). Integration
settings (directory, Graph, Exchange, WhatsApp) live in the database and are
managed through the settings service.
"""

import base64
import binascii
from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn, RedisDsn, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SECRET_UNIQUE_CHARS = 16

KEY_GEN_CMD = (
    'python -c "import secrets,base64;'
    'print(base64.urlsafe_b64encode(secrets.token_bytes(32)).decode())"'
)

# Hosts reachable without TLS from inside the deployment
INTERNAL_DB_HOSTS = ("@postgres:", "@localhost:", "@127.0.0.1:")


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Onboarding Admin API"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Database (required)
    database_url: PostgresDsn = Field(description="PostgreSQL connection URL")
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Without Redis, listings are not cached and rate limits stay in memory
    redis_url: RedisDsn | None = None

    # AES-GCM key for integration secrets; legacy keys are comma-separated, oldest first
    encryption_key: str = Field(min_length=32)
    encryption_key_legacy: str = ""

    jwt_secret: str = Field(min_length=32)
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 8
    jwt_issuer: str = "onboarding-api"
    jwt_audience: str = "onboarding-app"

    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    cors_origins: str = "http://localhost:3000"
    trusted_proxies: str = ""

    # Requests per minute
    rate_limit_default: int = 200
    rate_limit_auth_login: int = 10
    rate_limit_auth_register: int = 5
    rate_limit_integration_test: int = 10
    rate_limit_messaging: int = 30
    rate_limit_sensitive: int = 10

    cache_ttl_hires: int = 60

    # Items processed concurrently by bulk create-account, sync and send
    bulk_concurrency: int = Field(default=8, ge=1, le=64)

    ldap_connect_timeout: int = 10
    ldap_receive_timeout: int = 5
    hris_login_timeout: int = 10
    hris_query_timeout: int = 30
    http_timeout_seconds: float = 10.0

    srf_max_size_mb: int = Field(default=10, ge=1, le=100)

    # Runs the HRIS sync schedule; disable on all but one replica
    scheduler_enabled: bool = True

    @field_validator("database_url")
    @classmethod
    def _postgres_only(cls, value: PostgresDsn) -> PostgresDsn:
        if not str(value).startswith(("postgresql://", "postgres://")):
            raise ValueError("DATABASE_URL must start with 'postgresql://' or 'postgres://'")
        return value

    @model_validator(mode="after")
    def _production_requirements(self) -> "Settings":
        """Refuse insecure combinations outside development and staging."""
        if self.environment != "production":
            return self

        if self.debug:
            raise ValueError("DEBUG cannot be enabled in production")

        url = str(self.database_url)
        if "sslmode=" not in url and not any(host in url for host in INTERNAL_DB_HOSTS):
            raise ValueError("DATABASE_URL must set sslmode in production (e.g. sslmode=require)")

        if len(set(self.jwt_secret)) < MIN_SECRET_UNIQUE_CHARS:
            raise ValueError(
                f"JWT_SECRET needs at least {MIN_SECRET_UNIQUE_CHARS} distinct characters"
            )

        try:
            key = base64.urlsafe_b64decode(self.encryption_key)
        except (binascii.Error, ValueError):
            key = b""
        if len(key) != 32:
            raise ValueError(f"ENCRYPTION_KEY must be a base64 32-byte key. Generate with: {KEY_GEN_CMD}")

        return self

    @property
    def async_database_url(self) -> str:
        """``database_url`` for the asyncpg driver, with sslmode renamed to ssl."""
        _, _, rest = str(self.database_url).partition("://")
        return f"postgresql+asyncpg://{rest}".replace("sslmode=", "ssl=")

    @property
    def cors_origins_list(self) -> list[str]:
        return _split_csv(self.cors_origins)

    @property
    def trusted_proxies_list(self) -> list[str]:
        return _split_csv(self.trusted_proxies)

    @property
    def srf_max_size_bytes(self) -> int:
        return self.srf_max_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
