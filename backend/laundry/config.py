"""Pydantic Settings configuration models.

Precedence, lowest first:
1. Defaults declared below
2. A .env file in the working directory
3. Environment variables, e.g. LAUNDRY_SECURITY__AUTH_MODE=bearer
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
VALID_LOG_FORMATS = frozenset({"console", "json"})
VALID_STORE_BACKENDS = frozenset({"json", "sqlite"})
VALID_AUTH_MODES = frozenset({"cookie", "bearer"})
VALID_SAMESITE = frozenset({"lax", "strict", "none"})


def _one_of(name: str, value: str, allowed: frozenset[str]) -> str:
    if value not in allowed:
        raise ValueError(f"{name} must be one of {sorted(allowed)}, got {value}")
    return value


class StoreConfig(BaseModel):
    """Entity store backend selection."""

    backend: str = "json"
    data_dir: str = "data"
    db_path: str = "data/laundry.db"

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        return _one_of("backend", v.lower(), VALID_STORE_BACKENDS)


class SecurityConfig(BaseModel):
    """Sessions, CSRF tokens, login throttling and password hashing."""

    auth_mode: str = "cookie"
    csrf_ttl_hours: int = Field(default=24, ge=1, le=168)
    session_ttl_hours: int = Field(default=168, ge=1, le=720)
    sweep_interval_seconds: int = Field(default=3600, ge=1, le=86400)
    max_login_attempts: int = Field(default=5, ge=1, le=20)
    lockout_minutes: int = Field(default=15, ge=1, le=1440)
    cookie_name: str = "laundry.sid"
    cookie_secure: bool = False
    cookie_samesite: str = "lax"
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)
    min_password_length: int = Field(default=8, ge=6, le=128)

    @field_validator("auth_mode")
    @classmethod
    def validate_auth_mode(cls, v: str) -> str:
        return _one_of("auth_mode", v.lower(), VALID_AUTH_MODES)

    @field_validator("cookie_samesite")
    @classmethod
    def validate_samesite(cls, v: str) -> str:
        return _one_of("cookie_samesite", v.lower(), VALID_SAMESITE)

    @model_validator(mode="after")
    def validate_ttls(self) -> SecurityConfig:
        # A session must outlive its bound token so the token can expire first.
        if self.session_ttl_hours <= self.csrf_ttl_hours:
            raise ValueError(
                f"session_ttl_hours ({self.session_ttl_hours}) must exceed "
                f"csrf_ttl_hours ({self.csrf_ttl_hours})"
            )
        return self


class IdentityConfig(BaseModel):
    """External identity provider (Google Sign-In)."""

    google_client_id: str = ""
    tokeninfo_url: str = "https://oauth2.googleapis.com/tokeninfo"
    timeout_seconds: float = Field(default=5.0, gt=0, le=60)


class WebConfig(BaseModel):
    """HTTP listener and allowed browser origins."""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    allowed_origins: list[str] = Field(
        default=["http://localhost:5500", "http://127.0.0.1:5500"],
    )


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Env var examples:
        LAUNDRY_LOG_LEVEL=DEBUG
        LAUNDRY_STORE__BACKEND=sqlite
        LAUNDRY_SECURITY__AUTH_MODE=bearer
        LAUNDRY_IDENTITY__GOOGLE_CLIENT_ID=1234.apps.googleusercontent.com
    """

    model_config = SettingsConfigDict(
        env_prefix="LAUNDRY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_format: str = "console"
    store: StoreConfig = StoreConfig()
    security: SecurityConfig = SecurityConfig()
    identity: IdentityConfig = IdentityConfig()
    web: WebConfig = WebConfig()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return _one_of("log_level", v.upper(), VALID_LOG_LEVELS)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        return _one_of("log_format", v.lower(), VALID_LOG_FORMATS)
