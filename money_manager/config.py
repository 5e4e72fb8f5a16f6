"""
Runtime configuration

Typed settings read from environment variables with pydantic-settings.
Only DATABASE_URL is required, and only when serving.
"""
from typing import Annotated, Any, List, Optional

import pydantic
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .errors import ConfigurationError
from .schemas import describe_errors

# Async drivers used for the plain dialect names found in connection strings
ASYNC_DRIVERS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def normalize_database_url(raw: Optional[str]) -> str:
    """Validate a connection string and point it at an async driver."""
    raw = (raw or "").strip()
    if not raw:
        raise ConfigurationError("DATABASE_URL environment variable is not set")
    try:
        url = make_url(raw)
    except ArgumentError as e:
        raise ConfigurationError(f"DATABASE_URL is not a valid connection string: {e}") from e
    drivername = ASYNC_DRIVERS.get(url.drivername, url.drivername)
    return url.set(drivername=drivername).render_as_string(hide_password=False)


class Settings(BaseSettings):
    """Service configuration; each field maps to the upper-cased env var."""

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True)

    database_url: Optional[str] = Field(
        None,
        description="Connection string; postgres://, postgresql:// or sqlite://",
    )
    host: str = Field("0.0.0.0", description="Interface to bind")
    port: int = Field(8080, description="Port to bind")
    log_level: str = Field("INFO", description="Root log level")
    store_timeout: Optional[float] = Field(
        10.0,
        description="Seconds allowed per store call; zero or negative disables the deadline",
    )
    cors_origins: Annotated[List[str], NoDecode] = Field(
        ["*"],
        description="Comma-separated allowed origins",
    )

    @field_validator("database_url")
    @classmethod
    def _normalize_database_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        try:
            return normalize_database_url(value)
        except ConfigurationError as e:
            raise ValueError(e.message) from e

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("store_timeout")
    @classmethod
    def _disable_non_positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            return None
        return value

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        try:
            return cls()
        except pydantic.ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {describe_errors(e.errors())}") from e
