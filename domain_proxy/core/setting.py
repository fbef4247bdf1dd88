"""
Configuration Settings

This module defines proxy configuration using Pydantic Settings.
All configuration is loaded from environment variables or .env file.

Design Decisions:
- Uses pydantic-settings for type-safe configuration
- Settings are frozen: built once at startup and injected into the app factory
- BACKEND_ORIGIN has no default, the proxy refuses to start without it
- EXEMPT_HOSTS is a plain comma-separated string so it can be set from any
  hosting dashboard without JSON quoting
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import FrozenSet, Optional
from urllib.parse import urlparse

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain_proxy.core.exceptions import ConfigurationError
from domain_proxy.core.validators import sanitize_hostname

__all__ = ["Settings", "get_settings", "normalize_origin"]


class EnvSettingsOptions(Enum):
    """Environment options for deployment."""
    production = "production"
    staging = "staging"
    development = "dev"


def normalize_origin(value: str) -> str:
    """
    Validate an origin of the form scheme://host[:port] and strip any trailing slash.

    Raises:
        ValueError: if the scheme is not http/https, the host is missing,
            or the value carries a path, query or fragment
    """
    value = (value or "").strip().rstrip("/")
    parsed = urlparse(value)

    if parsed.scheme.lower() not in {"http", "https"}:
        raise ValueError(f"origin must use http or https: {value!r}")
    if not parsed.netloc or not parsed.hostname:
        raise ValueError(f"origin is missing a host: {value!r}")
    if parsed.path or parsed.query or parsed.fragment:
        raise ValueError(f"origin must not contain a path, query or fragment: {value!r}")

    return value


class Settings(BaseSettings):
    """
    Proxy settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    ENV_SETTING: EnvSettingsOptions = Field(
        default=EnvSettingsOptions.development,
        description="Environment setting (production, staging, dev)"
    )

    # Backend Configuration
    BACKEND_ORIGIN: str = Field(
        ...,
        description="Shortener backend origin every custom-domain request is forwarded to"
    )
    REQUEST_TIMEOUT_MS: int = Field(
        default=10000,
        gt=0,
        description="Upper bound for one backend call, in milliseconds"
    )
    PROXY_USER_AGENT: str = Field(
        default="Tinyslash-Proxy/1.0",
        description="User-Agent sent to the backend when the client sent none"
    )

    # Host Configuration
    EXEMPT_HOSTS: str = Field(
        default="",
        description="Comma-separated hostnames passed through without rewriting"
    )
    EXEMPT_ORIGIN: Optional[str] = Field(
        default=None,
        description="Origin serving exempt hosts (defaults to https://<inbound host>)"
    )

    # Response Configuration
    SUCCESS_CACHE_CONTROL: str = Field(
        default="public, max-age=300",
        description="Cache-Control applied to 2xx responses lacking one"
    )
    BRAND_NAME: str = Field(default="Tinyslash", description="Name shown on error pages")
    BRAND_HOME_URL: str = Field(
        default="https://tinyslash.com",
        description="Link target of the error page call-to-action"
    )

    # Operational Endpoints
    HEALTH_PATH: str = Field(default="/_health", description="Local health check path")
    DEBUG_PATH: str = Field(default="/_debug", description="Local request echo path")
    DEBUG_ENDPOINT_ENABLED: bool = Field(
        default=False,
        description="Expose the request echo endpoint (leaks request headers, keep off in production)"
    )

    LOG_LEVEL: str = Field(default="INFO", description="Root logging level")

    @field_validator("BACKEND_ORIGIN")
    @classmethod
    def _check_backend_origin(cls, value: str) -> str:
        return normalize_origin(value)

    @field_validator("EXEMPT_ORIGIN")
    @classmethod
    def _check_exempt_origin(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return normalize_origin(value)

    @field_validator("HEALTH_PATH", "DEBUG_PATH")
    @classmethod
    def _check_local_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"path must start with '/': {value!r}")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"unknown log level: {value!r}")
        return value

    @field_validator("EXEMPT_HOSTS")
    @classmethod
    def _check_exempt_hosts(cls, value: str) -> str:
        for item in value.split(","):
            if item.strip() and sanitize_hostname(item) is None:
                raise ValueError(f"invalid exempt hostname: {item.strip()!r}")
        return value

    @property
    def exempt_hosts(self) -> FrozenSet[str]:
        """Exempt hostnames, normalized the same way as inbound Host headers."""
        hosts = set()
        for item in self.EXEMPT_HOSTS.split(","):
            host = sanitize_hostname(item)
            if host:
                hosts.add(host)
        return frozenset(hosts)

    @property
    def backend_host(self) -> str:
        """Authority (host[:port]) of BACKEND_ORIGIN."""
        return urlparse(self.BACKEND_ORIGIN).netloc

    @property
    def request_timeout_seconds(self) -> float:
        return self.REQUEST_TIMEOUT_MS / 1000.0


@lru_cache()
def get_settings() -> Settings:
    """
    Load settings from the environment once per process.

    Raises:
        ConfigurationError: if a required setting is missing or invalid
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid proxy configuration: {e}") from e
