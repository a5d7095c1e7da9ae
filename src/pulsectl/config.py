"""Runtime configuration for the pulsectl client."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

DEFAULT_URL = "http://localhost:8181"
DEFAULT_API_VERSION = "v1"


@dataclass(slots=True)
class ClientSettings:
    """REST client connection settings."""

    url: str = DEFAULT_URL
    api_version: str = DEFAULT_API_VERSION
    request_timeout_seconds: float = 10.0
    connect_timeout_seconds: float = 5.0
    max_retries: int = 0

    @property
    def base_url(self) -> str:
        return f"{self.url.rstrip('/')}/{self.api_version.strip('/')}"


@dataclass(slots=True)
class WatchSettings:
    """Task watch loop settings."""

    poll_interval_seconds: float = 0.1


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    client: ClientSettings = field(default_factory=ClientSettings)
    watch: WatchSettings = field(default_factory=WatchSettings)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, url: str | None = None, api_version: str | None = None) -> Settings:
        """Load settings from environment; explicit arguments win over env vars."""

        return cls(
            client=ClientSettings(
                url=url or os.getenv("PULSECTL_URL", DEFAULT_URL),
                api_version=api_version or os.getenv("PULSECTL_API_VERSION", DEFAULT_API_VERSION),
                request_timeout_seconds=_env_float("PULSECTL_REQUEST_TIMEOUT_SECONDS", 10.0),
                connect_timeout_seconds=_env_float("PULSECTL_CONNECT_TIMEOUT_SECONDS", 5.0),
                max_retries=_env_int("PULSECTL_MAX_RETRIES", 0),
            ),
            watch=WatchSettings(
                poll_interval_seconds=_env_float("PULSECTL_WATCH_POLL_INTERVAL_SECONDS", 0.1),
            ),
            log_level=os.getenv("PULSECTL_LOG_LEVEL", "WARNING").strip().upper(),
        )

    def validate(self) -> None:
        """Raise configuration error if any setting is out of range."""

        _validate_url(self.client.url)
        if not self.client.api_version.strip("/"):
            raise ValueError("PULSECTL_API_VERSION must not be empty.")
        if self.client.request_timeout_seconds <= 0:
            raise ValueError("PULSECTL_REQUEST_TIMEOUT_SECONDS must be > 0.")
        if self.client.connect_timeout_seconds <= 0:
            raise ValueError("PULSECTL_CONNECT_TIMEOUT_SECONDS must be > 0.")
        if self.client.max_retries < 0:
            raise ValueError("PULSECTL_MAX_RETRIES must be >= 0.")
        if self.watch.poll_interval_seconds <= 0:
            raise ValueError("PULSECTL_WATCH_POLL_INTERVAL_SECONDS must be > 0.")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Invalid PULSECTL_LOG_LEVEL: {self.log_level!r}")


def _validate_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid Pulse URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {value!r}") from error
