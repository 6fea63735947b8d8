"""Pydantic models describing exporter and repository configuration."""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_SCAN_INTERVAL = timedelta(minutes=5)
DEFAULT_SCAN_TIMEOUT = timedelta(seconds=30)
DEFAULT_SHUTDOWN_GRACE = timedelta(seconds=10)

_DURATION_PATTERN = re.compile(r"(?P<value>\d+(?:\.\d+)?)(?P<unit>ms|us|[smh])", re.IGNORECASE)
_DURATION_UNITS = {
    "us": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}


def parse_duration(value: Any) -> timedelta:
    """Parse Go-style durations (``30s``, ``5m``, ``1h30m``) or plain seconds."""

    if isinstance(value, timedelta):
        duration = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    elif isinstance(value, (int, float)):
        duration = timedelta(seconds=float(value))
    elif isinstance(value, str):
        text = value.strip().lower()
        if not text:
            raise ValueError("Duration cannot be empty")
        try:
            duration = timedelta(seconds=float(text))
        except ValueError:
            duration = timedelta()
            index = 0
            for match in _DURATION_PATTERN.finditer(text):
                if match.start() != index:
                    raise ValueError(f"Invalid duration: {value!r}") from None
                duration += float(match.group("value")) * _DURATION_UNITS[match.group("unit").lower()]
                index = match.end()
            if index != len(text):
                raise ValueError(f"Invalid duration: {value!r}") from None
        except OverflowError as exc:
            raise ValueError(f"Duration out of range: {value!r}") from exc
    else:
        raise ValueError(f"Invalid duration: {value!r}")
    if duration <= timedelta():
        raise ValueError(f"Duration must be positive: {value!r}")
    return duration


class _CamelModel(BaseModel):
    """Accept both the camelCase keys of the YAML format and snake_case names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BasicAuth(_CamelModel):
    """HTTP basic credentials."""

    username: str = ""
    password: str = Field(default="", repr=False)


class AuthConfig(_CamelModel):
    """Authentication descriptor attached to a repository."""

    basic: BasicAuth | None = None
    bearer_token: str = Field(default="", alias="bearerToken", repr=False)
    headers: dict[str, str] = Field(default_factory=dict)

    @property
    def kind(self) -> str:
        if self.basic is not None:
            return "basic"
        if self.bearer_token:
            return "bearer"
        if self.headers:
            return "headers"
        return "none"


class RepositoryConfig(_CamelModel):
    """One chart repository whose index document is scraped."""

    name: str
    url: str
    scan_interval: timedelta | None = Field(default=None, alias="scanInterval")
    auth: AuthConfig | None = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Repository name cannot be empty")
        return value

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        parsed = urlparse(value.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Repository url must be an http(s) URL: {value!r}")
        return value.strip()

    @field_validator("scan_interval", mode="before")
    @classmethod
    def _coerce_interval(cls, value: Any) -> timedelta | None:
        if value in (None, "", 0):
            return None
        return parse_duration(value)

    @property
    def interval_seconds(self) -> float:
        if self.scan_interval is None:
            raise ValueError(f"Repository {self.name} has no scan interval")
        return self.scan_interval.total_seconds()


class ExporterConfig(_CamelModel):
    """Top level exporter settings."""

    repositories: list[RepositoryConfig] = Field(default_factory=list)
    scan_interval: timedelta = Field(default=DEFAULT_SCAN_INTERVAL, alias="scanInterval")
    scan_timeout: timedelta = Field(default=DEFAULT_SCAN_TIMEOUT, alias="scanTimeout")
    metrics_port: int = Field(default=9571, alias="metricsPort")
    metrics_path: str = Field(default="/metrics", alias="metricsPath")
    enable_html: bool = Field(default=False, alias="enableHTML")
    html_path: str = Field(default="/charts", alias="htmlPath")
    listen_host: str = Field(default="0.0.0.0", alias="listenHost")
    queue_size: int = Field(default=100, alias="queueSize")
    shutdown_grace: timedelta = Field(default=DEFAULT_SHUTDOWN_GRACE, alias="shutdownGrace")

    @field_validator("scan_interval", "scan_timeout", "shutdown_grace", mode="before")
    @classmethod
    def _coerce_durations(cls, value: Any) -> timedelta:
        return parse_duration(value)

    @field_validator("metrics_port", mode="before")
    @classmethod
    def _coerce_port(cls, value: Any) -> int:
        port = int(value)
        if not 0 < port < 65536:
            raise ValueError(f"metrics_port out of range: {value!r}")
        return port

    @field_validator("metrics_path", "html_path")
    @classmethod
    def _validate_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"HTTP path must start with '/': {value!r}")
        return value

    @field_validator("queue_size")
    @classmethod
    def _validate_queue_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("queue_size must be >= 1")
        return value

    @model_validator(mode="after")
    def _apply_repository_defaults(self) -> "ExporterConfig":
        if not self.repositories:
            raise ValueError("At least one repository must be configured")
        seen: set[str] = set()
        for repository in self.repositories:
            if repository.name in seen:
                raise ValueError(f"Duplicate repository name: {repository.name}")
            seen.add(repository.name)
            if repository.scan_interval is None:
                repository.scan_interval = self.scan_interval
        if self.enable_html and self.html_path == self.metrics_path:
            raise ValueError("html_path and metrics_path must differ")
        return self

    @property
    def scan_timeout_seconds(self) -> float:
        return self.scan_timeout.total_seconds()


__all__ = [
    "AuthConfig",
    "BasicAuth",
    "DEFAULT_SCAN_INTERVAL",
    "DEFAULT_SCAN_TIMEOUT",
    "DEFAULT_SHUTDOWN_GRACE",
    "ExporterConfig",
    "RepositoryConfig",
    "parse_duration",
]
