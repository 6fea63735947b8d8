"""Configuration loading helpers for the exporter."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .models import DEFAULT_SCAN_INTERVAL, DEFAULT_SCAN_TIMEOUT, ExporterConfig, parse_duration

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
DEFAULT_REPOSITORY_NAME = "default"


class ConfigError(Exception):
    """Raised when the exporter cannot build a usable configuration."""


def _read_file(path: Path) -> dict:
    if path.suffix not in CONFIG_EXTENSIONS:
        raise ConfigError(f"Unsupported configuration file type: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")
    return data


def _validate(payload: Mapping[str, Any], origin: str) -> ExporterConfig:
    try:
        return ExporterConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration from {origin}: {exc}") from exc


def load_config_file(path: str | Path) -> ExporterConfig:
    """Load and validate a YAML or JSON configuration file."""

    path = Path(path).expanduser()
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    return _validate(_read_file(path), str(path))


def _env_duration(environ: Mapping[str, str], key: str, default):
    value = environ.get(key)
    if not value:
        return default
    try:
        return parse_duration(value)
    except ValueError:
        return default


def _env_bool(environ: Mapping[str, str], key: str, default: bool) -> bool:
    value = environ.get(key)
    if not value:
        return default
    return value in ("true", "1", "yes")


def load_config_from_env(environ: Mapping[str, str] | None = None) -> ExporterConfig:
    """Resolve configuration from ``CONFIG_FILE`` or the single-repository variables.

    ``CONFIG_FILE`` takes precedence. Without it ``INDEX_URL`` describes one
    repository named ``default``; the remaining variables fall back to their
    defaults when unset or invalid.
    """

    environ = os.environ if environ is None else environ
    config_file = environ.get("CONFIG_FILE")
    if config_file:
        return load_config_file(config_file)

    index_url = environ.get("INDEX_URL")
    if not index_url:
        raise ConfigError("Either CONFIG_FILE or INDEX_URL environment variable is required")

    scan_interval = _env_duration(environ, "SCAN_INTERVAL", DEFAULT_SCAN_INTERVAL)
    payload = {
        "repositories": [
            {"name": DEFAULT_REPOSITORY_NAME, "url": index_url, "scan_interval": scan_interval}
        ],
        "scan_interval": scan_interval,
        "scan_timeout": _env_duration(environ, "SCAN_TIMEOUT", DEFAULT_SCAN_TIMEOUT),
        "metrics_port": environ.get("METRICS_PORT") or 9571,
        "metrics_path": environ.get("METRICS_PATH") or "/metrics",
        "enable_html": _env_bool(environ, "ENABLE_HTML", False),
        "html_path": environ.get("HTML_PATH") or "/charts",
    }
    return _validate(payload, "environment")


def load_config(path: str | Path | None = None) -> ExporterConfig:
    """Load from an explicit path when given, otherwise from the environment."""

    if path is not None:
        return load_config_file(path)
    return load_config_from_env()


__all__ = [
    "CONFIG_EXTENSIONS",
    "ConfigError",
    "DEFAULT_REPOSITORY_NAME",
    "load_config",
    "load_config_file",
    "load_config_from_env",
]
