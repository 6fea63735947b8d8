"""Shared fixtures: configuration builders, index documents and exporter stubs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest
import yaml

from helm_repo_exporter.config import ExporterConfig, RepositoryConfig
from helm_repo_exporter.engine import CorpusAnalysis
from helm_repo_exporter.engine.exporter import BaseExporter


def ts(seconds: int) -> datetime:
    """UTC datetime for a unix timestamp."""

    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def build_index(entries: dict[str, list[dict[str, Any]]]) -> bytes:
    """Serialise chart entries as an ``index.yaml`` payload.

    ``created`` values given as ints are rendered as RFC 3339 timestamps.
    """

    rendered: dict[str, list[dict[str, Any]]] = {}
    for name, versions in entries.items():
        rendered[name] = []
        for version in versions:
            record = {"name": name, **version}
            if isinstance(record.get("created"), int):
                record["created"] = ts(record["created"]).strftime("%Y-%m-%dT%H:%M:%SZ")
            rendered[name].append(record)
    return yaml.safe_dump({"apiVersion": "v1", "entries": rendered}).encode("utf-8")


class RecordingExporter(BaseExporter):
    """Exporter capturing every notification it receives."""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    def publish(self, repository: str, analysis: CorpusAnalysis) -> None:
        self.events.append(("publish", repository, analysis.total_charts))

    def record_success(self, repository: str) -> None:
        self.events.append(("success", repository))

    def record_error(self, repository: str) -> None:
        self.events.append(("error", repository))

    def record_duration(self, repository: str, seconds: float) -> None:
        self.events.append(("duration", repository))

    def of_kind(self, kind: str) -> list[tuple]:
        return [event for event in self.events if event[0] == kind]


@pytest.fixture
def sample_repository_config() -> Callable[..., RepositoryConfig]:
    def _builder(**overrides: Any) -> RepositoryConfig:
        base: dict[str, Any] = {
            "name": "stable",
            "url": "https://charts.example.com/index.yaml",
        }
        base.update(overrides)
        return RepositoryConfig(**base)

    return _builder


@pytest.fixture
def sample_exporter_config() -> Callable[..., ExporterConfig]:
    def _builder(*names: str, **overrides: Any) -> ExporterConfig:
        names = names or ("stable",)
        base: dict[str, Any] = {
            "repositories": [
                {"name": name, "url": f"https://{name}.example.com/index.yaml"} for name in names
            ],
            "scan_interval": "1m",
            "scan_timeout": "5s",
        }
        base.update(overrides)
        return ExporterConfig(**base)

    return _builder


@pytest.fixture
def recording_exporter() -> RecordingExporter:
    return RecordingExporter()


@pytest.fixture
def make_index() -> Callable[[dict[str, list[dict[str, Any]]]], bytes]:
    return build_index
