"""Exporter Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..analyzer import CorpusAnalysis


class BaseExporter(ABC):
    """Telemetry and publication contract notified by the scrape worker."""

    @abstractmethod
    def publish(self, repository: str, analysis: CorpusAnalysis) -> None:
        """Expose the latest analysis of ``repository``."""

    @abstractmethod
    def record_success(self, repository: str) -> None:
        """Mark a successful scrape."""

    @abstractmethod
    def record_error(self, repository: str) -> None:
        """Count a failed scrape."""

    @abstractmethod
    def record_duration(self, repository: str, seconds: float) -> None:
        """Observe how long a scrape took."""

    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseExporter"]
