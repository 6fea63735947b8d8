"""Prometheus metric families for repository statistics and scrape health."""

from __future__ import annotations

import math
from datetime import datetime

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from ..analyzer import CorpusAnalysis
from .base import BaseExporter

_REPO = ["repository"]
_REPO_CHART = ["repository", "chart"]


def _unix(value: datetime) -> float:
    return float(math.floor(value.timestamp()))


class PrometheusExporter(BaseExporter):
    """Register the exporter's metrics on a dedicated registry."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.charts_total = Gauge(
            "helm_repo_charts_total",
            "Total number of distinct Helm charts in the repository",
            _REPO,
            registry=self.registry,
        )
        self.chart_versions = Gauge(
            "helm_repo_chart_versions",
            "Number of versions for each Helm chart",
            _REPO_CHART,
            registry=self.registry,
        )
        self.chart_age_oldest = Gauge(
            "helm_repo_chart_age_oldest_seconds",
            "Timestamp of the oldest version of each chart",
            _REPO_CHART,
            registry=self.registry,
        )
        self.chart_age_newest = Gauge(
            "helm_repo_chart_age_newest_seconds",
            "Timestamp of the newest version of each chart",
            _REPO_CHART,
            registry=self.registry,
        )
        self.chart_age_median = Gauge(
            "helm_repo_chart_age_median_seconds",
            "Timestamp of the median version of each chart",
            _REPO_CHART,
            registry=self.registry,
        )
        self.overall_age_oldest = Gauge(
            "helm_repo_overall_age_oldest_seconds",
            "Timestamp of the oldest chart version in the repository",
            _REPO,
            registry=self.registry,
        )
        self.overall_age_newest = Gauge(
            "helm_repo_overall_age_newest_seconds",
            "Timestamp of the newest chart version in the repository",
            _REPO,
            registry=self.registry,
        )
        self.overall_age_median = Gauge(
            "helm_repo_overall_age_median_seconds",
            "Timestamp of the median chart version in the repository",
            _REPO,
            registry=self.registry,
        )
        self.versions_total = Gauge(
            "helm_repo_versions_total",
            "Total number of chart versions in the repository",
            _REPO,
            registry=self.registry,
        )
        self.scrape_duration = Histogram(
            "helm_repo_scrape_duration_seconds",
            "Duration of the repository scrape operation in seconds",
            _REPO,
            registry=self.registry,
        )
        self.scrape_errors = Counter(
            "helm_repo_scrape_errors",
            "Total number of scrape errors per repository",
            _REPO,
            registry=self.registry,
        )
        self.last_scrape_success = Gauge(
            "helm_repo_last_scrape_success",
            "Timestamp of the last successful scrape per repository",
            _REPO,
            registry=self.registry,
        )

    def publish(self, repository: str, analysis: CorpusAnalysis) -> None:
        self.charts_total.labels(repository).set(analysis.total_charts)
        self.versions_total.labels(repository).set(analysis.total_versions)

        for chart in analysis.charts:
            self.chart_versions.labels(repository, chart.name).set(chart.version_count)
            if chart.oldest is not None:
                self.chart_age_oldest.labels(repository, chart.name).set(_unix(chart.oldest))
            if chart.newest is not None:
                self.chart_age_newest.labels(repository, chart.name).set(_unix(chart.newest))
            if chart.median is not None:
                self.chart_age_median.labels(repository, chart.name).set(_unix(chart.median))

        if analysis.oldest is not None:
            self.overall_age_oldest.labels(repository).set(_unix(analysis.oldest))
        if analysis.newest is not None:
            self.overall_age_newest.labels(repository).set(_unix(analysis.newest))
        if analysis.median is not None:
            self.overall_age_median.labels(repository).set(_unix(analysis.median))

    def record_success(self, repository: str) -> None:
        self.last_scrape_success.labels(repository).set_to_current_time()

    def record_error(self, repository: str) -> None:
        self.scrape_errors.labels(repository).inc()

    def record_duration(self, repository: str, seconds: float) -> None:
        self.scrape_duration.labels(repository).observe(seconds)

    def render(self) -> tuple[bytes, str]:
        """Return the text exposition payload and its content type."""

        return generate_latest(self.registry), CONTENT_TYPE_LATEST


__all__ = ["PrometheusExporter"]
