"""Version-age statistics over a parsed chart repository index."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from .parser import IndexDocument, VersionRecord


@dataclass(frozen=True, slots=True)
class VersionDetail:
    """Per-version data rendered by the dashboard."""

    version: str
    created: datetime | None = None
    url: str = ""


@dataclass(frozen=True, slots=True)
class ChartSummary:
    """Statistics for one chart."""

    name: str
    version_count: int
    versions: tuple[str, ...] = ()
    version_details: tuple[VersionDetail, ...] = ()
    oldest: datetime | None = None
    newest: datetime | None = None
    median: datetime | None = None
    icon: str = ""
    description: str = ""
    repository: str = ""


@dataclass(frozen=True, slots=True)
class CorpusAnalysis:
    """Statistics over one scrape of one or more repositories."""

    total_charts: int = 0
    total_versions: int = 0
    charts: tuple[ChartSummary, ...] = ()
    oldest: datetime | None = None
    newest: datetime | None = None
    median: datetime | None = None

    @property
    def repositories(self) -> list[str]:
        """Distinct source attributions in first-seen order."""

        seen: dict[str, None] = {}
        for chart in self.charts:
            if chart.repository:
                seen.setdefault(chart.repository, None)
        return list(seen)


def date_range(dates: Sequence[datetime]) -> tuple[datetime | None, datetime | None, datetime | None]:
    """Return ``(oldest, newest, median)``; the median is the upper-middle element."""

    if not dates:
        return None, None, None
    ordered = sorted(dates)
    return ordered[0], ordered[-1], ordered[len(ordered) // 2]


def _summarise_chart(name: str, versions: Sequence[VersionRecord], repository: str) -> ChartSummary:
    dates = [record.created for record in versions if record.created is not None]
    icon = next((record.icon for record in versions if record.icon), "")
    description = next((record.description for record in versions if record.description), "")
    oldest, newest, median = date_range(dates)
    return ChartSummary(
        name=name,
        version_count=len(versions),
        versions=tuple(record.version for record in versions),
        version_details=tuple(
            VersionDetail(
                version=record.version,
                created=record.created,
                url=record.urls[0] if record.urls else "",
            )
            for record in versions
        ),
        oldest=oldest,
        newest=newest,
        median=median,
        icon=icon,
        description=description,
        repository=repository,
    )


def analyze(document: IndexDocument, repository: str | None = None) -> CorpusAnalysis:
    """Compute per-chart and corpus-wide statistics for ``document``.

    Charts without versions are skipped. Versions lacking a creation
    timestamp count toward totals but not toward date statistics.
    """

    charts: list[ChartSummary] = []
    all_dates: list[datetime] = []
    total_versions = 0
    for name, versions in document.entries.items():
        if not versions:
            continue
        summary = _summarise_chart(name, versions, repository or "")
        charts.append(summary)
        total_versions += summary.version_count
        all_dates.extend(record.created for record in versions if record.created is not None)

    charts.sort(key=lambda chart: chart.name)
    oldest, newest, median = date_range(all_dates)
    return CorpusAnalysis(
        total_charts=len(charts),
        total_versions=total_versions,
        charts=tuple(charts),
        oldest=oldest,
        newest=newest,
        median=median,
    )


__all__ = [
    "ChartSummary",
    "CorpusAnalysis",
    "VersionDetail",
    "analyze",
    "date_range",
]
