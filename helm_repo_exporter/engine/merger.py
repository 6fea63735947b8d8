"""Per-repository analysis cache folded into the published dashboard view."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Iterable, Union

from .analyzer import ChartSummary, CorpusAnalysis


@dataclass(frozen=True, slots=True)
class SingleSourceUpdate:
    """Fresh analysis of one repository; replaces that repository's cache slot."""

    source: str
    analysis: CorpusAnalysis


@dataclass(frozen=True, slots=True)
class CompositeUpdate:
    """Pre-merged analysis; replaces the published view and leaves the cache alone."""

    analysis: CorpusAnalysis


MergeUpdate = Union[SingleSourceUpdate, CompositeUpdate]


def _earliest(current: datetime | None, candidate: datetime | None) -> datetime | None:
    if candidate is None:
        return current
    if current is None or candidate < current:
        return candidate
    return current


def _latest(current: datetime | None, candidate: datetime | None) -> datetime | None:
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


def _unix_seconds(value: datetime) -> int:
    return math.floor(value.timestamp())


def _average_median(current: datetime | None, candidate: datetime | None) -> datetime | None:
    # Approximation: pairwise mean of whole unix seconds, dependent on fold order.
    # Seconds are floored and the halving truncates toward zero, also before 1970.
    if candidate is None:
        return current
    if current is None:
        return candidate
    total = _unix_seconds(current) + _unix_seconds(candidate)
    seconds = total // 2 if total >= 0 else -(-total // 2)
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def merge_analyses(analyses: Iterable[CorpusAnalysis]) -> CorpusAnalysis:
    """Fold analyses in iteration order into one view.

    Totals are summed, chart lists concatenated (then stably ordered by chart
    name), oldest/newest are exact min/max. The median is the running pairwise
    average of each analysis' median and is therefore only an approximation.
    """

    total_charts = 0
    total_versions = 0
    charts: list[ChartSummary] = []
    oldest = newest = median = None
    for analysis in analyses:
        total_charts += analysis.total_charts
        total_versions += analysis.total_versions
        charts.extend(analysis.charts)
        oldest = _earliest(oldest, analysis.oldest)
        newest = _latest(newest, analysis.newest)
        median = _average_median(median, analysis.median)
    charts.sort(key=lambda chart: chart.name)
    return CorpusAnalysis(
        total_charts=total_charts,
        total_versions=total_versions,
        charts=tuple(charts),
        oldest=oldest,
        newest=newest,
        median=median,
    )


class MultiSourceMerger:
    """Cache one analysis per repository and publish the merged view.

    ``update`` is expected to be called from a single writer (the scrape
    worker). Readers call :meth:`view` from any thread; the lock only guards
    the reference swap, so a reader always gets a complete snapshot.
    """

    def __init__(self) -> None:
        self._analyses: dict[str, CorpusAnalysis] = {}
        self._view: CorpusAnalysis | None = None
        self._lock = Lock()

    def update(self, update: MergeUpdate) -> CorpusAnalysis:
        if isinstance(update, SingleSourceUpdate):
            self._analyses[update.source] = update.analysis
            merged = merge_analyses(self._analyses.values())
        elif isinstance(update, CompositeUpdate):
            merged = update.analysis
        else:
            raise TypeError(f"Unsupported merge update: {type(update).__name__}")
        with self._lock:
            self._view = merged
        return merged

    def view(self) -> CorpusAnalysis | None:
        with self._lock:
            return self._view

    def sources(self) -> list[str]:
        return list(self._analyses)


__all__ = [
    "CompositeUpdate",
    "MergeUpdate",
    "MultiSourceMerger",
    "SingleSourceUpdate",
    "merge_analyses",
]
