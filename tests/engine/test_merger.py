from __future__ import annotations

import threading
from datetime import datetime, timezone

import pytest

from helm_repo_exporter.engine import (
    ChartSummary,
    CompositeUpdate,
    CorpusAnalysis,
    MultiSourceMerger,
    SingleSourceUpdate,
    merge_analyses,
)


def ts(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def make_analysis(source: str, charts: int, versions: int, oldest=None, newest=None, median=None) -> CorpusAnalysis:
    summaries = tuple(
        ChartSummary(name=f"{source}-chart-{i}", version_count=1, repository=source) for i in range(charts)
    )
    return CorpusAnalysis(
        total_charts=charts,
        total_versions=versions,
        charts=summaries,
        oldest=ts(oldest) if oldest is not None else None,
        newest=ts(newest) if newest is not None else None,
        median=ts(median) if median is not None else None,
    )


def test_merger_sums_totals_across_sources() -> None:
    merger = MultiSourceMerger()
    merger.update(SingleSourceUpdate("source1", make_analysis("source1", 2, 5)))
    view = merger.update(SingleSourceUpdate("source2", make_analysis("source2", 3, 7)))
    assert view.total_charts == 5
    assert view.total_versions == 12
    assert len(view.charts) == 5
    assert merger.view() is view
    assert merger.sources() == ["source1", "source2"]


def test_merger_replaces_source_slot() -> None:
    merger = MultiSourceMerger()
    merger.update(SingleSourceUpdate("a", make_analysis("a", 2, 2)))
    merger.update(SingleSourceUpdate("b", make_analysis("b", 1, 1)))
    view = merger.update(SingleSourceUpdate("a", make_analysis("a", 4, 9)))
    assert view.total_charts == 5
    assert view.total_versions == 10
    assert merger.sources() == ["a", "b"]


def test_merged_dates_are_exact_extremes() -> None:
    merged = merge_analyses(
        [
            make_analysis("a", 1, 1, oldest=300, newest=900, median=600),
            make_analysis("b", 1, 1, oldest=100, newest=500, median=200),
            make_analysis("c", 1, 1),
        ]
    )
    assert merged.oldest == ts(100)
    assert merged.newest == ts(900)


def test_merged_median_is_pairwise_average_in_fold_order() -> None:
    merged = merge_analyses(
        [
            make_analysis("a", 1, 1, median=100),
            make_analysis("b", 1, 1, median=200),
            make_analysis("c", 1, 1),
            make_analysis("d", 1, 1, median=401),
        ]
    )
    # ((100 + 200) // 2 + 401) // 2
    assert merged.median == ts(275)


def test_merged_median_before_epoch_truncates_toward_zero() -> None:
    merged = merge_analyses([make_analysis("a", 1, 1, median=-1), make_analysis("b", 1, 1, median=-2)])
    assert merged.median == ts(-1)


def test_merged_median_single_source_is_unchanged() -> None:
    merged = merge_analyses([make_analysis("a", 1, 1, median=12345)])
    assert merged.median == ts(12345)


def test_merged_charts_are_ordered_by_name() -> None:
    merged = merge_analyses([make_analysis("zeta", 2, 2), make_analysis("alpha", 2, 2)])
    names = [chart.name for chart in merged.charts]
    assert names == sorted(names)


def test_merge_of_nothing_is_empty() -> None:
    merged = merge_analyses([])
    assert merged == CorpusAnalysis()


def test_composite_update_replaces_view_without_touching_cache() -> None:
    merger = MultiSourceMerger()
    merger.update(SingleSourceUpdate("a", make_analysis("a", 2, 2)))
    composite = make_analysis("all", 10, 20)
    view = merger.update(CompositeUpdate(composite))
    assert view is composite
    assert merger.view() is composite
    assert merger.sources() == ["a"]
    # the cached slot of "a" survives the composite and is folded again
    refolded = merger.update(SingleSourceUpdate("b", make_analysis("b", 1, 1)))
    assert refolded.total_charts == 3


def test_view_is_none_before_first_update() -> None:
    assert MultiSourceMerger().view() is None


def test_unknown_update_type_is_rejected() -> None:
    with pytest.raises(TypeError):
        MultiSourceMerger().update(make_analysis("a", 1, 1))  # type: ignore[arg-type]


def test_readers_never_observe_partial_view() -> None:
    merger = MultiSourceMerger()
    small = make_analysis("small", 3, 3)
    large = make_analysis("large", 50, 50)
    merger.update(CompositeUpdate(small))
    stop = threading.Event()
    observed: list[int] = []

    def reader() -> None:
        while not stop.is_set():
            view = merger.view()
            observed.append(len(view.charts))

    thread = threading.Thread(target=reader)
    thread.start()
    try:
        for i in range(500):
            merger.update(CompositeUpdate(large if i % 2 else small))
    finally:
        stop.set()
        thread.join(timeout=5)
    assert observed
    assert set(observed) <= {3, 50}
