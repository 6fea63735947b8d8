"""Engine components orchestrating fetch → parse → analyze → merge → export."""

from .analyzer import ChartSummary, CorpusAnalysis, VersionDetail, analyze
from .fetcher import FetchError, Fetcher, FetchResponse
from .merger import (
    CompositeUpdate,
    MergeUpdate,
    MultiSourceMerger,
    SingleSourceUpdate,
    merge_analyses,
)
from .parser import IndexDocument, ParseError, VersionRecord, parse_index

__all__ = [
    "ChartSummary",
    "CompositeUpdate",
    "CorpusAnalysis",
    "FetchError",
    "FetchResponse",
    "Fetcher",
    "IndexDocument",
    "MergeUpdate",
    "MultiSourceMerger",
    "ParseError",
    "SingleSourceUpdate",
    "VersionDetail",
    "VersionRecord",
    "analyze",
    "merge_analyses",
    "parse_index",
]
