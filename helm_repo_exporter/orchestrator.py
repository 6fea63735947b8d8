"""Scrape orchestrator: per-repository timers feeding a single serial worker."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from queue import Empty, Full, Queue
from threading import Event, Lock, Thread
from typing import Callable, Protocol, Sequence

from .config import ExporterConfig, RepositoryConfig
from .engine import (
    CompositeUpdate,
    CorpusAnalysis,
    FetchError,
    MultiSourceMerger,
    ParseError,
    SingleSourceUpdate,
    analyze,
    parse_index,
)
from .engine.exporter import BaseExporter
from .logging_conf import configure_logging, repository_logger
from .scheduler import APSchedulerAdapter

_STOP = object()


class IndexFetcher(Protocol):
    def fetch(self, repository: RepositoryConfig, timeout: float | None = None) -> bytes:
        ...


class ExporterState(str, Enum):
    """Lifecycle of the scrape machinery."""

    STARTING = "starting"
    WARMING_UP = "warming_up"
    STEADY_STATE = "steady_state"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


@dataclass(slots=True)
class ScrapeResult:
    """Outcome of one fetch → parse → analyze cycle."""

    repository: str
    success: bool
    duration: float
    analysis: CorpusAnalysis | None = None
    error: str | None = None
    error_kind: str | None = None


class Orchestrator:
    """Central coordinator managing the scrape lifecycle.

    Each repository owns an interval job that only enqueues its name. One
    worker thread drains the queue in FIFO order and is the only writer of
    the merger and the exporters.
    """

    def __init__(
        self,
        config: ExporterConfig,
        fetcher: IndexFetcher,
        merger: MultiSourceMerger,
        exporters: Sequence[BaseExporter] = (),
        scheduler: APSchedulerAdapter | None = None,
        clock: Callable[[], float] = time.perf_counter,
        poll_interval: float = 1.0,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.merger = merger
        self.exporters = list(exporters)
        self.scheduler = scheduler or APSchedulerAdapter()
        self.repositories: dict[str, RepositoryConfig] = {
            repository.name: repository for repository in config.repositories
        }
        self.logger = configure_logging().bind(component="orchestrator")
        self._clock = clock
        self._poll_interval = poll_interval
        self._queue: Queue = Queue(maxsize=config.queue_size)
        self._stop = Event()
        self._state_lock = Lock()
        self._worker: Thread | None = None
        self._launcher: Thread | None = None
        self.state = ExporterState.STARTING

    # ------------------------------------------------------------------
    @property
    def composite(self) -> bool:
        """A single repository is published wholesale instead of per-source."""

        return len(self.repositories) == 1

    @property
    def ready(self) -> bool:
        return self.state is ExporterState.STEADY_STATE

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    # ------------------------------------------------------------------
    def launch(self) -> Thread:
        """Warm up and enter steady state on a background thread."""

        self._launcher = Thread(target=self._launch, name="scrape-launcher", daemon=True)
        self._launcher.start()
        return self._launcher

    def _launch(self) -> None:
        self.warm_up()
        self.start()

    def warm_up(self) -> list[ScrapeResult]:
        """Scrape every repository once, in declaration order."""

        with self._state_lock:
            if self._stop.is_set():
                return []
            self.state = ExporterState.WARMING_UP
        self.logger.info("warmup_started", repositories=len(self.repositories))
        started = self._clock()
        results: list[ScrapeResult] = []
        for name in self.repositories:
            if self._stop.is_set():
                break
            results.append(self._safe_scrape(name))
        view = self.merger.view()
        self.logger.info(
            "warmup_completed",
            duration_seconds=round(self._clock() - started, 3),
            succeeded=sum(1 for result in results if result.success),
            failed=sum(1 for result in results if not result.success),
            total_charts=view.total_charts if view else 0,
            total_versions=view.total_versions if view else 0,
            oldest=view.oldest.isoformat() if view and view.oldest else None,
            newest=view.newest.isoformat() if view and view.newest else None,
        )
        if not any(result.success for result in results):
            self.logger.error("warmup_no_successful_scrapes")
        return results

    def start(self) -> None:
        """Register the per-repository timers and start the drain worker."""

        with self._state_lock:
            if self._stop.is_set() or self._worker is not None:
                return
            for repository in self.repositories.values():
                self.scheduler.schedule_repository(repository, self.enqueue)
            self.scheduler.start()
            self._worker = Thread(target=self._drain, name="scrape-worker", daemon=True)
            self._worker.start()
            self.state = ExporterState.STEADY_STATE
        self.logger.info("exporter_started", repositories=list(self.repositories))

    def enqueue(self, name: str) -> bool:
        """Timer callback: hand the repository over to the worker."""

        if self._stop.is_set():
            return False
        try:
            self._queue.put_nowait(name)
        except Full:
            self.logger.warning("scrape_queue_full", repository=name, size=self._queue.maxsize)
            return False
        return True

    def shutdown(self, grace: float | None = None) -> bool:
        """Stop timers and worker; wait up to ``grace`` seconds for the in-flight scrape.

        Returns ``True`` when every background thread finished in time.
        """

        if grace is None:
            grace = self.config.shutdown_grace.total_seconds()
        with self._state_lock:
            if self.state is ExporterState.STOPPED:
                return True
            self.state = ExporterState.SHUTTING_DOWN
            self._stop.set()
        self.logger.info("shutdown_started", grace_seconds=grace)
        self.scheduler.shutdown()
        try:
            self._queue.put_nowait(_STOP)
        except Full:
            self.logger.debug("stop_marker_dropped", pending=self._queue.qsize())

        deadline = time.monotonic() + grace
        clean = True
        for thread in (self._worker, self._launcher):
            if thread is None or not thread.is_alive():
                continue
            thread.join(max(0.0, deadline - time.monotonic()))
            if thread.is_alive():
                clean = False
                self.logger.warning("shutdown_grace_expired", thread=thread.name)
        self.state = ExporterState.STOPPED
        self.logger.info("exporter_stopped", clean=clean)
        return clean

    # ------------------------------------------------------------------
    def scrape_once(self) -> list[ScrapeResult]:
        """Run one pass over all repositories without scheduling."""

        return [self._safe_scrape(name) for name in self.repositories]

    def scrape_repository(self, name: str) -> ScrapeResult:
        repository = self.repositories[name]
        log = repository_logger(name)
        started = self._clock()
        try:
            payload = self.fetcher.fetch(repository, timeout=self.config.scan_timeout_seconds)
            document = parse_index(payload)
        except FetchError as exc:
            log.error("fetch_failed", kind=exc.kind, url=repository.url, error=str(exc))
            return self._record_failure(name, started, str(exc), exc.kind)
        except ParseError as exc:
            log.error("parse_failed", url=repository.url, error=str(exc))
            return self._record_failure(name, started, str(exc), "parse")

        analysis = analyze(document, repository=name)
        if self.composite:
            self.merger.update(CompositeUpdate(analysis))
        else:
            self.merger.update(SingleSourceUpdate(name, analysis))
        duration = self._clock() - started
        for exporter in self.exporters:
            exporter.publish(name, analysis)
            exporter.record_success(name)
            exporter.record_duration(name, duration)
        log.info(
            "scrape_completed",
            charts=analysis.total_charts,
            versions=analysis.total_versions,
            duration_seconds=round(duration, 3),
        )
        return ScrapeResult(repository=name, success=True, duration=duration, analysis=analysis)

    # ------------------------------------------------------------------
    def _drain(self) -> None:
        while not self._stop.is_set():
            try:
                item = self._queue.get(timeout=self._poll_interval)
            except Empty:
                continue
            try:
                if item is _STOP or self._stop.is_set():
                    break
                self._safe_scrape(item)
            finally:
                self._queue.task_done()

    def _safe_scrape(self, name: str) -> ScrapeResult:
        started = self._clock()
        try:
            return self.scrape_repository(name)
        except Exception as exc:  # noqa: BLE001
            self.logger.exception("scrape_unexpected_error", repository=name)
            return self._record_failure(name, started, str(exc), "internal")

    def _record_failure(
        self, name: str, started: float, error: str, kind: str | None
    ) -> ScrapeResult:
        duration = self._clock() - started
        for exporter in self.exporters:
            exporter.record_error(name)
            exporter.record_duration(name, duration)
        return ScrapeResult(
            repository=name,
            success=False,
            duration=duration,
            error=error,
            error_kind=kind,
        )


__all__ = ["ExporterState", "IndexFetcher", "Orchestrator", "ScrapeResult"]
