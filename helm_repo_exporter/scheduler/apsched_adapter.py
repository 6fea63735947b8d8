"""APScheduler wrapper driving one interval timer per repository."""

from __future__ import annotations

from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import RepositoryConfig
from ..logging_conf import configure_logging


class APSchedulerAdapter:
    """Manage APScheduler jobs for configured repositories."""

    def __init__(self) -> None:
        self.scheduler = BackgroundScheduler()
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_repository(
        self, repository: RepositoryConfig, callback: Callable[[str], None]
    ) -> None:
        trigger = self._build_trigger(repository)
        job_id = f"repository::{repository.name}"
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=job_id,
            args=[repository.name],
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.logger.info(
            "job_scheduled",
            repository=repository.name,
            interval_seconds=repository.interval_seconds,
        )

    def _build_trigger(self, repository: RepositoryConfig) -> IntervalTrigger:
        return IntervalTrigger(seconds=repository.interval_seconds)


__all__ = ["APSchedulerAdapter"]
