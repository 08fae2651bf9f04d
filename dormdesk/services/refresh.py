"""Periodic refresh of live data on an APScheduler interval job."""

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Generic, TypeVar

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PeriodicRefresh(Generic[T]):
    """Keeps the latest result of ``fetch``, re-running it every ``interval_seconds``.

    ``start()`` returns the instance itself; ``close()`` is the teardown
    handle and stops future runs.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        interval_seconds: int,
        scheduler: AsyncIOScheduler,
        name: str,
    ) -> None:
        self.fetch = fetch
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler
        self.name = name
        self.data: T | None = None
        self.updated_at: datetime | None = None
        self.error: str | None = None
        self._job_id = f"refresh:{name}"

    @property
    def job_id(self) -> str:
        return self._job_id

    async def refresh_now(self) -> T | None:
        """Run the fetch once; on failure keep the last good data."""
        try:
            data = await self.fetch()
        except Exception as e:
            self.error = str(e) or e.__class__.__name__
            logger.warning("Refresh %s failed: %s", self.name, self.error)
            return self.data
        self.data = data
        self.error = None
        self.updated_at = datetime.now(UTC)
        return data

    def start(self) -> "PeriodicRefresh[T]":
        self.scheduler.add_job(
            self.refresh_now,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self._job_id,
            name=f"Refresh {self.name}",
            next_run_time=datetime.now(UTC),
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Refreshing %s every %ss", self.name, self.interval_seconds)
        return self

    def close(self) -> None:
        if self.scheduler.get_job(self._job_id) is not None:
            self.scheduler.remove_job(self._job_id)
