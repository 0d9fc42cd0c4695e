"""APScheduler-based scheduler for periodic repository reindexing.

Provides helpers to schedule and manage periodic reindex jobs. Scans are
blocking, so each job runs the scan in a worker thread.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from repodex.indexing.repository_indexer import RepositoryIndexer

logger = logging.getLogger(__name__)


async def run_reindex(indexer: RepositoryIndexer) -> int:
    """Reindex a repository off the event loop and return the indexed count."""
    result = await asyncio.to_thread(indexer.scan)
    logger.info(
        "scheduled reindex finished; repository: %s; total files: %d; errors: %d",
        indexer.repository_id,
        result.total_files,
        len(result.errors),
    )
    return result.total_files


class ReindexScheduler:
    """Schedules periodic reindex runs using AsyncIOScheduler."""

    def __init__(self) -> None:
        self._scheduler = AsyncIOScheduler()
        self._started = False

    def start(self) -> None:
        """Start the underlying scheduler if not already started."""
        if not self._started:
            self._scheduler.start(paused=False)
            self._started = True

    def shutdown(self, *, wait: bool = True) -> None:
        """Shut down the scheduler."""
        if self._started:
            self._scheduler.shutdown(wait=wait)
            self._started = False

    def schedule_reindex(
        self,
        indexer: RepositoryIndexer,
        *,
        interval: timedelta = timedelta(minutes=60),
        job_id: Optional[str] = None,
        replace_existing: bool = True,
    ) -> str:
        """Schedule periodic execution of ``indexer.scan()``.

        Parameters
        ----------
        indexer: RepositoryIndexer
            The repository to reindex.
        interval: timedelta
            How often to run the reindex job (default 60 minutes).
        job_id: Optional[str]
            Explicit job id; defaults to ``reindex:<repository id>``.
        replace_existing: bool
            If True, replace any existing job with the same id.
        """
        job_id = job_id or f"reindex:{indexer.repository_id}"
        trigger = IntervalTrigger(seconds=int(interval.total_seconds()))
        self._scheduler.add_job(
            run_reindex,
            trigger=trigger,
            args=[indexer],
            id=job_id,
            replace_existing=replace_existing,
            max_instances=1,
            coalesce=True,
        )
        logger.info("reindex scheduled; repository: %s; every: %s", indexer.repository_id, interval)
        return job_id

    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]
