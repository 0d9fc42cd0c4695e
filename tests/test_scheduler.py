from datetime import timedelta
from pathlib import Path

import pytest
from conftest import write_artifact

from repodex.indexing.repository_indexer import RepositoryIndexer
from repodex.scheduling.scheduler import ReindexScheduler, run_reindex


def test_schedule_reindex_registers_interval_job(indexer: RepositoryIndexer) -> None:
    scheduler = ReindexScheduler()
    job_id = scheduler.schedule_reindex(indexer, interval=timedelta(minutes=5))
    assert job_id == "reindex:releases"
    assert scheduler.job_ids() == ["reindex:releases"]


def test_schedule_reindex_explicit_job_id(indexer: RepositoryIndexer) -> None:
    scheduler = ReindexScheduler()
    assert scheduler.schedule_reindex(indexer, job_id="nightly") == "nightly"


@pytest.mark.asyncio
async def test_run_reindex_indexes_off_the_event_loop(indexer: RepositoryIndexer, repo_dir: Path) -> None:
    write_artifact(repo_dir, "com.example", "lib", "1.0")
    write_artifact(repo_dir, "com.example", "lib", "2.0")

    assert await run_reindex(indexer) == 2
    assert len(indexer.search("com.example", "lib")) == 2


@pytest.mark.asyncio
async def test_scheduler_starts_and_stops_on_running_loop(indexer: RepositoryIndexer) -> None:
    scheduler = ReindexScheduler()
    scheduler.schedule_reindex(indexer, interval=timedelta(hours=1))
    scheduler.start()
    try:
        assert scheduler.job_ids() == ["reindex:releases"]
    finally:
        scheduler.shutdown(wait=False)
