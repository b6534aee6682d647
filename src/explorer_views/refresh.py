"""Materialized view refresh daemon.

Refresh is not part of the installed DDL. This module plans one job per
materialized view (plus the first-transaction top-up) and runs them either
once, in dependency order, or continuously, each job on its own interval.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

from explorer_views.catalog.graph import ViewGraph
from explorer_views.catalog.helpers import TOP_UP_FUNCTION

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = timedelta(minutes=30)
TOP_UP_INTERVAL = timedelta(hours=1)
TOP_UP_JOB_NAME = "public_key_first_transaction"


class SchedulerState(str, Enum):
    """State of the refresh scheduler."""

    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class JobStats:
    """Statistics for one refresh job."""

    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    last_run_time: datetime | None = None
    last_run_duration_seconds: float = 0.0
    last_error: str | None = None


@dataclass
class RefreshJob:
    """A statement re-run on a fixed interval."""

    name: str
    statement: str
    interval: timedelta
    stats: JobStats = field(default_factory=JobStats)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(self, engine: AsyncEngine) -> bool:
        """Execute the job once.

        Returns False without running when the previous run is still in
        progress. Failures are recorded in :attr:`stats` and re-raised.
        """
        if self._lock.locked():
            logger.info("Skipping %s: previous refresh still running", self.name)
            return False
        async with self._lock:
            started = time.monotonic()
            self.stats.total_runs += 1
            try:
                async with engine.connect() as connection:
                    await connection.exec_driver_sql(self.statement)
            except Exception as e:
                self.stats.failed_runs += 1
                self.stats.last_error = str(e)
                raise
            finally:
                self.stats.last_run_time = datetime.now(UTC)
                self.stats.last_run_duration_seconds = time.monotonic() - started
            self.stats.successful_runs += 1
            self.stats.last_error = None
            logger.debug("Refreshed %s in %.2fs", self.name, self.stats.last_run_duration_seconds)
            return True


def plan_jobs(graph: ViewGraph, scale: float = 1.0) -> list[RefreshJob]:
    """Build the refresh jobs for ``graph`` in dependency order.

    Args:
        graph: The validated catalog.
        scale: Multiplier applied to every interval.

    Returns:
        The top-up job followed by one job per materialized view, leaves
        before the views that read them.
    """
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    jobs = [
        RefreshJob(
            name=TOP_UP_JOB_NAME,
            statement=f"SELECT {TOP_UP_FUNCTION}()",
            interval=TOP_UP_INTERVAL * scale,
        )
    ]
    for view in graph.refresh_order():
        jobs.append(
            RefreshJob(
                name=view.name,
                statement=view.refresh_statement(),
                interval=(view.refresh_interval or DEFAULT_REFRESH_INTERVAL) * scale,
            )
        )
    return jobs


async def refresh_once(engine: AsyncEngine, jobs: list[RefreshJob]) -> dict[str, str]:
    """Run every job sequentially, continuing past failures.

    Returns:
        Mapping of failed job name to error message; empty when all succeeded.
    """
    failures: dict[str, str] = {}
    for job in jobs:
        try:
            await job.run(engine)
        except Exception as e:
            logger.error("Refresh of %s failed: %s", job.name, e)
            failures[job.name] = str(e)
    logger.info("Refresh pass finished: %d jobs, %d failed", len(jobs), len(failures))
    return failures


class RefreshScheduler:
    """Runs each refresh job on its own interval.

    Example:
        ```python
        engine = create_refresh_engine(settings.database.url)
        scheduler = RefreshScheduler(engine, plan_jobs(build_catalog()))
        await scheduler.start()
        ...
        await scheduler.stop()
        ```
    """

    def __init__(
        self,
        engine: AsyncEngine,
        jobs: list[RefreshJob],
        *,
        run_immediately: bool = False,
        on_job_complete: Callable[[RefreshJob], None] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            engine: AUTOCOMMIT engine of the statistics database.
            jobs: Jobs from :func:`plan_jobs`.
            run_immediately: Run every job once at start instead of waiting
                one interval first.
            on_job_complete: Callback after each successful run.
        """
        self._engine = engine
        self._jobs = jobs
        self._run_immediately = run_immediately
        self._on_job_complete = on_job_complete
        self._state = SchedulerState.STOPPED
        self._stop_event = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def jobs(self) -> list[RefreshJob]:
        return list(self._jobs)

    def stats(self) -> dict[str, JobStats]:
        return {job.name: job.stats for job in self._jobs}

    async def start(self) -> None:
        """Start one background loop per job."""
        if self._state != SchedulerState.STOPPED:
            logger.warning("Cannot start refresh scheduler: already %s", self._state.value)
            return
        self._stop_event.clear()
        self._tasks = [
            asyncio.create_task(self._job_loop(job), name=f"refresh:{job.name}")
            for job in self._jobs
        ]
        self._state = SchedulerState.RUNNING
        logger.info("Refresh scheduler started with %d jobs", len(self._jobs))

    async def stop(self) -> None:
        """Stop all loops, cancelling refreshes in flight."""
        if self._state == SchedulerState.STOPPED:
            return
        self._state = SchedulerState.STOPPING
        self._stop_event.set()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []
        self._state = SchedulerState.STOPPED
        logger.info("Refresh scheduler stopped")

    async def _job_loop(self, job: RefreshJob) -> None:
        first = True
        while not self._stop_event.is_set():
            if not (first and self._run_immediately):
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=job.interval.total_seconds(),
                    )
                    break
                except TimeoutError:
                    pass
            first = False

            try:
                ran = await job.run(self._engine)
            except asyncio.CancelledError:
                break
            except Exception as e:
                # Retried on the next interval.
                logger.error("Refresh of %s failed: %s", job.name, e)
                continue

            if ran and self._on_job_complete:
                try:
                    self._on_job_complete(job)
                except Exception as e:
                    logger.warning("Job complete callback failed: %s", e)


async def serve(engine: AsyncEngine, jobs: list[RefreshJob], stop_event: asyncio.Event) -> dict[str, str]:
    """Run the refresh daemon until ``stop_event`` is set.

    Every job runs once in dependency order before the scheduler starts, so a
    composite is never computed from constituents that have not been
    refreshed yet. The scheduler then waits one interval before each job's
    next run.

    Returns:
        Failures of the initial ordered pass.
    """
    failures = await refresh_once(engine, jobs)
    if failures:
        logger.warning("Initial refresh pass had %d failures; retrying on schedule", len(failures))

    scheduler = RefreshScheduler(engine, jobs)
    await scheduler.start()
    try:
        await stop_event.wait()
    finally:
        await scheduler.stop()
    return failures

