"""Periodic job runner.

A JobScheduler is built once at start-up and owns the state of every
named job: its cadence, whether it is running, when it last ran and what
it returned. Overlapping runs of the same job are skipped, not queued;
different jobs run independently as separate asyncio tasks.

Cadence:
    interval: run every N seconds after the previous start
    daily_hour: run once a day at HH:00 UTC

Error Handling Strategy:
    - A handler's exception is logged with traceback and recorded on the
      job (failures, last_error); the scheduler keeps running
    - run_job() on a running job returns None (skip)
    - trigger() on an unknown or running job raises JobError
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

from errors import JobError
from observability.logging import clear_context, set_job_context
from observability.tracing import trace_operation

logger = logging.getLogger(__name__)

JobHandler = Callable[[], Awaitable[Any]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """State of one named periodic job."""

    name: str
    handler: JobHandler
    interval: timedelta | None = None
    daily_hour: int | None = None
    run_on_start: bool = False
    is_running: bool = False
    next_run: datetime | None = None
    last_run: datetime | None = None
    last_result: Any = None
    last_error: str = ""
    runs: int = 0
    failures: int = 0

    def following_run(self, now: datetime) -> datetime:
        """First scheduled time strictly after now."""
        if self.interval is not None:
            return now + self.interval
        candidate = now.astimezone(timezone.utc).replace(
            hour=self.daily_hour, minute=0, second=0, microsecond=0
        )
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    def status(self) -> dict[str, Any]:
        result = self.last_result
        if hasattr(result, "to_dict"):
            result = result.to_dict()
        return {
            "interval_seconds": int(self.interval.total_seconds()) if self.interval else None,
            "daily_hour": self.daily_hour,
            "is_running": self.is_running,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_result": result,
            "last_error": self.last_error,
            "runs": self.runs,
            "failures": self.failures,
        }


class JobScheduler:
    """Runs named async jobs on fixed cadences with per-job running guards.

    Example:
        >>> scheduler = JobScheduler(poll_seconds=30)
        >>> scheduler.add_job("feeds", feeds.tick, interval_seconds=1800, run_on_start=True)
        >>> scheduler.add_job("cleanup", cleanup, daily_hour=3)
        >>> await scheduler.run_forever()
    """

    def __init__(self, poll_seconds: float = 30):
        self.poll_seconds = poll_seconds
        self._jobs: dict[str, Job] = {}
        self._tasks: set[asyncio.Task] = set()
        self._stop: asyncio.Event | None = None

    def add_job(
        self,
        name: str,
        handler: JobHandler,
        interval_seconds: float | None = None,
        daily_hour: int | None = None,
        run_on_start: bool = False,
    ) -> Job:
        """Register a job with exactly one of interval_seconds or daily_hour."""
        if name in self._jobs:
            raise ValueError(f"Job already registered: {name}")
        if (interval_seconds is None) == (daily_hour is None):
            raise ValueError(f"Job {name} needs exactly one of interval_seconds or daily_hour")
        if interval_seconds is not None and interval_seconds <= 0:
            raise ValueError(f"Job {name} interval must be positive")
        if daily_hour is not None and not 0 <= daily_hour <= 23:
            raise ValueError(f"Job {name} daily_hour must be 0-23")

        job = Job(
            name=name,
            handler=handler,
            interval=timedelta(seconds=interval_seconds) if interval_seconds is not None else None,
            daily_hour=daily_hour,
            run_on_start=run_on_start,
        )
        self._jobs[name] = job
        return job

    @property
    def jobs(self) -> dict[str, Job]:
        return dict(self._jobs)

    def get(self, name: str) -> Job:
        try:
            return self._jobs[name]
        except KeyError:
            raise JobError(f"Unknown job: {name}") from None

    def status(self) -> dict[str, dict[str, Any]]:
        """Status of every job, keyed by name."""
        return {name: job.status() for name, job in self._jobs.items()}

    async def run_job(self, name: str) -> Any:
        """Run a job now unless it is already running.

        Returns:
            The handler's result, or None when skipped or failed

        Raises:
            JobError: If the job is unknown
        """
        job = self.get(name)
        if job.is_running:
            logger.info("Job skipped, previous run still active | job=%s", name)
            return None

        job.is_running = True
        run_id = uuid.uuid4().hex[:8]
        set_job_context(name, run_id)
        started = _now()
        logger.info("Job started | job=%s", name)

        try:
            with trace_operation(f"job.{name}", {"job": name, "run_id": run_id}) as attrs:
                result = await job.handler()
                if hasattr(result, "to_dict"):
                    attrs.update({k: v for k, v in result.to_dict().items() if isinstance(v, (int, float, str, bool))})
            job.last_result = result
            job.last_error = ""
            return result
        except asyncio.CancelledError:
            logger.info("Job cancelled | job=%s", name)
            raise
        except Exception as e:
            job.failures += 1
            job.last_result = None
            job.last_error = f"{type(e).__name__}: {e}"
            logger.error("Job failed | job=%s type=%s error=%s", name, type(e).__name__, e, exc_info=True)
            return None
        finally:
            job.is_running = False
            job.runs += 1
            job.last_run = started
            logger.info("Job finished | job=%s duration=%.1fs", name, (_now() - started).total_seconds())
            clear_context()

    async def trigger(self, name: str) -> Any:
        """Run a job on demand.

        Raises:
            JobError: If the job is unknown or already running
        """
        job = self.get(name)
        if job.is_running:
            raise JobError(f"Job is already running: {name}")
        return await self.run_job(name)

    def start(self, now: datetime | None = None) -> None:
        """Compute first run times; run_on_start jobs are due immediately."""
        now = now or _now()
        for job in self._jobs.values():
            job.next_run = now if job.run_on_start else job.following_run(now)

    def due_jobs(self, now: datetime | None = None) -> list[str]:
        now = now or _now()
        return [
            name for name, job in self._jobs.items()
            if job.next_run is not None and job.next_run <= now and not job.is_running
        ]

    def dispatch_due(self, now: datetime | None = None) -> list[asyncio.Task]:
        """Start every due job as its own task and advance its schedule.

        A job that comes due while its previous run is still active skips
        that occurrence.
        """
        now = now or _now()
        for job in self._jobs.values():
            if job.is_running and job.next_run is not None and job.next_run <= now:
                job.next_run = job.following_run(now)
                logger.info(
                    "Job skipped, previous run still active | job=%s next_run=%s",
                    job.name, job.next_run.isoformat(),
                )

        started = []
        for name in self.due_jobs(now):
            job = self._jobs[name]
            job.next_run = job.following_run(now)
            task = asyncio.create_task(self.run_job(name), name=f"job-{name}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            started.append(task)
        return started

    def stop(self) -> None:
        """Ask run_forever to return after in-flight jobs finish."""
        if self._stop is not None:
            self._stop.set()

    async def run_forever(self) -> None:
        """Poll for due jobs until stop() is called or the task is cancelled."""
        self._stop = asyncio.Event()
        self.start()
        logger.info(
            "Scheduler started | jobs=%s poll=%ss",
            ",".join(self._jobs), self.poll_seconds,
        )

        try:
            while not self._stop.is_set():
                self.dispatch_due()
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.poll_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            if self._tasks:
                logger.info("Waiting for running jobs | count=%d", len(self._tasks))
                await asyncio.gather(*self._tasks, return_exceptions=True)
            logger.info("Scheduler stopped")
