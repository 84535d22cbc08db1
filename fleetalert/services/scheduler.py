"""
Alert Scheduler — binds checks to schedules and runs them.

Runs in its own process (python -m fleetalert.scheduler_main), not inside
an API worker.

Jobs:
1. One job per check, each on its own schedule
2. Full sweep (daily by default) — every check once
3. Alert cleanup (daily by default) — retention

A check never overlaps itself. Each name owns an asyncio.Lock shared by
scheduled and manual runs: a scheduled firing that finds the lock held is
skipped, a manual run waits for it. Different checks run concurrently.

Scheduled runs execute in tasks owned by this class and shielded from the
executor, so stopping the scheduler never cancels a check mid-write.
wait_idle() awaits them before the database is closed.
"""

import asyncio
from datetime import datetime
from typing import Optional, Union

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from fleetalert.checks.base import BaseCheck
from fleetalert.db.models import utcnow
from fleetalert.errors import ConfigurationError, UnknownCheckError
from fleetalert.scheduling.schedules import Schedule, parse_schedule, to_trigger
from fleetalert.schemas import CheckResult, CleanupResult, SchedulerStatus, SweepResult
from fleetalert.services.alert_store import AlertStore
from fleetalert.services.domain import SourceFactory
from fleetalert.services.retention import RetentionJob

logger = structlog.get_logger(__name__)

FULL_SWEEP = "full_sweep"


class AlertScheduler:
    """Check registry and background scheduler for alert generation."""

    def __init__(
        self,
        store: AlertStore,
        source_factory: SourceFactory,
        timezone: str = "UTC",
    ):
        self.store = store
        self.source_factory = source_factory
        self.timezone = timezone
        try:
            self.scheduler = AsyncIOScheduler(timezone=timezone)
        except LookupError as e:
            raise ConfigurationError(f"Unknown scheduler timezone {timezone!r}") from e

        self._checks: dict[str, BaseCheck] = {}
        self._cleanup: Optional[RetentionJob] = None
        self._schedules: dict[str, Schedule] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._in_flight: set[asyncio.Task] = set()
        self._running = False

    # ── Registration ───────────────────────────────────────────────────

    def _bind(self, name: str, schedule: Union[str, Schedule]) -> None:
        if name in self._schedules:
            raise ConfigurationError(f"A job named {name!r} is already registered")
        self._schedules[name] = parse_schedule(schedule)
        self._locks[name] = asyncio.Lock()

    def register(self, check: BaseCheck, schedule: Union[str, Schedule]) -> None:
        """Bind a check to its trigger. Raises on a bad schedule or duplicate name."""
        self._bind(check.name, schedule)
        self._checks[check.name] = check
        logger.debug("check_registered", check=check.name, schedule=str(self._schedules[check.name]))

    def register_cleanup(self, job: RetentionJob, schedule: Union[str, Schedule]) -> None:
        if self._cleanup is not None:
            raise ConfigurationError("A cleanup job is already registered")
        self._bind(job.name, schedule)
        self._cleanup = job

    def register_sweep(self, schedule: Union[str, Schedule]) -> None:
        """Schedule a full sweep (every registered check once)."""
        if FULL_SWEEP in self._schedules:
            raise ConfigurationError("A full sweep is already registered")
        self._schedules[FULL_SWEEP] = parse_schedule(schedule)

    @property
    def check_names(self) -> list[str]:
        return list(self._checks)

    # ── Lifecycle ──────────────────────────────────────────────────────

    def start(self) -> None:
        """Add every registered trigger and start firing. No-op if running."""
        if self._running:
            return
        for name, schedule in self._schedules.items():
            self.scheduler.add_job(
                self._dispatch,
                to_trigger(schedule, self.timezone),
                args=[name],
                id=name,
                name=name,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
        self.scheduler.start()
        self._running = True
        logger.info("alert_scheduler_started", jobs=len(self._schedules), timezone=self.timezone)

    def stop(self) -> None:
        """Stop firing new occurrences. In-flight runs finish on their own.

        AsyncIOScheduler defers its shutdown to the next loop iteration, so
        the jobs are paused here first and the running flag is our own.
        """
        if not self._running:
            return
        self._running = False
        self.scheduler.pause()
        self.scheduler.shutdown(wait=False)
        logger.info("alert_scheduler_stopped", in_flight=len(self._in_flight))

    async def wait_idle(self) -> None:
        """Wait for every scheduled run that is still in flight."""
        while True:
            pending = [task for task in self._in_flight if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            is_running=self._running,
            task_count=len(self._schedules),
        )

    # ── Manual runs ────────────────────────────────────────────────────

    async def run_all(self) -> SweepResult:
        """Run every registered check once, concurrently. Cleanup is not included."""
        return await self._sweep(wait=True)

    async def run_check(self, name: str) -> Union[CheckResult, CleanupResult]:
        """Run one check (or the cleanup job) by name, waiting if it is busy."""
        if name not in self._locks:
            raise UnknownCheckError(name)
        return await self._run_locked(name, wait=True)

    async def run_cleanup(self) -> CleanupResult:
        if self._cleanup is None:
            raise UnknownCheckError(RetentionJob.name)
        return await self._run_locked(self._cleanup.name, wait=True)

    # ── Scheduled path ─────────────────────────────────────────────────

    async def _dispatch(self, name: str) -> None:
        """APScheduler job target: run ``name`` in a task the executor cannot cancel."""
        if not self._running:
            return
        task = asyncio.create_task(self.run_scheduled(name), name=f"alert-job:{name}")
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        await asyncio.shield(task)

    async def run_scheduled(self, name: str) -> None:
        """One scheduled occurrence. Never raises: the next occurrence must still fire."""
        fired_at = utcnow()
        try:
            if name == FULL_SWEEP:
                await self._sweep(wait=False)
            else:
                await self._run_locked(name, wait=False, fired_at=fired_at)
        except Exception as e:
            logger.error(
                "scheduled_job_failed",
                job=name,
                fired_at=fired_at.isoformat(),
                error=str(e),
                exc_info=True,
            )

    # ── Internals ──────────────────────────────────────────────────────

    async def _sweep(self, wait: bool) -> SweepResult:
        logger.info("full_sweep_started", checks=len(self._checks))
        names = list(self._checks)
        outcomes = await asyncio.gather(
            *(self._run_locked(name, wait=wait) for name in names)
        )

        sweep = SweepResult()
        for name, result in zip(names, outcomes):
            if result is None:
                continue
            sweep.results[name] = result
            sweep.total += result.count
            if not result.ok:
                sweep.failed.append(name)

        logger.info(
            "full_sweep_completed",
            total=sweep.total,
            failed=sweep.failed,
            counts=sweep.counts,
        )
        return sweep

    async def _run_locked(
        self,
        name: str,
        wait: bool,
        fired_at: Optional[datetime] = None,
    ):
        """Run ``name`` under its lock. Returns None when skipped for overlap."""
        lock = self._locks[name]
        if not wait and lock.locked():
            logger.info(
                "check_skipped_overlap",
                check=name,
                fired_at=(fired_at or utcnow()).isoformat(),
            )
            return None

        async with lock:
            now = utcnow()
            if self._cleanup is not None and name == self._cleanup.name:
                return await self._execute_cleanup(now)
            return await self._execute_check(self._checks[name], now)

    async def _execute_check(self, check: BaseCheck, now: datetime) -> CheckResult:
        try:
            async with self.source_factory() as source:
                return await check.run(source, self.store, now=now)
        except Exception as e:
            logger.error(
                "check_failed",
                check=check.name,
                triggered_at=now.isoformat(),
                error=str(e),
                exc_info=True,
            )
            return CheckResult(check=check.name, ok=False, error=str(e))

    async def _execute_cleanup(self, now: datetime) -> CleanupResult:
        try:
            return await self._cleanup.run(now=now)
        except Exception as e:
            logger.error(
                "check_failed",
                check=self._cleanup.name,
                triggered_at=now.isoformat(),
                error=str(e),
                exc_info=True,
            )
            return CleanupResult(ok=False, error=str(e))
