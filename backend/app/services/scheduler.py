"""
Scheduled jobs for the plan cache.

- nightly_batch: warm every active user's cache for the next few days
- weekly_cleanup: retention sweep of old plans and old run history
- daily_report: read-only health summary

The nightly batch is guarded by a persisted lease, so when several service
instances fire at the same time only one of them does the work.
"""

import asyncio
import logging
import socket
from datetime import datetime, timedelta
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings, get_settings
from app.db.models import RunStatus, SchedulerRun
from app.schemas.scheduler import (
    BatchReport,
    CleanupReport,
    DailyReport,
    JobReport,
    JobStatus,
    LeaseRead,
    RunSummary,
    UserFailure,
)
from app.services.cache_orchestrator import CacheOrchestrator
from app.services.clock import Clock, utc
from app.services.leases import LeaseManager

logger = logging.getLogger(__name__)

NIGHTLY_BATCH = "nightly_batch"
WEEKLY_CLEANUP = "weekly_cleanup"
DAILY_REPORT = "daily_report"
JOB_NAMES = (NIGHTLY_BATCH, WEEKLY_CLEANUP, DAILY_REPORT)


class PlanScheduler:
    """Batch driver over the cache orchestrator."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        orchestrator: CacheOrchestrator,
        clock: Clock,
        *,
        settings: Settings | None = None,
        instance_id: str | None = None,
    ):
        self.session_factory = session_factory
        self.orchestrator = orchestrator
        self.clock = clock
        self.settings = settings or get_settings()
        self.instance_id = instance_id or f"{socket.gethostname()}-{uuid4().hex[:8]}"
        self.leases = LeaseManager(clock, self.settings.scheduler_lease_ttl_seconds)

    @property
    def assignments(self):
        return self.orchestrator.assignments

    @property
    def cache(self):
        return self.orchestrator.cache

    async def _record_run(
        self,
        job_name: str,
        status: RunStatus,
        started_at: datetime,
        *,
        users_processed: int = 0,
        plans_generated: int = 0,
        failures: int = 0,
        details: dict | None = None,
        error: str | None = None,
    ) -> None:
        async with self.session_factory() as db:
            db.add(
                SchedulerRun(
                    job_name=job_name,
                    status=status.value,
                    started_at=utc(started_at),
                    finished_at=utc(self.clock.now()),
                    users_processed=users_processed,
                    plans_generated=plans_generated,
                    failures=failures,
                    details=details,
                    error=error,
                )
            )
            await db.commit()

    # =========================================================================
    # NIGHTLY BATCH
    # =========================================================================

    async def _run_user(self, user_id: int, report: BatchReport) -> None:
        try:
            manifest = await self.orchestrator.ensure_generated(
                user_id, self.settings.nightly_horizon_days
            )
        except Exception as e:
            logger.exception("Nightly generation failed for user_id=%s", user_id)
            report.failures.append(UserFailure(user_id=user_id, error=repr(e)))
            return

        report.users_processed += 1
        report.plans_generated += len(manifest.succeeded)
        if manifest.failed:
            report.dates_failed += len(manifest.failed)
            report.failures.append(
                UserFailure(
                    user_id=user_id,
                    error="; ".join(f.error for f in manifest.failed),
                    failed_dates=[f.plan_date for f in manifest.failed],
                )
            )

    async def _run_pool(self, user_ids: list[int], report: BatchReport) -> None:
        """Drain the user queue with a fixed number of workers."""
        queue: asyncio.Queue[int] = asyncio.Queue()
        for user_id in user_ids:
            queue.put_nowait(user_id)

        async def worker() -> None:
            while True:
                try:
                    user_id = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                await self._run_user(user_id, report)

        size = max(1, min(self.settings.batch_concurrency, len(user_ids)))
        workers = [asyncio.create_task(worker()) for _ in range(size)]
        try:
            await asyncio.gather(*workers)
        except asyncio.CancelledError:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise

    async def nightly_batch(self) -> BatchReport:
        """
        Warm the cache of every active user for the short horizon.

        A user's failure goes into the report and never aborts the batch. If
        another run still holds the lease, this run is skipped.
        """
        started_at = self.clock.now()
        holder = f"{self.instance_id}:{uuid4().hex[:8]}"

        async with self.session_factory() as db:
            acquired = await self.leases.acquire(db, NIGHTLY_BATCH, holder)
        if not acquired:
            logger.warning("Nightly batch already running, skipping this trigger")
            await self._record_run(NIGHTLY_BATCH, RunStatus.SKIPPED, started_at)
            return BatchReport(skipped=True, started_at=started_at, finished_at=self.clock.now())

        report = BatchReport(started_at=started_at)
        heartbeat = asyncio.create_task(self._keep_lease(holder))
        try:
            async with self.session_factory() as db:
                user_ids = await self.assignments.list_active_user_ids(db)
            report.users_total = len(user_ids)
            logger.info("Nightly batch started: %d active users", len(user_ids))

            await self._run_pool(user_ids, report)
        except asyncio.CancelledError:
            report.cancelled = True
            logger.warning(
                "Nightly batch cancelled after %d/%d users",
                report.users_processed, report.users_total,
            )
            await asyncio.shield(
                self._finish_batch(report, RunStatus.FAILED, "cancelled", holder, heartbeat)
            )
            raise
        except Exception as e:
            logger.exception("Nightly batch aborted")
            await self._finish_batch(report, RunStatus.FAILED, repr(e), holder, heartbeat)
            raise

        await self._finish_batch(report, RunStatus.COMPLETED, None, holder, heartbeat)
        logger.info(
            "Nightly batch completed: %d/%d users processed, %d plans generated, %d failures",
            report.users_processed, report.users_total, report.plans_generated, len(report.failures),
        )
        return report

    async def _keep_lease(self, holder: str) -> None:
        """Renew the batch lease every `scheduler_lease_renew_seconds` until cancelled."""
        while True:
            await asyncio.sleep(self.settings.scheduler_lease_renew_seconds)
            try:
                async with self.session_factory() as db:
                    renewed = await self.leases.renew(db, NIGHTLY_BATCH, holder)
            except Exception:
                logger.exception("Could not renew the %s lease", NIGHTLY_BATCH)
                continue
            if not renewed:
                logger.error("Lease %s is no longer held by %s", NIGHTLY_BATCH, holder)
                return

    async def _finish_batch(
        self,
        report: BatchReport,
        status: RunStatus,
        error: str | None,
        holder: str,
        heartbeat: asyncio.Task,
    ) -> None:
        heartbeat.cancel()
        await asyncio.gather(heartbeat, return_exceptions=True)
        report.finished_at = self.clock.now()
        try:
            await self._record_run(
                NIGHTLY_BATCH,
                status,
                report.started_at,
                users_processed=report.users_processed,
                plans_generated=report.plans_generated,
                failures=len(report.failures),
                details={
                    "users_total": report.users_total,
                    "dates_failed": report.dates_failed,
                    "cancelled": report.cancelled,
                    "failed_users": [f.user_id for f in report.failures],
                },
                error=error,
            )
        finally:
            async with self.session_factory() as db:
                await self.leases.release(db, NIGHTLY_BATCH, holder)

    # =========================================================================
    # RETENTION
    # =========================================================================

    async def weekly_cleanup(self) -> CleanupReport:
        """Drop plans past the retention horizon, then old run history."""
        started_at = self.clock.now()
        history_cutoff = utc(started_at) - timedelta(days=self.settings.history_retention_days)

        async with self.session_factory() as db:
            plans_purged = await self.cache.purge_older_than(db, self.settings.plan_retention_days)
            result = await db.execute(
                delete(SchedulerRun).where(SchedulerRun.started_at < history_cutoff)
            )
            await db.commit()
            runs_purged = result.rowcount
            stats = await self.cache.stats(db)

        report = CleanupReport(plans_purged=plans_purged, runs_purged=runs_purged, cache_stats=stats)
        await self._record_run(
            WEEKLY_CLEANUP,
            RunStatus.COMPLETED,
            started_at,
            details={"plans_purged": plans_purged, "runs_purged": runs_purged},
        )
        logger.info(
            "Weekly cleanup completed: %d plans and %d run records purged", plans_purged, runs_purged
        )
        return report

    # =========================================================================
    # REPORTING
    # =========================================================================

    async def daily_report(self) -> DailyReport:
        """Aggregate cache and run statistics. Writes nothing."""
        now = self.clock.now()
        since = utc(now) - timedelta(hours=24)

        async with self.session_factory() as db:
            stats = await self.cache.stats(db)
            active_users = await self.assignments.list_active_user_ids(db)
            cached_today = await self.cache.count_for_date(db, now.date())
            failures = await db.scalar(
                select(func.coalesce(func.sum(SchedulerRun.failures), 0)).where(
                    SchedulerRun.started_at >= since
                )
            )
            result = await db.execute(
                select(SchedulerRun)
                .where(SchedulerRun.started_at >= since)
                .order_by(SchedulerRun.started_at.desc(), SchedulerRun.id.desc())
                .limit(10)
            )
            recent = [RunSummary.model_validate(run) for run in result.scalars()]

        report = DailyReport(
            report_date=now.date(),
            active_users=len(active_users),
            plans_cached_for_today=cached_today,
            cache_stats=stats,
            failures_last_24h=failures,
            recent_runs=recent,
        )
        logger.info("Daily report: %s", report.model_dump_json())
        return report

    async def job_status(self) -> JobStatus:
        async with self.session_factory() as db:
            leases = await self.leases.list_leases(db)
            last_runs = []
            for job_name in JOB_NAMES:
                run = await db.scalar(
                    select(SchedulerRun)
                    .where(SchedulerRun.job_name == job_name)
                    .order_by(SchedulerRun.started_at.desc(), SchedulerRun.id.desc())
                    .limit(1)
                )
                if run is not None:
                    last_runs.append(RunSummary.model_validate(run))

        return JobStatus(
            enabled=self.settings.scheduler_enabled,
            timezone=self.settings.scheduler_timezone,
            leases=[LeaseRead.model_validate(lease) for lease in leases],
            last_runs=last_runs,
        )

    async def run_job(self, job_name: str) -> JobReport:
        """Run a job by name (manual trigger)."""
        jobs = {
            NIGHTLY_BATCH: self.nightly_batch,
            WEEKLY_CLEANUP: self.weekly_cleanup,
            DAILY_REPORT: self.daily_report,
        }
        if job_name not in jobs:
            raise KeyError(job_name)
        return await jobs[job_name]()
