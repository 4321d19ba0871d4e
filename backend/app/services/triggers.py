"""Cron schedule for the scheduler jobs, run by APScheduler inside the API process."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import Settings
from app.services.scheduler import DAILY_REPORT, NIGHTLY_BATCH, WEEKLY_CLEANUP, PlanScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledJob:
    name: str
    trigger: CronTrigger
    run: Callable[[], Awaitable[object]]


async def run_scheduled(job: ScheduledJob) -> None:
    """Job entry point: a failure is logged and the next slot still fires."""
    logger.info("Running scheduled job %s", job.name)
    try:
        await job.run()
    except Exception:
        logger.exception("Scheduled job %s failed", job.name)


def default_jobs(scheduler: PlanScheduler, settings: Settings) -> list[ScheduledJob]:
    """Nightly batch, weekly cleanup and daily report at their configured local times."""
    tz = settings.scheduler_timezone
    return [
        ScheduledJob(
            NIGHTLY_BATCH,
            CronTrigger(hour=settings.nightly_batch_hour, minute=0, timezone=tz),
            scheduler.nightly_batch,
        ),
        ScheduledJob(
            WEEKLY_CLEANUP,
            CronTrigger(
                day_of_week=settings.weekly_cleanup_weekday,
                hour=settings.weekly_cleanup_hour,
                minute=0,
                timezone=tz,
            ),
            scheduler.weekly_cleanup,
        ),
        ScheduledJob(
            DAILY_REPORT,
            CronTrigger(hour=settings.daily_report_hour, minute=0, timezone=tz),
            scheduler.daily_report,
        ),
    ]


def build_job_scheduler(jobs: list[ScheduledJob], settings: Settings) -> AsyncIOScheduler:
    """
    One APScheduler job per scheduled job.

    Missed slots are coalesced into a single run and a job never overlaps
    itself within this process; across processes the nightly batch lease
    still applies.
    """
    job_scheduler = AsyncIOScheduler(timezone=settings.scheduler_timezone)
    for job in jobs:
        job_scheduler.add_job(
            run_scheduled,
            trigger=job.trigger,
            args=[job],
            id=job.name,
            name=job.name,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=settings.scheduler_misfire_grace_seconds,
            replace_existing=True,
        )
    return job_scheduler
