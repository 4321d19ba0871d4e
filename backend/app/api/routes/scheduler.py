"""Scheduler status and manual job triggers."""

from typing import Literal

from fastapi import APIRouter

from app.api.deps import Orchestrator, Scheduler
from app.schemas.plans import CacheStats
from app.schemas.scheduler import JobReport, JobStatus

router = APIRouter(prefix="/scheduler", tags=["scheduler"])

JobName = Literal["nightly_batch", "weekly_cleanup", "daily_report"]


@router.get("/status", response_model=JobStatus)
async def get_status(scheduler: Scheduler) -> JobStatus:
    """Active leases and the latest run of each job."""
    return await scheduler.job_status()


@router.get("/cache-stats", response_model=CacheStats)
async def get_cache_stats(orchestrator: Orchestrator) -> CacheStats:
    return await orchestrator.get_cache_stats()


@router.post("/jobs/{job_name}/run", response_model=JobReport)
async def run_job(job_name: JobName, scheduler: Scheduler) -> JobReport:
    """
    Run a scheduler job now.

    The nightly batch still honours its lease: if a run is in progress the
    response reports `skipped: true`.
    """
    return await scheduler.run_job(job_name)
