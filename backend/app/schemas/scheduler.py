"""Scheduler job report schemas."""

from datetime import date, datetime
from typing import Annotated, Literal

from pydantic import Field

from app.schemas.base import BaseSchema
from app.schemas.plans import CacheStats


class UserFailure(BaseSchema):
    """A user whose nightly generation failed or partially failed."""

    user_id: int
    error: str
    failed_dates: list[date] = Field(default_factory=list)


class BatchReport(BaseSchema):
    """Aggregate result of a nightly batch. Partial failure is data, not an exception."""

    job_name: Literal["nightly_batch"] = "nightly_batch"
    skipped: bool = False
    started_at: datetime
    finished_at: datetime | None = None
    users_total: int = 0
    users_processed: int = 0
    plans_generated: int = 0
    dates_failed: int = 0
    cancelled: bool = False
    failures: list[UserFailure] = Field(default_factory=list)


class CleanupReport(BaseSchema):
    """Rows removed by the weekly retention pass."""

    job_name: Literal["weekly_cleanup"] = "weekly_cleanup"
    skipped: bool = False
    plans_purged: int = 0
    runs_purged: int = 0
    cache_stats: CacheStats | None = None


class RunSummary(BaseSchema):
    """Recent scheduler run, as stored in the run history."""

    job_name: str
    status: str
    started_at: datetime
    finished_at: datetime | None = None
    users_processed: int
    plans_generated: int
    failures: int


class DailyReport(BaseSchema):
    """Read-only daily health summary."""

    job_name: Literal["daily_report"] = "daily_report"
    report_date: date
    active_users: int
    plans_cached_for_today: int
    cache_stats: CacheStats
    failures_last_24h: int
    recent_runs: list[RunSummary] = Field(default_factory=list)


class LeaseRead(BaseSchema):
    """Current holder of a scheduler job lease."""

    name: str
    holder: str
    acquired_at: datetime
    expires_at: datetime


class JobStatus(BaseSchema):
    """Scheduler state: enabled flag, active leases and latest run per job."""

    enabled: bool
    timezone: str
    leases: list[LeaseRead] = Field(default_factory=list)
    last_runs: list[RunSummary] = Field(default_factory=list)


JobReport = Annotated[BatchReport | CleanupReport | DailyReport, Field(discriminator="job_name")]
