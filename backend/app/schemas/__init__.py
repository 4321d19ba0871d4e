"""Pydantic schemas for API request/response validation."""

from app.schemas.assignments import (
    ScheduleUpdateResult,
    SplitRef,
    WeeklyScheduleRead,
    WeeklyScheduleReplace,
)
from app.schemas.plans import (
    CachedPlanRead,
    CacheStats,
    CacheStatus,
    GenerationError,
    GenerationManifest,
    PlanContent,
    PlannedExercise,
    WorkoutResult,
)
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

__all__ = [
    # Assignments
    "ScheduleUpdateResult",
    "SplitRef",
    "WeeklyScheduleRead",
    "WeeklyScheduleReplace",
    # Plans
    "CachedPlanRead",
    "CacheStats",
    "CacheStatus",
    "GenerationError",
    "GenerationManifest",
    "PlanContent",
    "PlannedExercise",
    "WorkoutResult",
    # Scheduler
    "BatchReport",
    "CleanupReport",
    "DailyReport",
    "JobReport",
    "JobStatus",
    "LeaseRead",
    "RunSummary",
    "UserFailure",
]
