"""Cached plan schemas and the versioned plan content payload."""

from datetime import date, datetime
from typing import Literal

from pydantic import Field

from app.db.models import DayOfWeek
from app.schemas.base import BaseSchema

PLAN_CONTENT_VERSION = 1


# =============================================================================
# PLAN CONTENT (generator output)
# =============================================================================


class PlannedExercise(BaseSchema):
    """One exercise prescription inside a plan."""

    name: str = Field(..., min_length=1, max_length=255)
    muscle_group: str | None = None
    sets: int = Field(..., ge=1, le=20)
    reps: str = Field(..., min_length=1, max_length=50)  # "8-12", "30s", "AMRAP"
    rest_seconds: int = Field(90, ge=0, le=900)
    notes: str | None = None


class PlanContent(BaseSchema):
    """
    Versioned plan payload produced by the generator.

    Validated before it is written to the cache so readers never see a
    malformed plan.
    """

    schema_version: Literal[1] = PLAN_CONTENT_VERSION
    split_name: str = Field(..., min_length=1, max_length=255)
    focus: str | None = None
    muscle_groups: list[str] = Field(default_factory=list)
    exercises: list[PlannedExercise] = Field(..., min_length=1)
    estimated_minutes: int = Field(..., ge=5, le=300)
    notes: str | None = None


# =============================================================================
# CACHE READ MODELS
# =============================================================================


class CachedPlanRead(BaseSchema):
    """Schema for reading a cached plan."""

    id: int
    user_id: int
    plan_date: date
    weekday: DayOfWeek
    split_id: int
    split_type: str
    content: PlanContent
    content_version: int
    consumed: bool
    consumed_at: datetime | None = None
    created_at: datetime


class CacheStatus(BaseSchema):
    """Derived view of what is cached for a user and which dates are missing."""

    user_id: int
    total_cached: int
    next_window_cached: int
    oldest_date: date | None = None
    newest_date: date | None = None
    needs_generation: list[date] = Field(default_factory=list)


class CacheStats(BaseSchema):
    """Global cache statistics for today and later."""

    total_cached: int
    consumed: int
    available: int
    unique_users: int
    hit_rate: float  # percentage of cached plans that were started


class GenerationError(BaseSchema):
    """A single date that could not be generated."""

    plan_date: date
    error: str


class GenerationManifest(BaseSchema):
    """Outcome of a gap-filling pass for one user."""

    user_id: int
    succeeded: list[date] = Field(default_factory=list)
    failed: list[GenerationError] = Field(default_factory=list)
    skipped: list[date] = Field(default_factory=list)


class WorkoutResult(BaseSchema):
    """
    Response of the interactive path.

    A rest day is a normal outcome: `is_rest_day` is set and `plan` is None.
    """

    user_id: int
    plan_date: date
    weekday: DayOfWeek
    is_rest_day: bool
    from_cache: bool = False
    next_training_date: date | None = None
    next_training_day: DayOfWeek | None = None
    plan: CachedPlanRead | None = None
