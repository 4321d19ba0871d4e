"""Weekly schedule (split assignment) schemas."""

from pydantic import Field

from app.db.models import DayOfWeek
from app.schemas.base import BaseSchema, RequestSchema
from app.schemas.plans import GenerationManifest


class SplitRef(RequestSchema):
    """A workout split template placed on one weekday."""

    split_id: int = Field(..., gt=0)
    split_type: str = Field(..., min_length=1, max_length=50)
    split_name: str | None = Field(None, max_length=255)


class WeeklyScheduleReplace(RequestSchema):
    """
    Full replacement of a user's weekly schedule.

    The week is one logical unit: days omitted from `days` become rest days.
    `available_weekdays` comes from the user's training preferences and bounds
    which days may be assigned.
    """

    weekly_frequency: int = Field(..., ge=1, le=7)
    available_weekdays: list[DayOfWeek]
    days: dict[DayOfWeek, SplitRef]


class WeeklyScheduleRead(BaseSchema):
    """A user's active weekly schedule, keyed by weekday."""

    user_id: int
    weekly_frequency: int | None = None
    days: dict[DayOfWeek, SplitRef]


class ScheduleUpdateResult(BaseSchema):
    """Saved schedule plus the cache regeneration it triggered."""

    schedule: WeeklyScheduleRead
    regenerated: GenerationManifest
