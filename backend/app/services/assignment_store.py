"""Persistence of each user's weekday → split mapping."""

import logging
from collections.abc import Callable, Collection, Iterable
from datetime import date, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import WEEKDAYS, CachedPlan, DayOfWeek, SplitAssignment
from app.schemas.assignments import SplitRef, WeeklyScheduleRead, WeeklyScheduleReplace
from app.services.assignment_validation import validate_weekly_schedule
from app.services.exceptions import ScheduleValidationError

logger = logging.getLogger(__name__)

ScheduleValidator = Callable[[Iterable[DayOfWeek], Collection[DayOfWeek], int], list[str]]


def _weekday_order(assignment: SplitAssignment) -> int:
    return WEEKDAYS.index(DayOfWeek(assignment.weekday))


class AssignmentStore:
    """
    Source of truth for which weekdays should have a plan.

    The weekly set is replaced as a whole inside one transaction, so a failed
    insert rolls the delete back and the previous week stays in place.
    """

    def __init__(self, validator: ScheduleValidator = validate_weekly_schedule):
        self.validator = validator

    async def replace_assignments(
        self,
        db: AsyncSession,
        user_id: int,
        schedule: WeeklyScheduleReplace,
        *,
        invalidate_from: date | None = None,
    ) -> list[SplitAssignment]:
        """
        Replace the user's whole week.

        With `invalidate_from`, the user's unconsumed plans dated on or after
        it are deleted in the same transaction.

        Raises:
            ScheduleValidationError: schedule rejected; nothing was written.
        """
        errors = self.validator(
            list(schedule.days), schedule.available_weekdays, schedule.weekly_frequency
        )
        if errors:
            logger.info("Rejected schedule for user_id=%s: %s", user_id, errors)
            raise ScheduleValidationError(errors)

        rows = [
            SplitAssignment(
                user_id=user_id,
                weekday=day.value,
                split_id=split.split_id,
                split_type=split.split_type,
                split_name=split.split_name,
                weekly_frequency=schedule.weekly_frequency,
                is_active=True,
            )
            for day, split in sorted(schedule.days.items(), key=lambda item: WEEKDAYS.index(item[0]))
        ]

        try:
            await db.execute(delete(SplitAssignment).where(SplitAssignment.user_id == user_id))
            db.add_all(rows)
            if invalidate_from is not None:
                result = await db.execute(
                    delete(CachedPlan).where(
                        CachedPlan.user_id == user_id,
                        CachedPlan.plan_date >= invalidate_from,
                        CachedPlan.consumed.is_(False),
                    )
                )
                logger.info(
                    "Invalidating %d unconsumed plans for user_id=%s from %s",
                    result.rowcount, user_id, invalidate_from,
                )
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("Failed to replace assignments for user_id=%s", user_id)
            raise

        logger.info("Saved %d split assignments for user_id=%s", len(rows), user_id)
        return rows

    async def get_assignments(self, db: AsyncSession, user_id: int) -> list[SplitAssignment]:
        """Active assignments of a user, Monday first."""
        result = await db.execute(
            select(SplitAssignment).where(
                SplitAssignment.user_id == user_id,
                SplitAssignment.is_active.is_(True),
            )
        )
        return sorted(result.scalars().all(), key=_weekday_order)

    async def get_for_weekday(
        self, db: AsyncSession, user_id: int, weekday: DayOfWeek
    ) -> SplitAssignment | None:
        result = await db.execute(
            select(SplitAssignment).where(
                SplitAssignment.user_id == user_id,
                SplitAssignment.weekday == weekday.value,
                SplitAssignment.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def get_weekly_schedule(self, db: AsyncSession, user_id: int) -> WeeklyScheduleRead:
        assignments = await self.get_assignments(db, user_id)
        return WeeklyScheduleRead(
            user_id=user_id,
            weekly_frequency=assignments[0].weekly_frequency if assignments else None,
            days={
                DayOfWeek(a.weekday): SplitRef(
                    split_id=a.split_id, split_type=a.split_type, split_name=a.split_name
                )
                for a in assignments
            },
        )

    async def list_active_user_ids(self, db: AsyncSession) -> list[int]:
        """Users with at least one active assignment."""
        result = await db.execute(
            select(SplitAssignment.user_id)
            .where(SplitAssignment.is_active.is_(True))
            .distinct()
            .order_by(SplitAssignment.user_id)
        )
        return list(result.scalars().all())

    async def next_training_day(
        self, db: AsyncSession, user_id: int, after: date
    ) -> date | None:
        """First date strictly after `after` whose weekday has an assignment (one week lookahead)."""
        assigned = {a.weekday for a in await self.get_assignments(db, user_id)}
        for offset in range(1, 8):
            candidate = after + timedelta(days=offset)
            if DayOfWeek.from_date(candidate).value in assigned:
                return candidate
        return None
