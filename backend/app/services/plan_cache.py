"""Persisted cache of materialized per-date workout plans."""

import logging
from collections.abc import Iterable
from datetime import date, timedelta

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import CachedPlan, DayOfWeek, SplitAssignment
from app.db.upsert import insert_for
from app.schemas.plans import CacheStats, CacheStatus, PlanContent
from app.services.assignment_store import AssignmentStore
from app.services.clock import Clock, utc

logger = logging.getLogger(__name__)


class PlanCache:
    """
    Store of CachedPlan rows, one per (user_id, plan_date).

    The unique constraint in the database is what keeps concurrent writers
    from producing duplicates; `put` is an upsert against it. Rows move from
    unconsumed to consumed once and are then never rewritten.
    """

    def __init__(self, assignments: AssignmentStore, clock: Clock, next_window_days: int = 7):
        self.assignments = assignments
        self.clock = clock
        self.next_window_days = next_window_days

    async def status(self, db: AsyncSession, user_id: int, horizon_days: int) -> CacheStatus:
        """
        Compare what is cached against what the weekly schedule asks for.

        Dates in [today, today + horizon_days) whose weekday is assigned and
        which have no unconsumed plan are listed in `needs_generation`.
        `next_window_cached` counts rows in [today, today + next_window_days],
        both ends included.
        """
        today = self.clock.today()
        result = await db.execute(
            select(CachedPlan.plan_date, CachedPlan.consumed)
            .where(CachedPlan.user_id == user_id, CachedPlan.plan_date >= today)
            .order_by(CachedPlan.plan_date)
        )
        rows = result.all()

        window_end = today + timedelta(days=self.next_window_days)
        assigned = {a.weekday for a in await self.assignments.get_assignments(db, user_id)}
        unconsumed = {row.plan_date for row in rows if not row.consumed}

        needs_generation = []
        for offset in range(horizon_days):
            day = today + timedelta(days=offset)
            if DayOfWeek.from_date(day).value in assigned and day not in unconsumed:
                needs_generation.append(day)

        return CacheStatus(
            user_id=user_id,
            total_cached=len(rows),
            next_window_cached=sum(1 for row in rows if row.plan_date <= window_end),
            oldest_date=rows[0].plan_date if rows else None,
            newest_date=rows[-1].plan_date if rows else None,
            needs_generation=needs_generation,
        )

    async def get(self, db: AsyncSession, user_id: int, plan_date: date) -> CachedPlan | None:
        result = await db.execute(
            select(CachedPlan).where(
                CachedPlan.user_id == user_id,
                CachedPlan.plan_date == plan_date,
            )
        )
        return result.scalar_one_or_none()

    async def consumed_dates(
        self, db: AsyncSession, user_id: int, dates: Iterable[date]
    ) -> set[date]:
        """Subset of `dates` whose plan has already been started."""
        wanted = list(dates)
        if not wanted:
            return set()
        result = await db.execute(
            select(CachedPlan.plan_date).where(
                CachedPlan.user_id == user_id,
                CachedPlan.plan_date.in_(wanted),
                CachedPlan.consumed.is_(True),
            )
        )
        return set(result.scalars().all())

    async def put(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        plan_date: date,
        assignment: SplitAssignment,
        content: PlanContent,
    ) -> bool:
        """
        Insert or overwrite the unconsumed plan for (user_id, plan_date).

        A concurrent writer for the same key ends up updating the row the
        other one inserted. Consumed rows are left untouched. Returns True if
        a row was written.
        """
        stmt = insert_for(db, CachedPlan).values(
            user_id=user_id,
            plan_date=plan_date,
            weekday=DayOfWeek.from_date(plan_date).value,
            split_id=assignment.split_id,
            split_type=assignment.split_type,
            content=content.model_dump(mode="json"),
            content_version=content.schema_version,
            consumed=False,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "plan_date"],
            set_={
                "weekday": stmt.excluded.weekday,
                "split_id": stmt.excluded.split_id,
                "split_type": stmt.excluded.split_type,
                "content": stmt.excluded.content,
                "content_version": stmt.excluded.content_version,
                "updated_at": func.now(),
            },
            where=CachedPlan.consumed.is_(False),
        )
        result = await db.execute(stmt)
        await db.commit()

        written = result.rowcount > 0
        if not written:
            logger.info(
                "Plan for user_id=%s on %s is already consumed, not overwritten", user_id, plan_date
            )
        return written

    async def mark_consumed(self, db: AsyncSession, user_id: int, plan_date: date) -> bool:
        """Flag the plan as started. No-op when missing or already consumed."""
        result = await db.execute(
            update(CachedPlan)
            .where(
                CachedPlan.user_id == user_id,
                CachedPlan.plan_date == plan_date,
                CachedPlan.consumed.is_(False),
            )
            .values(consumed=True, consumed_at=utc(self.clock.now()))
        )
        await db.commit()
        return result.rowcount > 0

    async def purge_future_unconsumed(self, db: AsyncSession, user_id: int, from_date: date) -> int:
        result = await db.execute(
            delete(CachedPlan).where(
                CachedPlan.user_id == user_id,
                CachedPlan.plan_date >= from_date,
                CachedPlan.consumed.is_(False),
            )
        )
        await db.commit()
        logger.info(
            "Purged %d unconsumed plans for user_id=%s from %s", result.rowcount, user_id, from_date
        )
        return result.rowcount

    async def purge_older_than(self, db: AsyncSession, days: int) -> int:
        """Retention sweep: drop every plan dated more than `days` before today."""
        cutoff = self.clock.today() - timedelta(days=days)
        result = await db.execute(delete(CachedPlan).where(CachedPlan.plan_date < cutoff))
        await db.commit()
        logger.info("Purged %d cached plans dated before %s", result.rowcount, cutoff)
        return result.rowcount

    async def stats(self, db: AsyncSession) -> CacheStats:
        """Global statistics over plans dated today or later."""
        result = await db.execute(
            select(
                func.count(CachedPlan.id),
                func.coalesce(func.sum(case((CachedPlan.consumed.is_(True), 1), else_=0)), 0),
                func.count(func.distinct(CachedPlan.user_id)),
            ).where(CachedPlan.plan_date >= self.clock.today())
        )
        total, consumed, users = result.one()
        return CacheStats(
            total_cached=total,
            consumed=consumed,
            available=total - consumed,
            unique_users=users,
            hit_rate=round(consumed / total * 100, 2) if total else 0.0,
        )

    async def count_for_date(self, db: AsyncSession, plan_date: date) -> int:
        result = await db.execute(
            select(func.count(CachedPlan.id)).where(CachedPlan.plan_date == plan_date)
        )
        return result.scalar_one()
