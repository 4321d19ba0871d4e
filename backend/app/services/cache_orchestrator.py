"""
Coordinates the assignment store, the generator and the plan cache.

Holds no state of its own: every operation reads the two stores, calls the
generator where plans are missing and writes the results back. Each store
interaction runs in its own short session bounded by a timeout, so a slow or
failed write never leaves a half-written row behind.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import TypeVar

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings, get_settings
from app.db.models import DayOfWeek, SplitAssignment
from app.schemas.assignments import ScheduleUpdateResult, WeeklyScheduleRead, WeeklyScheduleReplace
from app.schemas.plans import (
    CachedPlanRead,
    CacheStats,
    CacheStatus,
    GenerationError,
    GenerationManifest,
    PlanContent,
    WorkoutResult,
)
from app.services.assignment_store import AssignmentStore
from app.services.clock import Clock
from app.services.exceptions import GenerationFailure
from app.services.generator import PlanGenerator
from app.services.plan_cache import PlanCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheGenerationTask:
    """One missing plan discovered by gap analysis."""

    user_id: int
    plan_date: date
    weekday: DayOfWeek
    assignment: SplitAssignment


class CacheOrchestrator:
    """Fills, serves and invalidates the plan cache."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        generator: PlanGenerator,
        clock: Clock,
        *,
        settings: Settings | None = None,
        assignments: AssignmentStore | None = None,
        cache: PlanCache | None = None,
    ):
        self.session_factory = session_factory
        self.generator = generator
        self.clock = clock
        self.settings = settings or get_settings()
        self.assignments = assignments or AssignmentStore()
        self.cache = cache or PlanCache(
            self.assignments, clock, next_window_days=self.settings.next_window_days
        )

    async def _in_session(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run a store operation in a fresh session, bounded by the store timeout."""
        async with self.session_factory() as db:
            return await asyncio.wait_for(
                operation(db), timeout=self.settings.store_timeout_seconds
            )

    # =========================================================================
    # READS
    # =========================================================================

    async def get_cache_status(self, user_id: int, horizon_days: int | None = None) -> CacheStatus:
        horizon = horizon_days or self.settings.default_horizon_days
        return await self._in_session(lambda db: self.cache.status(db, user_id, horizon))

    async def get_schedule(self, user_id: int) -> WeeklyScheduleRead:
        return await self._in_session(lambda db: self.assignments.get_weekly_schedule(db, user_id))

    async def get_cache_stats(self) -> CacheStats:
        return await self._in_session(self.cache.stats)

    # =========================================================================
    # GENERATION
    # =========================================================================

    async def _generate(self, task: CacheGenerationTask) -> PlanContent:
        """Call the generator once, with a timeout, and validate what it returns."""
        timeout = self.settings.generator_timeout_seconds
        try:
            content = await asyncio.wait_for(
                self.generator.generate(task.user_id, task.plan_date, task.assignment),
                timeout=timeout,
            )
        except GenerationFailure:
            raise
        except asyncio.TimeoutError as e:
            raise GenerationFailure(task.plan_date, f"generator timed out after {timeout:g}s") from e
        except Exception as e:
            raise GenerationFailure(task.plan_date, f"generator error: {e}") from e

        if isinstance(content, PlanContent):
            return content
        try:
            return PlanContent.model_validate(content)
        except ValidationError as e:
            raise GenerationFailure(task.plan_date, "generator returned an invalid plan") from e

    async def _store(self, task: CacheGenerationTask, content: PlanContent) -> bool:
        return await self._in_session(
            lambda db: self.cache.put(
                db,
                user_id=task.user_id,
                plan_date=task.plan_date,
                assignment=task.assignment,
                content=content,
            )
        )

    async def _plan_tasks(
        self, user_id: int, horizon_days: int
    ) -> tuple[list[CacheGenerationTask], list[date]]:
        """Gap analysis: missing dates paired with their assignment, plus consumed dates to skip."""

        async def load(db: AsyncSession):
            status = await self.cache.status(db, user_id, horizon_days)
            assignments = await self.assignments.get_assignments(db, user_id)
            consumed = await self.cache.consumed_dates(db, user_id, status.needs_generation)
            return status, assignments, consumed

        status, assignments, consumed = await self._in_session(load)
        by_weekday = {a.weekday: a for a in assignments}

        tasks, skipped = [], []
        for plan_date in status.needs_generation:
            if plan_date in consumed:
                skipped.append(plan_date)
                continue
            weekday = DayOfWeek.from_date(plan_date)
            assignment = by_weekday.get(weekday.value)
            if assignment is not None:
                tasks.append(CacheGenerationTask(user_id, plan_date, weekday, assignment))
        return tasks, skipped

    async def ensure_generated(
        self, user_id: int, horizon_days: int | None = None
    ) -> GenerationManifest:
        """
        Generate and cache every missing plan within the horizon.

        Dates are handled one by one; a failure is recorded in the manifest
        and the remaining dates still run. A date whose plan was already
        started is reported as skipped.
        """
        horizon = horizon_days or self.settings.default_horizon_days
        tasks, skipped = await self._plan_tasks(user_id, horizon)
        manifest = GenerationManifest(user_id=user_id, skipped=skipped)

        if not tasks:
            logger.debug("Cache for user_id=%s is up to date (horizon=%d)", user_id, horizon)
            return manifest

        logger.info(
            "Generating %d plans for user_id=%s: %s",
            len(tasks), user_id, [t.plan_date.isoformat() for t in tasks],
        )
        for task in tasks:
            try:
                content = await self._generate(task)
                written = await self._store(task, content)
            except Exception as e:
                message = e.message if isinstance(e, GenerationFailure) else f"store error: {e!r}"
                logger.warning(
                    "Plan generation failed for user_id=%s on %s: %s",
                    user_id, task.plan_date, message,
                )
                manifest.failed.append(GenerationError(plan_date=task.plan_date, error=message))
                continue

            if written:
                manifest.succeeded.append(task.plan_date)
            else:
                manifest.skipped.append(task.plan_date)

        logger.info(
            "Cache generation for user_id=%s: %d succeeded, %d failed, %d skipped",
            user_id, len(manifest.succeeded), len(manifest.failed), len(manifest.skipped),
        )
        return manifest

    async def get_or_generate(self, user_id: int, plan_date: date) -> WorkoutResult:
        """
        Serve the plan for one date, generating it on a cache miss.

        Unassigned weekdays are rest days, not errors. Two concurrent calls for
        the same key may both generate; the second upsert overwrites the first
        with equivalent content, so one row remains.

        Raises:
            GenerationFailure: generation or storage failed for this date.
        """
        weekday = DayOfWeek.from_date(plan_date)

        async def lookup(db: AsyncSession):
            assignment = await self.assignments.get_for_weekday(db, user_id, weekday)
            if assignment is None:
                return None, None, await self.assignments.next_training_day(db, user_id, plan_date)
            return assignment, await self.cache.get(db, user_id, plan_date), None

        assignment, cached, next_day = await self._in_session(lookup)

        if assignment is None:
            logger.debug("user_id=%s has no split on %s (rest day)", user_id, weekday.value)
            return WorkoutResult(
                user_id=user_id,
                plan_date=plan_date,
                weekday=weekday,
                is_rest_day=True,
                next_training_date=next_day,
                next_training_day=DayOfWeek.from_date(next_day) if next_day else None,
            )

        if cached is not None:
            return WorkoutResult(
                user_id=user_id,
                plan_date=plan_date,
                weekday=weekday,
                is_rest_day=False,
                from_cache=True,
                plan=CachedPlanRead.model_validate(cached),
            )

        logger.info("Cache miss for user_id=%s on %s, generating on demand", user_id, plan_date)
        task = CacheGenerationTask(user_id, plan_date, weekday, assignment)
        content = await self._generate(task)
        try:
            await self._store(task, content)
            stored = await self._in_session(lambda db: self.cache.get(db, user_id, plan_date))
        except Exception as e:
            logger.exception("Could not store on-demand plan for user_id=%s on %s", user_id, plan_date)
            raise GenerationFailure(plan_date, "generated plan could not be stored") from e
        if stored is None:
            raise GenerationFailure(plan_date, "plan was removed before it could be served")

        return WorkoutResult(
            user_id=user_id,
            plan_date=plan_date,
            weekday=weekday,
            is_rest_day=False,
            plan=CachedPlanRead.model_validate(stored),
        )

    async def start_workout(self, user_id: int, plan_date: date) -> WorkoutResult:
        """
        Serve (or generate) the plan for a date and mark it consumed.

        Raises:
            GenerationFailure: no plan could be produced, or it was purged
                before it could be returned.
        """
        result = await self.get_or_generate(user_id, plan_date)
        if result.is_rest_day:
            return result

        await self._in_session(lambda db: self.cache.mark_consumed(db, user_id, plan_date))
        plan = await self._in_session(lambda db: self.cache.get(db, user_id, plan_date))
        if plan is None:
            raise GenerationFailure(plan_date, "plan was removed before it could be served")
        result.plan = CachedPlanRead.model_validate(plan)
        return result

    # =========================================================================
    # INVALIDATION
    # =========================================================================

    async def on_assignment_changed(
        self, user_id: int, horizon_days: int | None = None
    ) -> GenerationManifest:
        """
        Drop every not-yet-started plan from today on, then refill.

        Past and consumed plans are history and stay as they are.
        """
        today = self.clock.today()
        await self._in_session(lambda db: self.cache.purge_future_unconsumed(db, user_id, today))
        return await self.ensure_generated(user_id, horizon_days or self.settings.default_horizon_days)

    async def replace_assignments(
        self, user_id: int, schedule: WeeklyScheduleReplace
    ) -> ScheduleUpdateResult:
        """
        Save a new weekly schedule and rebuild the user's future cache.

        The new week and the removal of every unstarted plan from today on
        commit together; generation runs afterwards, so a generator failure
        leaves gaps to refill rather than plans for the old week.

        Raises:
            ScheduleValidationError: schedule rejected; nothing was written.
        """
        today = self.clock.today()
        await self._in_session(
            lambda db: self.assignments.replace_assignments(
                db, user_id, schedule, invalidate_from=today
            )
        )
        manifest = await self.ensure_generated(user_id, self.settings.default_horizon_days)
        return ScheduleUpdateResult(schedule=await self.get_schedule(user_id), regenerated=manifest)

    async def regenerate(self, user_id: int) -> GenerationManifest:
        """Forced rebuild over the extended horizon."""
        logger.info("Regenerating plan cache for user_id=%s", user_id)
        return await self.on_assignment_changed(user_id, self.settings.regenerate_horizon_days)
