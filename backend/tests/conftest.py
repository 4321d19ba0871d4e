"""Pytest configuration and fixtures."""

import asyncio
from collections.abc import AsyncGenerator
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps import get_orchestrator, get_scheduler
from app.config import Settings
from app.db import models  # noqa: F401 - registers tables on Base.metadata
from app.db.base import Base
from app.db.models import CachedPlan, DayOfWeek
from app.db.session import build_engine, build_session_factory
from app.main import app
from app.schemas.assignments import SplitRef, WeeklyScheduleReplace
from app.schemas.plans import PlanContent, PlannedExercise
from app.services.assignment_store import AssignmentStore
from app.services.cache_orchestrator import CacheOrchestrator
from app.services.scheduler import PlanScheduler

TZ = ZoneInfo("America/New_York")
MONDAY = date(2025, 3, 10)


class FakeClock:
    """Clock frozen at a fixed instant; moves only through advance()."""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


def make_content(split_type: str) -> PlanContent:
    """Deterministic plan content for a split."""
    return PlanContent(
        split_name=f"{split_type.title()} Day",
        focus=split_type,
        muscle_groups=[split_type],
        exercises=[
            PlannedExercise(name=f"{split_type} compound", muscle_group=split_type, sets=4, reps="6-8"),
            PlannedExercise(name=f"{split_type} isolation", muscle_group=split_type, sets=3, reps="10-12"),
        ],
        estimated_minutes=50,
    )


class FakeGenerator:
    """
    Records calls and returns deterministic content.

    `fail_on` holds (user_id, date) pairs that raise; `delay` yields to the
    event loop so concurrent callers interleave.
    """

    def __init__(self):
        self.calls: list[tuple[int, date]] = []
        self.fail_on: set[tuple[int, date]] = set()
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate(self, user_id, plan_date, assignment):
        self.calls.append((user_id, plan_date))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if (user_id, plan_date) in self.fail_on:
                raise RuntimeError("generator unavailable")
            return make_content(assignment.split_type)
        finally:
            self.in_flight -= 1


def weekly_schedule(
    days: dict[str, tuple[int, str]],
    *,
    weekly_frequency: int | None = None,
    available: list[str] | None = None,
) -> WeeklyScheduleReplace:
    """Build a schedule from {"monday": (split_id, split_type), ...}."""
    return WeeklyScheduleReplace(
        weekly_frequency=weekly_frequency or max(len(days), 1),
        available_weekdays=[DayOfWeek(d) for d in (available or [d.value for d in DayOfWeek])],
        days={DayOfWeek(day): SplitRef(split_id=sid, split_type=stype) for day, (sid, stype) in days.items()},
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="development",
        generator_timeout_seconds=1.0,
        store_timeout_seconds=10.0,
        batch_concurrency=2,
    )


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so concurrent sessions get separate connections."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    """Monday 2025-03-10, 09:00 New York time."""
    return FakeClock(datetime.combine(MONDAY, time(9, 0), tzinfo=TZ))


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def orchestrator(session_factory, generator, clock, settings) -> CacheOrchestrator:
    return CacheOrchestrator(session_factory, generator, clock, settings=settings)


@pytest.fixture
def scheduler(session_factory, orchestrator, clock, settings) -> PlanScheduler:
    return PlanScheduler(session_factory, orchestrator, clock, settings=settings, instance_id="test-instance")


@pytest.fixture
def seed_schedule(session_factory):
    """Write a weekly schedule straight into the store, without touching the cache."""

    async def _seed(user_id: int, days: dict[str, tuple[int, str]], **kwargs):
        async with session_factory() as session:
            return await AssignmentStore().replace_assignments(
                session, user_id, weekly_schedule(days, **kwargs)
            )

    return _seed


@pytest.fixture
def plan_rows(session_factory):
    """All cached plans of a user, ordered by date."""

    async def _rows(user_id: int) -> list[CachedPlan]:
        async with session_factory() as session:
            result = await session.execute(
                select(CachedPlan).where(CachedPlan.user_id == user_id).order_by(CachedPlan.plan_date)
            )
            return list(result.scalars().all())

    return _rows


@pytest.fixture
async def client(orchestrator, scheduler) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
