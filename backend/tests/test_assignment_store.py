"""AssignmentStore: atomic weekly replacement and lookups."""

from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from app.db.models import CachedPlan, DayOfWeek, SplitAssignment
from app.services.assignment_store import AssignmentStore
from app.services.exceptions import ScheduleValidationError
from app.services.plan_cache import PlanCache
from conftest import MONDAY, make_content, weekly_schedule

store = AssignmentStore()


async def test_replace_assignments_stores_the_week(db):
    await store.replace_assignments(
        db, 7, weekly_schedule({"wednesday": (2, "pull"), "monday": (1, "push")})
    )

    assignments = await store.get_assignments(db, 7)
    assert [a.weekday for a in assignments] == ["monday", "wednesday"]
    assert all(a.is_active and a.weekly_frequency == 2 for a in assignments)


async def test_replace_assignments_replaces_the_whole_week(db):
    await store.replace_assignments(db, 7, weekly_schedule({"monday": (1, "push"), "friday": (2, "legs")}))
    await store.replace_assignments(db, 7, weekly_schedule({"tuesday": (3, "upper"), "thursday": (4, "lower")}))

    schedule = await store.get_weekly_schedule(db, 7)
    assert set(schedule.days) == {DayOfWeek.TUESDAY, DayOfWeek.THURSDAY}
    total = await db.scalar(select(func.count()).select_from(SplitAssignment))
    assert total == 2


async def test_invalid_schedule_leaves_existing_week_untouched(db):
    await store.replace_assignments(db, 7, weekly_schedule({"monday": (1, "push"), "friday": (2, "legs")}))

    with pytest.raises(ScheduleValidationError) as exc_info:
        await store.replace_assignments(
            db, 7, weekly_schedule({"sunday": (9, "full")}, available=["monday", "friday"])
        )

    assert len(exc_info.value.errors) == 2
    schedule = await store.get_weekly_schedule(db, 7)
    assert set(schedule.days) == {DayOfWeek.MONDAY, DayOfWeek.FRIDAY}


async def test_failed_insert_rolls_back_the_delete(db):
    await store.replace_assignments(db, 7, weekly_schedule({"monday": (1, "push"), "friday": (2, "legs")}))

    # weekly_frequency outside 1..7 violates the table's check constraint
    def accept_anything(days, available, frequency):
        return []

    lenient = AssignmentStore(validator=accept_anything)
    bad = weekly_schedule({"tuesday": (3, "upper"), "thursday": (4, "lower")})
    bad = bad.model_copy(update={"weekly_frequency": 9})

    with pytest.raises(Exception):
        await lenient.replace_assignments(db, 7, bad)

    schedule = await store.get_weekly_schedule(db, 7)
    assert set(schedule.days) == {DayOfWeek.MONDAY, DayOfWeek.FRIDAY}


async def test_get_for_weekday(db):
    await store.replace_assignments(db, 7, weekly_schedule({"monday": (1, "push"), "wednesday": (2, "pull")}))

    wednesday = await store.get_for_weekday(db, 7, DayOfWeek.WEDNESDAY)
    assert wednesday is not None and wednesday.split_type == "pull"
    assert await store.get_for_weekday(db, 7, DayOfWeek.TUESDAY) is None
    assert await store.get_for_weekday(db, 8, DayOfWeek.MONDAY) is None


async def test_list_active_user_ids(db):
    await store.replace_assignments(db, 9, weekly_schedule({"monday": (1, "push"), "friday": (2, "legs")}))
    await store.replace_assignments(db, 3, weekly_schedule({"tuesday": (1, "push"), "friday": (2, "legs")}))

    assert await store.list_active_user_ids(db) == [3, 9]


async def test_next_training_day(db):
    await store.replace_assignments(db, 7, weekly_schedule({"monday": (1, "push"), "wednesday": (2, "pull")}))

    assert await store.next_training_day(db, 7, MONDAY) == date(2025, 3, 12)
    assert await store.next_training_day(db, 7, date(2025, 3, 13)) == date(2025, 3, 17)
    assert await store.next_training_day(db, 8, MONDAY) is None


async def test_replace_invalidates_future_unconsumed_plans(db, clock):
    cache = PlanCache(store, clock)
    push = SplitAssignment(split_id=1, split_type="push")
    await store.replace_assignments(db, 7, weekly_schedule({"monday": (1, "push"), "wednesday": (2, "pull")}))
    for offset in (-7, 0, 2):
        await cache.put(db, user_id=7, plan_date=MONDAY + timedelta(days=offset), assignment=push,
                        content=make_content("push"))
    await cache.mark_consumed(db, 7, MONDAY)

    await store.replace_assignments(
        db, 7, weekly_schedule({"tuesday": (3, "upper"), "thursday": (4, "lower")}), invalidate_from=MONDAY
    )

    dates = await db.scalars(select(CachedPlan.plan_date).where(CachedPlan.user_id == 7).order_by(CachedPlan.plan_date))
    assert list(dates) == [MONDAY - timedelta(days=7), MONDAY]


async def test_failed_replace_keeps_cached_plans(db, clock):
    cache = PlanCache(store, clock)
    push = SplitAssignment(split_id=1, split_type="push")
    await store.replace_assignments(db, 7, weekly_schedule({"monday": (1, "push"), "wednesday": (2, "pull")}))
    await cache.put(db, user_id=7, plan_date=MONDAY, assignment=push, content=make_content("push"))

    lenient = AssignmentStore(validator=lambda days, available, frequency: [])
    bad = weekly_schedule({"tuesday": (3, "upper"), "thursday": (4, "lower")}).model_copy(
        update={"weekly_frequency": 9}
    )
    with pytest.raises(Exception):
        await lenient.replace_assignments(db, 7, bad, invalidate_from=MONDAY)

    assert await cache.get(db, 7, MONDAY) is not None
    schedule = await store.get_weekly_schedule(db, 7)
    assert set(schedule.days) == {DayOfWeek.MONDAY, DayOfWeek.WEDNESDAY}
