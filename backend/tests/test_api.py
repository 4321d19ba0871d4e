"""HTTP API over the orchestrator and scheduler."""

from datetime import date

SCHEDULE = {
    "weekly_frequency": 2,
    "available_weekdays": ["monday", "wednesday", "friday"],
    "days": {
        "monday": {"split_id": 1, "split_type": "push", "split_name": "Push A"},
        "wednesday": {"split_id": 2, "split_type": "pull"},
    },
}


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_put_schedule_saves_and_warms_cache(client):
    response = await client.put("/users/7/schedule/", json=SCHEDULE)

    assert response.status_code == 200
    body = response.json()
    assert set(body["schedule"]["days"]) == {"monday", "wednesday"}
    assert body["schedule"]["weekly_frequency"] == 2
    assert body["regenerated"]["succeeded"] == ["2025-03-10", "2025-03-12"]

    response = await client.get("/users/7/schedule/")
    assert response.json()["days"]["monday"]["split_name"] == "Push A"


async def test_put_invalid_schedule_returns_errors(client):
    bad = {**SCHEDULE, "days": {"tuesday": {"split_id": 1, "split_type": "push"}}}

    response = await client.put("/users/7/schedule/", json=bad)

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["message"] == "Invalid weekly schedule"
    assert len(detail["errors"]) == 2

    response = await client.get("/users/7/schedule/")
    assert response.json()["days"] == {}


async def test_user_id_must_be_positive(client):
    response = await client.get("/users/0/schedule/")
    assert response.status_code == 422


async def test_get_workout_generates_on_miss(client, generator):
    await client.put("/users/7/schedule/", json=SCHEDULE)

    response = await client.get("/users/7/workouts/2025-03-17")

    assert response.status_code == 200
    body = response.json()
    assert body["is_rest_day"] is False
    assert body["from_cache"] is False
    assert body["plan"]["split_type"] == "push"
    assert body["plan"]["content"]["schema_version"] == 1


async def test_get_workout_on_rest_day(client):
    await client.put("/users/7/schedule/", json=SCHEDULE)

    response = await client.get("/users/7/workouts/2025-03-11")

    assert response.status_code == 200
    body = response.json()
    assert body["is_rest_day"] is True
    assert body["plan"] is None
    assert body["next_training_date"] == "2025-03-12"
    assert body["next_training_day"] == "wednesday"


async def test_get_workout_generation_failure_is_502(client, generator):
    await client.put("/users/7/schedule/", json=SCHEDULE)
    generator.fail_on.add((7, date(2025, 3, 17)))

    response = await client.get("/users/7/workouts/2025-03-17")

    assert response.status_code == 502


async def test_start_workout(client):
    await client.put("/users/7/schedule/", json=SCHEDULE)

    response = await client.post("/users/7/workouts/2025-03-10/start")

    assert response.status_code == 200
    assert response.json()["plan"]["consumed"] is True


async def test_cache_status(client):
    await client.put("/users/7/schedule/", json=SCHEDULE)

    response = await client.get("/users/7/workouts/cache-status", params={"horizon_days": 14})

    assert response.status_code == 200
    body = response.json()
    assert body["total_cached"] == 2
    assert body["needs_generation"] == ["2025-03-17", "2025-03-19"]


async def test_cache_status_rejects_out_of_range_horizon(client):
    response = await client.get("/users/7/workouts/cache-status", params={"horizon_days": 90})
    assert response.status_code == 400


async def test_regenerate(client):
    await client.put("/users/7/schedule/", json=SCHEDULE)

    response = await client.post("/users/7/workouts/regenerate")

    assert response.status_code == 200
    assert response.json()["succeeded"] == ["2025-03-10", "2025-03-12", "2025-03-17", "2025-03-19"]


async def test_run_scheduler_job(client):
    await client.put("/users/7/schedule/", json=SCHEDULE)

    response = await client.post("/scheduler/jobs/nightly_batch/run")

    assert response.status_code == 200
    body = response.json()
    assert body["job_name"] == "nightly_batch"
    assert body["users_total"] == 1

    response = await client.post("/scheduler/jobs/daily_report/run")
    assert response.json()["job_name"] == "daily_report"
    assert response.json()["plans_cached_for_today"] == 1


async def test_unknown_job_is_rejected(client):
    response = await client.post("/scheduler/jobs/reindex/run")
    assert response.status_code == 422


async def test_scheduler_status_and_stats(client):
    await client.post("/scheduler/jobs/weekly_cleanup/run")

    status = await client.get("/scheduler/status")
    stats = await client.get("/scheduler/cache-stats")

    assert status.status_code == 200
    assert [r["job_name"] for r in status.json()["last_runs"]] == ["weekly_cleanup"]
    assert stats.json()["total_cached"] == 0


async def test_put_schedule_rejects_unknown_fields(client):
    response = await client.put("/users/7/schedule/", json={**SCHEDULE, "timezone": "UTC"})
    assert response.status_code == 422
