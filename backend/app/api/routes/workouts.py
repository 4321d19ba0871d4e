"""Cached workout plan routes."""

from datetime import date

from fastapi import APIRouter, HTTPException, status

from app.api.deps import Orchestrator, UserId
from app.config import sanitize_error
from app.schemas.plans import CacheStatus, GenerationManifest, WorkoutResult
from app.services.exceptions import GenerationFailure

router = APIRouter(prefix="/users/{user_id}/workouts", tags=["workouts"])


def _generation_error(error: GenerationFailure) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=sanitize_error(error, generic_message="Workout could not be generated, try again later."),
    )


@router.get("/cache-status", response_model=CacheStatus)
async def get_cache_status(
    user_id: UserId,
    orchestrator: Orchestrator,
    horizon_days: int | None = None,
) -> CacheStatus:
    """What is cached for the user and which upcoming dates still need a plan."""
    if horizon_days is not None and not 1 <= horizon_days <= 31:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="horizon_days must be between 1 and 31",
        )
    return await orchestrator.get_cache_status(user_id, horizon_days)


@router.post("/regenerate", response_model=GenerationManifest)
async def regenerate_cache(user_id: UserId, orchestrator: Orchestrator) -> GenerationManifest:
    """Discard unstarted future plans and rebuild them."""
    return await orchestrator.regenerate(user_id)


@router.get("/{plan_date}", response_model=WorkoutResult)
async def get_workout(
    user_id: UserId,
    plan_date: date,
    orchestrator: Orchestrator,
) -> WorkoutResult:
    """
    Get the plan for a date, generating it on the spot if it is not cached.

    A weekday without an assigned split returns a rest day result.
    """
    try:
        return await orchestrator.get_or_generate(user_id, plan_date)
    except GenerationFailure as e:
        raise _generation_error(e) from e


@router.post("/{plan_date}/start", response_model=WorkoutResult)
async def start_workout(
    user_id: UserId,
    plan_date: date,
    orchestrator: Orchestrator,
) -> WorkoutResult:
    """Begin the session for a date. The plan becomes immutable history."""
    try:
        return await orchestrator.start_workout(user_id, plan_date)
    except GenerationFailure as e:
        raise _generation_error(e) from e
