"""Weekly schedule (split assignment) routes."""

from fastapi import APIRouter, HTTPException, status

from app.api.deps import Orchestrator, UserId
from app.schemas.assignments import ScheduleUpdateResult, WeeklyScheduleRead, WeeklyScheduleReplace
from app.services.exceptions import ScheduleValidationError

router = APIRouter(prefix="/users/{user_id}/schedule", tags=["schedule"])


@router.get("/", response_model=WeeklyScheduleRead)
async def get_schedule(user_id: UserId, orchestrator: Orchestrator) -> WeeklyScheduleRead:
    """Get the user's active weekly schedule. Unassigned weekdays are rest days."""
    return await orchestrator.get_schedule(user_id)


@router.put("/", response_model=ScheduleUpdateResult, status_code=status.HTTP_200_OK)
async def replace_schedule(
    user_id: UserId,
    data: WeeklyScheduleReplace,
    orchestrator: Orchestrator,
) -> ScheduleUpdateResult:
    """
    Replace the whole weekly schedule.

    The week is saved as one unit, then every plan from today on that has
    not been started is discarded and regenerated. Returns 422 with the list
    of problems if the schedule is rejected; nothing is changed in that case.
    """
    try:
        return await orchestrator.replace_assignments(user_id, data)
    except ScheduleValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Invalid weekly schedule", "errors": e.errors},
        ) from e
