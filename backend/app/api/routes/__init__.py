"""API routes package."""

from app.api.routes import assignments, scheduler, workouts

__all__ = [
    "assignments",
    "scheduler",
    "workouts",
]
