"""Plan cache services: stores, generation, orchestration and scheduling."""

from app.services.assignment_store import AssignmentStore
from app.services.cache_orchestrator import CacheOrchestrator
from app.services.exceptions import GenerationFailure, ScheduleValidationError
from app.services.plan_cache import PlanCache
from app.services.scheduler import PlanScheduler

__all__ = [
    "AssignmentStore",
    "CacheOrchestrator",
    "GenerationFailure",
    "PlanCache",
    "PlanScheduler",
    "ScheduleValidationError",
]
