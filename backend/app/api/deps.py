"""
FastAPI dependencies.

Services are built once per process and shared between requests; they hold
no per-user state. Tests swap them through `app.dependency_overrides`.

Authentication is handled upstream: routes receive the user id in the path
and never look at credentials.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Path

from app.config import get_settings
from app.db.session import AsyncSessionLocal
from app.services.cache_orchestrator import CacheOrchestrator
from app.services.clock import SystemClock
from app.services.generator import AnthropicPlanGenerator
from app.services.scheduler import PlanScheduler

settings = get_settings()


@lru_cache
def get_clock() -> SystemClock:
    return SystemClock(settings.scheduler_timezone)


@lru_cache
def get_orchestrator() -> CacheOrchestrator:
    """Process-wide orchestrator bound to the application database."""
    return CacheOrchestrator(AsyncSessionLocal, AnthropicPlanGenerator(), get_clock())


@lru_cache
def get_scheduler() -> PlanScheduler:
    return PlanScheduler(AsyncSessionLocal, get_orchestrator(), get_clock())


# Type aliases for dependency injection
Orchestrator = Annotated[CacheOrchestrator, Depends(get_orchestrator)]
Scheduler = Annotated[PlanScheduler, Depends(get_scheduler)]
UserId = Annotated[int, Path(gt=0, description="Platform user id")]
