"""
Kinetic FastAPI Application Entry Point.

Run with: uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.deps import get_scheduler
from app.api.routes import assignments, scheduler, workouts
from app.config import get_settings
from app.services.triggers import build_job_scheduler, default_jobs

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    job_scheduler = None
    if settings.scheduler_enabled:
        job_scheduler = build_job_scheduler(default_jobs(get_scheduler(), settings), settings)
        job_scheduler.start()
        logger.info("Scheduler started: %s", [job.id for job in job_scheduler.get_jobs()])
    else:
        logger.info("Scheduler disabled; jobs run only through /scheduler/jobs")
    yield
    # Shutdown
    if job_scheduler is not None:
        job_scheduler.shutdown(wait=False)


app = FastAPI(
    title=settings.app_name,
    description="Workout plan pre-generation and cache API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(assignments.router)
app.include_router(workouts.router)
app.include_router(scheduler.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
