"""
SQLAlchemy 2.0 Models for Kinetic.

Uses modern declarative syntax with Mapped[] type annotations.
Column types are portable (JSONB on PostgreSQL, JSON elsewhere) so the
same models back the production database and the SQLite test database.
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# ENUMS
# =============================================================================


class DayOfWeek(str, PyEnum):
    """Day of the week an assignment is scheduled on."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        """Weekday of a calendar date (date.weekday() is 0 for Monday)."""
        return WEEKDAYS[value.weekday()]


WEEKDAYS: tuple[DayOfWeek, ...] = tuple(DayOfWeek)


class RunStatus(str, PyEnum):
    """Outcome of a scheduler job run."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


# =============================================================================
# MODELS
# =============================================================================


class SplitAssignment(Base):
    """
    One weekday of a user's weekly training schedule.

    The weekly set is always replaced as a unit. At most one active row
    exists per (user_id, weekday).
    """

    __tablename__ = "split_assignments"
    __table_args__ = (
        Index(
            "idx_split_assignments_user_weekday_active",
            "user_id", "weekday",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("idx_split_assignments_active_user", "is_active", "user_id"),
        CheckConstraint(
            "weekly_frequency BETWEEN 1 AND 7",
            name="valid_weekly_frequency",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    weekday: Mapped[str] = mapped_column(String(9), nullable=False)
    split_id: Mapped[int] = mapped_column(Integer, nullable=False)
    split_type: Mapped[str] = mapped_column(String(50), nullable=False)
    split_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    weekly_frequency: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class CachedPlan(Base):
    """
    Materialized workout plan for one user on one calendar date.

    (user_id, plan_date) is unique. Rows are written through an upsert so a
    second write for the same key replaces the unconsumed content instead of
    duplicating it. Once consumed a row is never rewritten.
    """

    __tablename__ = "cached_plans"
    __table_args__ = (
        UniqueConstraint("user_id", "plan_date", name="unique_user_plan_date"),
        Index("idx_cached_plans_plan_date", "plan_date"),
        Index("idx_cached_plans_user_consumed", "user_id", "consumed"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    plan_date: Mapped[date] = mapped_column(nullable=False)
    weekday: Mapped[str] = mapped_column(String(9), nullable=False)
    split_id: Mapped[int] = mapped_column(Integer, nullable=False)
    split_type: Mapped[str] = mapped_column(String(50), nullable=False)
    content: Mapped[dict] = mapped_column(JSONType, nullable=False)
    content_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    consumed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    consumed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class SchedulerLease(Base):
    """
    Expiring lease guarding a scheduler job across service instances.

    A lease whose expires_at has passed may be taken over by any instance.
    """

    __tablename__ = "scheduler_leases"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    holder: Mapped[str] = mapped_column(String(100), nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SchedulerRun(Base):
    """Execution history of scheduler jobs (nightly batch, cleanup, report)."""

    __tablename__ = "scheduler_runs"
    __table_args__ = (
        Index("idx_scheduler_runs_job_started", "job_name", "started_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    users_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    plans_generated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failures: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
