"""Initial plan cache schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

This migration creates the plan cache schema:
- split_assignments: weekday → split mapping, one active row per (user_id, weekday)
- cached_plans: materialized plans, unique on (user_id, plan_date)
- scheduler_leases: expiring job leases shared by all service instances
- scheduler_runs: scheduler job history
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # SPLIT ASSIGNMENTS
    # ==========================================================================
    op.create_table(
        "split_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("weekday", sa.String(9), nullable=False),
        sa.Column("split_id", sa.Integer(), nullable=False),
        sa.Column("split_type", sa.String(50), nullable=False),
        sa.Column("split_name", sa.String(255), nullable=True),
        sa.Column("weekly_frequency", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.CheckConstraint("weekly_frequency BETWEEN 1 AND 7", name="ck_split_assignments_valid_weekly_frequency"),
    )

    # At most one active assignment per user and weekday
    op.create_index(
        "idx_split_assignments_user_weekday_active",
        "split_assignments",
        ["user_id", "weekday"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )
    op.create_index(
        "idx_split_assignments_active_user",
        "split_assignments",
        ["is_active", "user_id"],
    )

    # ==========================================================================
    # CACHED PLANS
    # ==========================================================================
    op.create_table(
        "cached_plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("plan_date", sa.Date(), nullable=False),
        sa.Column("weekday", sa.String(9), nullable=False),
        sa.Column("split_id", sa.Integer(), nullable=False),
        sa.Column("split_type", sa.String(50), nullable=False),
        sa.Column("content", postgresql.JSONB(), nullable=False),
        sa.Column("content_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("consumed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("consumed_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )

    # Unique constraint: one plan per user per date (upsert target)
    op.create_unique_constraint(
        "unique_user_plan_date",
        "cached_plans",
        ["user_id", "plan_date"],
    )
    op.create_index("idx_cached_plans_plan_date", "cached_plans", ["plan_date"])
    op.create_index("idx_cached_plans_user_consumed", "cached_plans", ["user_id", "consumed"])

    # ==========================================================================
    # SCHEDULER
    # ==========================================================================
    op.create_table(
        "scheduler_leases",
        sa.Column("name", sa.String(100), primary_key=True),
        sa.Column("holder", sa.String(100), nullable=False),
        sa.Column("acquired_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("expires_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_table(
        "scheduler_runs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("job_name", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("started_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("finished_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("users_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("plans_generated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failures", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
    )
    op.create_index("idx_scheduler_runs_job_started", "scheduler_runs", ["job_name", "started_at"])


def downgrade() -> None:
    op.drop_index("idx_scheduler_runs_job_started", table_name="scheduler_runs")
    op.drop_table("scheduler_runs")
    op.drop_table("scheduler_leases")
    op.drop_index("idx_cached_plans_user_consumed", table_name="cached_plans")
    op.drop_index("idx_cached_plans_plan_date", table_name="cached_plans")
    op.drop_constraint("unique_user_plan_date", "cached_plans", type_="unique")
    op.drop_table("cached_plans")
    op.drop_index("idx_split_assignments_active_user", table_name="split_assignments")
    op.drop_index("idx_split_assignments_user_weekday_active", table_name="split_assignments")
    op.drop_table("split_assignments")
