"""Persisted, expiring leases used as a cross-instance re-entrancy guard."""

import logging
from datetime import timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import SchedulerLease
from app.db.upsert import insert_for
from app.services.clock import Clock, utc

logger = logging.getLogger(__name__)


class LeaseManager:
    """
    Named leases stored in `scheduler_leases`.

    Acquisition is a single upsert that only replaces an expired lease, so
    exactly one instance holds a live lease at a time regardless of how many
    processes race for it. A running holder keeps renewing its lease; an
    instance that dies mid-run stops blocking others once the lease expires.
    """

    def __init__(self, clock: Clock, ttl_seconds: int):
        self.clock = clock
        self.ttl = timedelta(seconds=ttl_seconds)

    async def acquire(self, db: AsyncSession, name: str, holder: str) -> bool:
        now = utc(self.clock.now())
        stmt = insert_for(db, SchedulerLease).values(
            name=name,
            holder=holder,
            acquired_at=now,
            expires_at=now + self.ttl,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["name"],
            set_={
                "holder": stmt.excluded.holder,
                "acquired_at": stmt.excluded.acquired_at,
                "expires_at": stmt.excluded.expires_at,
            },
            where=SchedulerLease.expires_at <= now,
        )
        await db.execute(stmt)
        await db.commit()

        current = await db.scalar(select(SchedulerLease.holder).where(SchedulerLease.name == name))
        acquired = current == holder
        if not acquired:
            logger.info("Lease %r is held by %s", name, current)
        return acquired

    async def renew(self, db: AsyncSession, name: str, holder: str) -> bool:
        """Push the expiry of a held lease forward. False if the lease is no longer ours."""
        result = await db.execute(
            update(SchedulerLease)
            .where(SchedulerLease.name == name, SchedulerLease.holder == holder)
            .values(expires_at=utc(self.clock.now()) + self.ttl)
        )
        await db.commit()
        return result.rowcount > 0

    async def release(self, db: AsyncSession, name: str, holder: str) -> bool:
        """Release a lease; only its holder can."""
        result = await db.execute(
            delete(SchedulerLease).where(
                SchedulerLease.name == name,
                SchedulerLease.holder == holder,
            )
        )
        await db.commit()
        return result.rowcount > 0

    async def list_leases(self, db: AsyncSession) -> list[SchedulerLease]:
        result = await db.execute(select(SchedulerLease).order_by(SchedulerLease.name))
        return list(result.scalars().all())
