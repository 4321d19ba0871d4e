"""Dialect-aware INSERT ... ON CONFLICT helpers."""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def insert_for(db: AsyncSession, model):
    """
    Return an insert construct supporting `on_conflict_do_update` for the
    session's database.

    PostgreSQL in production, SQLite in tests. Both render
    INSERT ... ON CONFLICT (...) DO UPDATE ... WHERE ...
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert is not supported for dialect {dialect!r}")
