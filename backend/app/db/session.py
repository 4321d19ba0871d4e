"""Database engine and session factory."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings

settings = get_settings()


def build_engine(url: str, *, echo: bool = False, require_ssl: bool = False) -> AsyncEngine:
    """
    Async engine for the plan cache database.

    Connections are checked before use; the nightly batch may hold a few of
    them at once, so the pool leaves headroom above `batch_concurrency`.
    """
    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=max(5, settings.batch_concurrency + 1),
        max_overflow=10,
        connect_args={"ssl": "require"} if require_ssl else {},
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Sessions are short-lived, one per store operation.

    Loaded rows are handed back to callers after commit, so attributes must
    not expire with the session.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(
    settings.database_url,
    echo=settings.debug,
    require_ssl=settings.database_requires_ssl,
)
AsyncSessionLocal = build_session_factory(engine)
