"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Kinetic"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    # If database_url_override is set (e.g., for Neon with SSL), it takes precedence
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "kinetic"
    postgres_password: str = ""
    postgres_db: str = "kinetic"

    def _build_database_url(self, drivername: str, *, keep_query: bool) -> str:
        """Database URL for a driver, from the override if set, otherwise from the parts."""
        if self.database_url_override:
            url = make_url(self.database_url_override).set(drivername=drivername)
            if not keep_query:
                # asyncpg rejects libpq query params; SSL goes through connect_args
                url = url.set(query={})
        else:
            url = URL.create(
                drivername,
                username=self.postgres_user,
                password=self.postgres_password or None,
                host=self.postgres_host,
                port=self.postgres_port,
                database=self.postgres_db,
            )
        return url.render_as_string(hide_password=False)

    @computed_field
    @property
    def database_url(self) -> str:
        """Async (asyncpg) URL used by the application."""
        return self._build_database_url("postgresql+asyncpg", keep_query=False)

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Sync (psycopg2) URL used by Alembic."""
        return self._build_database_url("postgresql", keep_query=True)

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        """Whether the override asks for SSL (Neon and similar hosted Postgres)."""
        if not self.database_url_override:
            return False
        query = make_url(self.database_url_override).query
        return query.get("sslmode") == "require" or query.get("ssl") == "require"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Plan cache horizons (days ahead of today, today included)
    default_horizon_days: int = 7
    nightly_horizon_days: int = 3
    regenerate_horizon_days: int = 14
    next_window_days: int = 7

    # Retention
    plan_retention_days: int = 7
    history_retention_days: int = 30

    # Batch generation
    batch_concurrency: int = 4
    generator_timeout_seconds: float = 60.0
    store_timeout_seconds: float = 10.0

    # Scheduler
    scheduler_enabled: bool = False
    scheduler_timezone: str = "America/New_York"
    scheduler_lease_ttl_seconds: int = 60 * 60  # 1 hour
    scheduler_lease_renew_seconds: float = 5 * 60  # heartbeat while a batch holds the lease
    scheduler_misfire_grace_seconds: int = 60 * 60
    nightly_batch_hour: int = 2
    weekly_cleanup_hour: int = 3
    weekly_cleanup_weekday: int = 6  # Sunday (Monday == 0)
    daily_report_hour: int = 6

    # Anthropic API (plan content generation)
    anthropic_api_key: str | None = None

    # LLM Configuration
    llm_model: str = "claude-sonnet-4-20250514"
    llm_max_tokens: int = 4000
    llm_max_attempts: int = 3


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development":
        return str(error)
    return generic_message
