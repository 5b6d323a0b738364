"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers and lifespan events.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import psycopg
from fastapi import FastAPI, Request
from psycopg_pool import AsyncConnectionPool

from src.adapters.clock import SystemClock
from src.adapters.repository.memory import (
    InMemoryCodeStore,
    InMemoryRateLimiter,
    InMemoryUserDirectory,
)
from src.adapters.repository.postgres import (
    PostgresCodeStore,
    PostgresRateLimiter,
    PostgresUserDirectory,
    run_migrations,
)
from src.api.auth import router as auth_router
from src.api.errors import register_exception_handlers
from src.config.settings import get_settings
from src.domain.exceptions import InternalError
from src.domain.ports import Clock, CodeStore, RateLimiter

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "auth",
        "description": "Phone verification code authentication - send codes, register and log in",
    },
]


async def purge_stale_records(
    code_store: CodeStore, rate_limiter: RateLimiter, now: datetime
) -> tuple[int, int]:
    """Run one housekeeping sweep over codes and rate-limit records."""
    codes = await code_store.purge_expired(now)
    requests = await rate_limiter.purge_expired(now)
    if codes or requests:
        logger.info(
            "Purged %d stale verification code(s) and %d rate-limit record(s)", codes, requests
        )
    return codes, requests


async def purge_loop(
    code_store: CodeStore, rate_limiter: RateLimiter, clock: Clock, interval: float
) -> None:
    """
    Periodically delete expired verification codes and lapsed cooldowns.

    Housekeeping only: try_consume already rejects expired codes and the
    rate limiter re-admits a phone once its cooldown has elapsed. Failures
    are logged and the loop keeps running until cancelled.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await purge_stale_records(code_store, rate_limiter, clock.now())
        except Exception:
            logger.exception("Housekeeping purge failed")


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the storage backend (PostgreSQL pool or in-memory stores)
    - Runs migrations on startup
    - Starts the housekeeping purge task
    - Closes connection pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    if settings.uses_default_jwt_secret:
        logger.warning(
            "JWT_SECRET is not set; session tokens are signed with the built-in default"
        )
    cooldown = timedelta(seconds=settings.rate_limit_seconds)

    logger.info("Starting application...")

    pool: AsyncConnectionPool | None = None
    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = AsyncConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            open=False,
        )
        await pool.open()

        logger.info("Running database migrations...")
        await run_migrations(pool)

        app.state.pool = pool
        app.state.code_store = PostgresCodeStore(pool)
        app.state.rate_limiter = PostgresRateLimiter(pool, cooldown)
        app.state.user_directory = PostgresUserDirectory(pool)
    else:
        logger.warning("Using in-memory storage; data is lost on restart")
        app.state.pool = None
        app.state.code_store = InMemoryCodeStore()
        app.state.rate_limiter = InMemoryRateLimiter(cooldown)
        app.state.user_directory = InMemoryUserDirectory()

    purge_task = None
    if settings.purge_interval_seconds > 0:
        purge_task = asyncio.create_task(
            purge_loop(
                app.state.code_store,
                app.state.rate_limiter,
                SystemClock(),
                settings.purge_interval_seconds,
            )
        )

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if purge_task is not None:
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
    if pool is not None:
        await pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="phonepass",
    description="Phone verification code authentication API - passwordless register and login",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/auth")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        try:
            async with pool.connection() as conn:
                await conn.execute("SELECT 1")
        except psycopg.Error as e:
            raise InternalError("database unavailable") from e

    return {"status": "healthy"}
