"""
PostgreSQL repository adapters - Implement the storage ports.

This module provides the PostgreSQL implementations of the domain's
CodeStore, RateLimiter and UserDirectory ports using psycopg3's async
connection pool with raw SQL.

Concurrency Design - Single-Statement Check-and-Set:
---------------------------------------------------
Every state transition that must not race is one SQL statement, so the
row lock taken by PostgreSQL covers both the check and the write:

1. **put**: INSERT ... ON CONFLICT (phone, purpose) DO UPDATE replaces the
   previous code for the pair, superseding it. The unique constraint keeps
   at most one record per pair.

2. **try_consume**: UPDATE ... SET consumed = TRUE WHERE code matches AND
   NOT consumed AND expires_at > now RETURNING id. A concurrent duplicate
   blocks on the row lock, re-evaluates the WHERE clause against the
   committed row, and matches nothing. The follow-up SELECT only classifies
   the failure and never writes.

3. **check_and_record**: INSERT ... ON CONFLICT DO UPDATE ... WHERE
   last_issued_at <= cutoff. Exactly one of two simultaneous requests
   updates the row.

Timestamps come from the injected domain clock rather than NOW(), so
expiry is deterministic under test.
"""

import logging
import math
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from pathlib import Path

import psycopg
from psycopg import AsyncConnection
from psycopg.errors import UniqueViolation
from psycopg_pool import AsyncConnectionPool

from src.domain.exceptions import InternalError, UserConflict
from src.domain.ports import ConsumeResult, Purpose, RateLimitDecision, User, VerificationCode

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _connection(pool: AsyncConnectionPool) -> AsyncIterator[AsyncConnection]:
    """Borrow a pooled connection, surfacing driver failures as InternalError."""
    try:
        async with pool.connection() as conn:
            yield conn
    except psycopg.Error as e:
        logger.error("Database operation failed: %s", e)
        raise InternalError("storage unavailable") from e


class PostgresCodeStore:
    """
    Implements CodeStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 AsyncConnectionPool for database connections
        """
        self._pool = pool

    async def put(
        self, phone: str, purpose: Purpose, code: str, expires_at: datetime, now: datetime
    ) -> int:
        """
        Store a new code, superseding the previous one for (phone, purpose).

        EXCLUDED.id carries the freshly drawn sequence value, so a superseding
        code gets a new record id.
        """
        sql = """
            INSERT INTO verification_codes (phone, purpose, code, expires_at, consumed, created_at)
            VALUES (%s, %s, %s, %s, FALSE, %s)
            ON CONFLICT (phone, purpose) DO UPDATE
            SET id = EXCLUDED.id,
                code = EXCLUDED.code,
                expires_at = EXCLUDED.expires_at,
                consumed = FALSE,
                created_at = EXCLUDED.created_at
            RETURNING id
        """

        async with _connection(self._pool) as conn, conn.cursor() as cursor:
            await cursor.execute(sql, (phone, purpose.value, code, expires_at, now))
            row = await cursor.fetchone()
            await conn.commit()
            return row[0]

    async def find_active(
        self, phone: str, purpose: Purpose, now: datetime
    ) -> VerificationCode | None:
        sql = """
            SELECT id, code, expires_at, consumed, created_at
            FROM verification_codes
            WHERE phone = %s AND purpose = %s AND NOT consumed AND expires_at > %s
        """

        async with _connection(self._pool) as conn, conn.cursor() as cursor:
            await cursor.execute(sql, (phone, purpose.value, now))
            row = await cursor.fetchone()

        if row is None:
            return None
        return VerificationCode(
            id=row[0],
            phone=phone,
            purpose=purpose,
            code=row[1],
            expires_at=row[2],
            consumed=row[3],
            created_at=row[4],
        )

    async def try_consume(
        self, phone: str, purpose: Purpose, code: str, now: datetime
    ) -> ConsumeResult:
        """
        Atomically verify and consume a code.

        Returns:
            CONSUMED if this call flipped the record, otherwise the reason
            the record did not match (MISMATCH, EXPIRED, NOT_FOUND)
        """
        consume_sql = """
            UPDATE verification_codes
            SET consumed = TRUE
            WHERE phone = %s
              AND purpose = %s
              AND code = %s
              AND NOT consumed
              AND expires_at > %s
            RETURNING id
        """

        # Read-only classification of a failed consume
        classify_sql = """
            SELECT code, consumed, expires_at
            FROM verification_codes
            WHERE phone = %s AND purpose = %s
        """

        async with _connection(self._pool) as conn, conn.cursor() as cursor:
            await cursor.execute(consume_sql, (phone, purpose.value, code, now))
            consumed = await cursor.fetchone()
            await conn.commit()
            if consumed is not None:
                return ConsumeResult.CONSUMED

            await cursor.execute(classify_sql, (phone, purpose.value))
            row = await cursor.fetchone()
            await conn.commit()

        if row is None or row[1]:
            return ConsumeResult.NOT_FOUND
        if row[2] <= now:
            return ConsumeResult.EXPIRED
        return ConsumeResult.MISMATCH

    async def purge_expired(self, now: datetime) -> int:
        sql = "DELETE FROM verification_codes WHERE consumed OR expires_at <= %s"

        async with _connection(self._pool) as conn, conn.cursor() as cursor:
            await cursor.execute(sql, (now,))
            await conn.commit()
            return cursor.rowcount


class PostgresRateLimiter:
    """Implements RateLimiter protocol via an atomic upsert on code_requests."""

    def __init__(self, pool: AsyncConnectionPool, cooldown: timedelta) -> None:
        self._pool = pool
        self._cooldown = cooldown

    async def check_and_record(
        self, phone: str, purpose: Purpose, now: datetime
    ) -> RateLimitDecision:
        """
        Admit and record a code request if the cooldown has elapsed.

        The WHERE clause on the conflict branch makes the admit decision
        and the timestamp write one statement.
        """
        record_sql = """
            INSERT INTO code_requests (phone, purpose, last_issued_at)
            VALUES (%s, %s, %s)
            ON CONFLICT (phone, purpose) DO UPDATE
            SET last_issued_at = EXCLUDED.last_issued_at
            WHERE code_requests.last_issued_at <= %s
        """

        last_sql = """
            SELECT last_issued_at FROM code_requests
            WHERE phone = %s AND purpose = %s
        """

        cutoff = now - self._cooldown
        async with _connection(self._pool) as conn, conn.cursor() as cursor:
            await cursor.execute(record_sql, (phone, purpose.value, now, cutoff))
            await conn.commit()
            # 1 if INSERT succeeded OR UPDATE WHERE matched (cooldown elapsed)
            if cursor.rowcount == 1:
                return RateLimitDecision(allowed=True)

            await cursor.execute(last_sql, (phone, purpose.value))
            row = await cursor.fetchone()
            await conn.commit()

        remaining = (row[0] + self._cooldown - now).total_seconds() if row else 1
        return RateLimitDecision(allowed=False, retry_after=max(1, math.ceil(remaining)))

    async def purge_expired(self, now: datetime) -> int:
        """Delete request records whose cooldown has elapsed."""
        sql = "DELETE FROM code_requests WHERE last_issued_at <= %s"

        async with _connection(self._pool) as conn, conn.cursor() as cursor:
            await cursor.execute(sql, (now - self._cooldown,))
            await conn.commit()
            return cursor.rowcount


class PostgresUserDirectory:
    """Implements UserDirectory protocol via psycopg3."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def find_by_phone(self, phone: str) -> User | None:
        return await self._fetch_one(
            "SELECT id, phone, created_at FROM users WHERE phone = %s", phone
        )

    async def get(self, user_id: str) -> User | None:
        return await self._fetch_one(
            "SELECT id, phone, created_at FROM users WHERE id = %s", user_id
        )

    async def create(self, phone: str, now: datetime) -> User:
        """
        Insert a user row. The UNIQUE constraint on phone settles races.

        Raises:
            UserConflict: If the phone is already registered
        """
        sql = """
            INSERT INTO users (id, phone, created_at)
            VALUES (%s, %s, %s)
            RETURNING id, phone, created_at
        """

        async with _connection(self._pool) as conn, conn.cursor() as cursor:
            try:
                await cursor.execute(sql, (str(uuid.uuid4()), phone, now))
            except UniqueViolation:
                await conn.rollback()
                raise UserConflict(phone) from None
            row = await cursor.fetchone()
            await conn.commit()
            return User(id=row[0], phone=row[1], created_at=row[2])

    async def find_or_create(self, phone: str, now: datetime) -> User:
        insert_sql = """
            INSERT INTO users (id, phone, created_at)
            VALUES (%s, %s, %s)
            ON CONFLICT (phone) DO NOTHING
        """

        async with _connection(self._pool) as conn, conn.cursor() as cursor:
            await cursor.execute(insert_sql, (str(uuid.uuid4()), phone, now))
            await conn.commit()

        user = await self.find_by_phone(phone)
        if user is None:
            raise InternalError("user vanished after upsert")
        return user

    async def _fetch_one(self, sql: str, param: str) -> User | None:
        async with _connection(self._pool) as conn, conn.cursor() as cursor:
            await cursor.execute(sql, (param,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return User(id=row[0], phone=row[1], created_at=row[2])


async def run_migrations(pool: AsyncConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 AsyncConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            async with pool.connection() as conn:
                await conn.execute(sql_content)
                await conn.commit()

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
