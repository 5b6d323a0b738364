"""
In-memory repository adapters - Implement the storage ports in process.

Used for local development (STORAGE_BACKEND=memory) and tests. Each
adapter guards its state with an asyncio.Lock so every check-and-set is
one critical section with no await inside it.
"""

import asyncio
import itertools
import math
import uuid
from dataclasses import replace
from datetime import datetime, timedelta

from src.domain.exceptions import UserConflict
from src.domain.ports import ConsumeResult, Purpose, RateLimitDecision, User, VerificationCode


class InMemoryCodeStore:
    """
    Implements CodeStore protocol with a dict keyed by (phone, purpose).

    Uses structural subtyping - no explicit inheritance from Protocol.
    Superseded codes are dropped from the dict on put.
    """

    def __init__(self) -> None:
        self._codes: dict[tuple[str, Purpose], VerificationCode] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def put(
        self, phone: str, purpose: Purpose, code: str, expires_at: datetime, now: datetime
    ) -> int:
        async with self._lock:
            record_id = next(self._ids)
            self._codes[(phone, purpose)] = VerificationCode(
                id=record_id,
                phone=phone,
                purpose=purpose,
                code=code,
                expires_at=expires_at,
                created_at=now,
            )
            return record_id

    async def find_active(
        self, phone: str, purpose: Purpose, now: datetime
    ) -> VerificationCode | None:
        async with self._lock:
            record = self._codes.get((phone, purpose))
        if record is None or record.consumed or now >= record.expires_at:
            return None
        return record

    async def try_consume(
        self, phone: str, purpose: Purpose, code: str, now: datetime
    ) -> ConsumeResult:
        async with self._lock:
            record = self._codes.get((phone, purpose))
            if record is None or record.consumed:
                return ConsumeResult.NOT_FOUND
            if now >= record.expires_at:
                return ConsumeResult.EXPIRED
            if record.code != code:
                return ConsumeResult.MISMATCH
            self._codes[(phone, purpose)] = replace(record, consumed=True)
            return ConsumeResult.CONSUMED

    async def purge_expired(self, now: datetime) -> int:
        async with self._lock:
            stale = [
                key
                for key, record in self._codes.items()
                if record.consumed or now >= record.expires_at
            ]
            for key in stale:
                del self._codes[key]
            return len(stale)


class InMemoryRateLimiter:
    """Implements RateLimiter protocol with last-issued timestamps per key."""

    def __init__(self, cooldown: timedelta) -> None:
        self._cooldown = cooldown
        self._last_issued: dict[tuple[str, Purpose], datetime] = {}
        self._lock = asyncio.Lock()

    async def check_and_record(
        self, phone: str, purpose: Purpose, now: datetime
    ) -> RateLimitDecision:
        async with self._lock:
            last = self._last_issued.get((phone, purpose))
            if last is not None and now - last < self._cooldown:
                remaining = (self._cooldown - (now - last)).total_seconds()
                return RateLimitDecision(allowed=False, retry_after=math.ceil(remaining))
            self._last_issued[(phone, purpose)] = now
            return RateLimitDecision(allowed=True)

    async def purge_expired(self, now: datetime) -> int:
        async with self._lock:
            stale = [
                key for key, last in self._last_issued.items() if now - last >= self._cooldown
            ]
            for key in stale:
                del self._last_issued[key]
            return len(stale)


class InMemoryUserDirectory:
    """Implements UserDirectory protocol with a phone-keyed dict."""

    def __init__(self) -> None:
        self._by_phone: dict[str, User] = {}
        self._lock = asyncio.Lock()

    async def find_by_phone(self, phone: str) -> User | None:
        return self._by_phone.get(phone)

    async def get(self, user_id: str) -> User | None:
        return next((u for u in self._by_phone.values() if u.id == user_id), None)

    async def create(self, phone: str, now: datetime) -> User:
        async with self._lock:
            if phone in self._by_phone:
                raise UserConflict(phone)
            user = User(id=str(uuid.uuid4()), phone=phone, created_at=now)
            self._by_phone[phone] = user
            return user

    async def find_or_create(self, phone: str, now: datetime) -> User:
        async with self._lock:
            user = self._by_phone.get(phone)
            if user is None:
                user = User(id=str(uuid.uuid4()), phone=phone, created_at=now)
                self._by_phone[phone] = user
            return user
