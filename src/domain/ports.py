"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, together with the value types that cross them.
Adapters implement these protocols.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Protocol


class Purpose(str, Enum):
    """Intent of a verification code. Scopes uniqueness and rate limiting."""

    LOGIN = "login"
    REGISTER = "register"


class ConsumeResult(Enum):
    """
    Result of an atomic consume attempt.

    Lifecycle of a stored code (forward-only):
    - Created -> Consumed   (CONSUMED, via try_consume)
    - Created -> Expired    (EXPIRED, detected at consume time)
    - Created -> Superseded (record replaced by put, later NOT_FOUND)

    Only the CodeStore sees the distinction; the Verifier collapses every
    non-CONSUMED outcome into a single invalid result.
    """

    CONSUMED = "consumed"
    MISMATCH = "mismatch"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class VerificationCode:
    """An issued one-time code for a phone and purpose."""

    phone: str
    purpose: Purpose
    code: str
    expires_at: datetime
    created_at: datetime
    consumed: bool = False
    id: int | None = None


@dataclass(frozen=True)
class User:
    """A registered account. Phone is unique and immutable."""

    id: str
    phone: str
    created_at: datetime


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limiter check. retry_after is 0 when allowed."""

    allowed: bool
    retry_after: int = 0


class Clock(Protocol):
    """Port interface for the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware UTC time."""
        ...


class CodeStore(Protocol):
    """Port interface for verification code persistence."""

    async def put(
        self, phone: str, purpose: Purpose, code: str, expires_at: datetime, now: datetime
    ) -> int:
        """
        Store a new code, superseding any existing record for (phone, purpose).

        Returns:
            Opaque record id
        """
        ...

    async def find_active(
        self, phone: str, purpose: Purpose, now: datetime
    ) -> VerificationCode | None:
        """Return the unconsumed, unexpired record for (phone, purpose), if any."""
        ...

    async def try_consume(
        self, phone: str, purpose: Purpose, code: str, now: datetime
    ) -> ConsumeResult:
        """
        Atomically verify and consume a code.

        The match check (code equal, not consumed, now < expires_at) and the
        flip of consumed to true happen in one step, so concurrent callers
        with the same code observe exactly one CONSUMED.
        """
        ...

    async def purge_expired(self, now: datetime) -> int:
        """Delete expired and consumed records. Returns number removed."""
        ...


class RateLimiter(Protocol):
    """Port interface for per-phone code request throttling."""

    async def check_and_record(
        self, phone: str, purpose: Purpose, now: datetime
    ) -> RateLimitDecision:
        """
        Admit the request if the cooldown has elapsed and record it as issued.

        Check and record are one atomic step; two simultaneous requests for
        the same (phone, purpose) cannot both be admitted.
        """
        ...

    async def purge_expired(self, now: datetime) -> int:
        """Forget requests whose cooldown has elapsed. Returns number removed."""
        ...


class UserDirectory(Protocol):
    """Port interface for user account persistence."""

    async def find_by_phone(self, phone: str) -> User | None:
        """Look up a user by phone number."""
        ...

    async def get(self, user_id: str) -> User | None:
        """Look up a user by id."""
        ...

    async def create(self, phone: str, now: datetime) -> User:
        """
        Create a user for the phone number.

        Raises:
            UserConflict: If the phone is already registered
        """
        ...

    async def find_or_create(self, phone: str, now: datetime) -> User:
        """Return the existing user for the phone, creating one if absent."""
        ...


class Notifier(Protocol):
    """Port interface for out-of-band code delivery."""

    async def send_verification_code(self, phone: str, code: str) -> None:
        """
        Deliver a verification code to a phone.

        Args:
            phone: Normalized phone number
            code: Numeric verification code
        """
        ...


class TokenSigner(Protocol):
    """Port interface for session token signing."""

    def sign(self, claims: dict[str, Any], ttl: timedelta) -> str:
        """Sign claims into a token valid for ttl after claims['iat']."""
        ...

    def decode(self, token: str) -> dict[str, Any]:
        """
        Verify a token signature and return its claims.

        Expiry is not checked here; the caller compares 'exp' with its clock.

        Raises:
            InvalidToken: If the token is malformed or the signature is bad
        """
        ...
