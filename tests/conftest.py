"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry and cooldown tests
- In-memory storage adapters
- An AuthCoordinator factory wired to those adapters
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.adapters.repository.memory import (
    InMemoryCodeStore,
    InMemoryRateLimiter,
    InMemoryUserDirectory,
)
from src.adapters.tokens.signer import JwtTokenSigner
from src.domain.auth import AuthCoordinator
from src.domain.codes import CodeGenerator
from src.domain.sessions import SessionIssuer

TEST_SECRET = "test-secret-key-with-enough-length-for-hs256"


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FixedCodeGenerator(CodeGenerator):
    """Generator returning a predetermined sequence of codes."""

    def __init__(self, *codes: str) -> None:
        super().__init__(length=len(codes[0]))
        object.__setattr__(self, "_codes", list(codes))

    def generate(self) -> str:
        codes = self._codes
        return codes.pop(0) if len(codes) > 1 else codes[0]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 8, 0, 0, tzinfo=UTC))


@pytest.fixture
def code_store() -> InMemoryCodeStore:
    return InMemoryCodeStore()


@pytest.fixture
def rate_limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter(timedelta(seconds=60))


@pytest.fixture
def user_directory() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def signer() -> JwtTokenSigner:
    return JwtTokenSigner(TEST_SECRET)


@pytest.fixture
def sessions(signer: JwtTokenSigner, clock: FakeClock) -> SessionIssuer:
    return SessionIssuer(signer=signer, clock=clock, ttl=timedelta(hours=24))


@pytest.fixture
def make_coordinator(
    code_store: InMemoryCodeStore,
    rate_limiter: InMemoryRateLimiter,
    user_directory: InMemoryUserDirectory,
    notifier: AsyncMock,
    sessions: SessionIssuer,
    clock: FakeClock,
) -> Callable[..., AuthCoordinator]:
    """
    Build a coordinator over the shared in-memory adapters.

    Pass codes to make the generator deterministic; the last code repeats.
    """

    def factory(*codes: str, auto_provision: bool = False) -> AuthCoordinator:
        generator = FixedCodeGenerator(*codes) if codes else CodeGenerator()
        return AuthCoordinator(
            code_store=code_store,
            rate_limiter=rate_limiter,
            user_directory=user_directory,
            notifier=notifier,
            sessions=sessions,
            clock=clock,
            generator=generator,
            code_ttl=timedelta(seconds=300),
            auto_provision=auto_provision,
        )

    return factory
