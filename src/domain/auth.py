"""
Authentication domain service - phone + one-time code orchestration.

This module contains the core business logic for passwordless login and
registration. A client first requests a code for a purpose, then submits
the phone and code to register or log in.

Code Lifecycle (forward-only)
=============================

    Created -> Consumed    (successful verification, terminal)
    Created -> Expired     (TTL exceeded, detected at verification time)
    Created -> Superseded  (a newer code was issued for the same purpose)

At most one active code exists per (phone, purpose). Consumption is a
single atomic store operation, so a code can succeed at most once even
under concurrent submissions.

Login Policy
============

With auto_provision disabled (the default) a login for an unknown phone
fails with UserNotFound after the code has been consumed. With it enabled
the account is created on first successful login.

The coordinator holds no state between calls; everything lives behind the
CodeStore, RateLimiter and UserDirectory ports. Each operation accepts an
optional timeout in seconds. When it elapses TimeoutError propagates and
any mutation already made (code consumed, user created) stands.

request_code records the cooldown before storing and sending the code. If
the store or the notifier then fails, the error propagates and the phone
stays in cooldown for that purpose without a delivered code.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta

from .codes import CodeGenerator, Verifier
from .exceptions import (
    InvalidCode,
    InvalidCodeFormat,
    InvalidPhone,
    InvalidPurpose,
    RateLimited,
    UserConflict,
    UserNotFound,
)
from .ports import Clock, CodeStore, Notifier, Purpose, RateLimiter, User, UserDirectory
from .sessions import SessionIssuer

logger = logging.getLogger(__name__)

# Mainland China mobile numbers: 11 ASCII digits, 1 followed by 3-9.
_PHONE_PATTERN = re.compile(r"^1[3-9][0-9]{9}$")


@dataclass(frozen=True)
class CodeIssued:
    """Result of a successful code request."""

    expires_in_seconds: int


@dataclass(frozen=True)
class AuthResult:
    """Session token and account returned by register and login."""

    token: str
    user: User


@dataclass
class AuthCoordinator:
    """
    Domain service for phone authentication.

    Orchestrates the request-code, register and login flows across the
    injected ports. Verification always goes through the Verifier.
    """

    code_store: CodeStore
    rate_limiter: RateLimiter
    user_directory: UserDirectory
    notifier: Notifier
    sessions: SessionIssuer
    clock: Clock
    generator: CodeGenerator = field(default_factory=CodeGenerator)
    code_ttl: timedelta = field(default=timedelta(seconds=300))
    auto_provision: bool = False

    def __post_init__(self) -> None:
        self.verifier = Verifier(self.code_store, self.clock)

    async def request_code(
        self, phone: str, purpose: Purpose | str, timeout: float | None = None
    ) -> CodeIssued:
        """
        Issue a verification code and deliver it out-of-band.

        Args:
            phone: Phone number (will be normalized)
            purpose: "login" or "register"
            timeout: Optional deadline in seconds

        Returns:
            CodeIssued with the code validity window

        Raises:
            InvalidPhone: Phone fails format validation
            InvalidPurpose: Purpose is unknown
            RateLimited: A code was issued within the cooldown window
        """
        normalized_phone = self._normalize_phone(phone)
        code_purpose = self._parse_purpose(purpose)

        async with asyncio.timeout(timeout):
            now = self.clock.now()
            decision = await self.rate_limiter.check_and_record(
                normalized_phone, code_purpose, now
            )
            if not decision.allowed:
                logger.info(
                    "Code request rate limited for %s (%s), retry after %ss",
                    normalized_phone,
                    code_purpose.value,
                    decision.retry_after,
                )
                raise RateLimited(decision.retry_after)

            code = self.generator.generate()
            await self.code_store.put(
                normalized_phone, code_purpose, code, now + self.code_ttl, now
            )
            await self.notifier.send_verification_code(normalized_phone, code)

        return CodeIssued(expires_in_seconds=int(self.code_ttl.total_seconds()))

    async def register(self, phone: str, code: str, timeout: float | None = None) -> AuthResult:
        """
        Create an account for a phone number after verifying a register code.

        Raises:
            InvalidPhone / InvalidCodeFormat: Input fails format validation
            InvalidCode: Code mismatch, expired, consumed or never issued
            UserConflict: Phone already registered
        """
        normalized_phone = self._normalize_phone(phone)
        self._check_code_format(code)

        async with asyncio.timeout(timeout):
            await self._verify(normalized_phone, Purpose.REGISTER, code)

            if await self.user_directory.find_by_phone(normalized_phone) is not None:
                logger.info("Registration rejected, %s already registered", normalized_phone)
                raise UserConflict(normalized_phone)

            user = await self.user_directory.create(normalized_phone, self.clock.now())
            logger.info("Registered user %s for %s", user.id, normalized_phone)
            token = await self.sessions.issue(user)

        return AuthResult(token=token, user=user)

    async def login(self, phone: str, code: str, timeout: float | None = None) -> AuthResult:
        """
        Log in with a phone number and a login code.

        Raises:
            InvalidPhone / InvalidCodeFormat: Input fails format validation
            InvalidCode: Code mismatch, expired, consumed or never issued
            UserNotFound: Phone not registered and auto_provision is off
        """
        normalized_phone = self._normalize_phone(phone)
        self._check_code_format(code)

        async with asyncio.timeout(timeout):
            await self._verify(normalized_phone, Purpose.LOGIN, code)

            if self.auto_provision:
                user = await self.user_directory.find_or_create(
                    normalized_phone, self.clock.now()
                )
            else:
                user = await self.user_directory.find_by_phone(normalized_phone)
                if user is None:
                    logger.info("Login rejected, %s is not registered", normalized_phone)
                    raise UserNotFound(normalized_phone)

            token = await self.sessions.issue(user)

        logger.info("User %s logged in", user.id)
        return AuthResult(token=token, user=user)

    async def current_user(self, token: str, timeout: float | None = None) -> User:
        """
        Resolve the user a session token belongs to.

        Raises:
            InvalidToken: Token fails verification or has expired
            UserNotFound: The account no longer exists
        """
        async with asyncio.timeout(timeout):
            claims = await self.sessions.authenticate(token)
            user = await self.user_directory.get(claims["sub"])
        if user is None:
            raise UserNotFound(claims["sub"])
        return user

    async def _verify(self, phone: str, purpose: Purpose, code: str) -> None:
        if not await self.verifier.verify(phone, purpose, code):
            raise InvalidCode(phone)

    def _normalize_phone(self, phone: str) -> str:
        """
        Normalize and validate a phone number.

        Applies: strip whitespace and hyphens, then match the mobile pattern.
        """
        if not isinstance(phone, str):
            raise InvalidPhone(repr(phone))
        normalized = re.sub(r"[\s-]", "", phone)
        if not _PHONE_PATTERN.match(normalized):
            raise InvalidPhone(phone)
        return normalized

    def _parse_purpose(self, purpose: Purpose | str) -> Purpose:
        try:
            return Purpose(purpose)
        except ValueError:
            raise InvalidPurpose(str(purpose)) from None

    def _check_code_format(self, code: str) -> None:
        length = self.generator.length
        if not isinstance(code, str) or len(code) != length:
            raise InvalidCodeFormat(f"expected {length} digits")
        if not (code.isascii() and code.isdigit()):
            raise InvalidCodeFormat(f"expected {length} digits")
