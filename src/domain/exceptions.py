"""
Domain exceptions - Semantic error types for phone authentication.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""


class AuthError(Exception):
    """Base class for authentication domain errors."""

    pass


class InvalidRequest(AuthError):
    """Input failed format validation before any state was touched."""

    pass


class InvalidPhone(InvalidRequest):
    """Phone number is missing or not a valid mobile number."""

    pass


class InvalidPurpose(InvalidRequest):
    """Purpose is not one of the known code purposes."""

    pass


class InvalidCodeFormat(InvalidRequest):
    """Submitted code is not a fixed-length numeric string."""

    pass


class RateLimited(AuthError):
    """A code was issued for this phone and purpose too recently."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"retry after {retry_after}s")
        self.retry_after = retry_after


class InvalidCode(AuthError):
    """Code mismatch, expired, consumed, or never issued."""

    pass


class UserConflict(AuthError):
    """A user with this phone number already exists."""

    pass


class UserNotFound(AuthError):
    """No user is registered for this phone number or id."""

    pass


class InvalidToken(AuthError):
    """Session token is malformed, tampered with, or expired."""

    pass


class InternalError(AuthError):
    """Storage or signer failure."""

    pass
