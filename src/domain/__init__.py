"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for phone + one-time code
authentication. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .auth import AuthCoordinator, AuthResult, CodeIssued
from .codes import CodeGenerator, Verifier
from .exceptions import (
    AuthError,
    InternalError,
    InvalidCode,
    InvalidCodeFormat,
    InvalidPhone,
    InvalidPurpose,
    InvalidRequest,
    InvalidToken,
    RateLimited,
    UserConflict,
    UserNotFound,
)
from .ports import (
    Clock,
    CodeStore,
    ConsumeResult,
    Notifier,
    Purpose,
    RateLimitDecision,
    RateLimiter,
    TokenSigner,
    User,
    UserDirectory,
    VerificationCode,
)
from .sessions import SessionIssuer

__all__ = [
    "AuthCoordinator",
    "AuthError",
    "AuthResult",
    "Clock",
    "CodeGenerator",
    "CodeIssued",
    "CodeStore",
    "ConsumeResult",
    "InternalError",
    "InvalidCode",
    "InvalidCodeFormat",
    "InvalidPhone",
    "InvalidPurpose",
    "InvalidRequest",
    "InvalidToken",
    "Notifier",
    "Purpose",
    "RateLimitDecision",
    "RateLimited",
    "RateLimiter",
    "SessionIssuer",
    "TokenSigner",
    "User",
    "UserConflict",
    "UserDirectory",
    "UserNotFound",
    "VerificationCode",
    "Verifier",
]
