"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.adapters.clock import SystemClock
from src.adapters.sms.console import ConsoleSmsSender
from src.adapters.tokens.signer import JwtTokenSigner
from src.config.settings import Settings, get_settings
from src.domain.auth import AuthCoordinator
from src.domain.codes import CodeGenerator
from src.domain.sessions import SessionIssuer

# Module-level singletons - both adapters are stateless
_sms_sender = ConsoleSmsSender()
_clock = SystemClock()


def get_sms_sender() -> ConsoleSmsSender:
    """Get console SMS sender (singleton)."""
    return _sms_sender


def get_clock() -> SystemClock:
    """Get system clock (singleton)."""
    return _clock


def get_session_issuer(settings: Settings = Depends(get_settings)) -> SessionIssuer:
    """Create session issuer from JWT settings."""
    signer = JwtTokenSigner(settings.jwt_secret, settings.jwt_algorithm)
    return SessionIssuer(
        signer=signer,
        clock=get_clock(),
        ttl=timedelta(seconds=settings.session_ttl_seconds),
    )


def get_auth_coordinator(
    request: Request,
    settings: Settings = Depends(get_settings),
    sessions: SessionIssuer = Depends(get_session_issuer),
) -> AuthCoordinator:
    """
    Create auth coordinator with injected dependencies.

    The stores are created during app lifespan startup and stored in
    app.state; the coordinator itself is cheap and built per request.
    """
    state = request.app.state
    return AuthCoordinator(
        code_store=state.code_store,
        rate_limiter=state.rate_limiter,
        user_directory=state.user_directory,
        notifier=get_sms_sender(),
        sessions=sessions,
        clock=get_clock(),
        generator=CodeGenerator(length=settings.code_length),
        code_ttl=timedelta(seconds=settings.code_ttl_seconds),
        auto_provision=settings.login_auto_provision,
    )


# Bearer token security scheme for OpenAPI documentation
http_bearer = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str:
    """
    Extract the session token from the Authorization header.

    Missing or non-Bearer headers are rejected with 401.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials
