"""
Auth API routes.

Defines REST endpoints for phone + verification code authentication:
- POST /auth/send-code - Issue a code for login or registration
- POST /auth/register  - Create an account with a register code
- POST /auth/login     - Log in with a login code
- GET  /auth/profile   - Resolve the account behind a session token
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.api.dependencies import get_auth_coordinator, get_bearer_token
from src.api.models import (
    AuthResponse,
    ErrorResponse,
    SendCodeRequest,
    SendCodeResponse,
    UserResponse,
    VerifyCodeRequest,
)
from src.domain.auth import AuthCoordinator
from src.domain.exceptions import (
    InvalidCode,
    InvalidPhone,
    InvalidPurpose,
    InvalidRequest,
    InvalidToken,
    RateLimited,
    UserConflict,
    UserNotFound,
)

router = APIRouter(tags=["auth"])

_INVALID_CODE_DETAIL = "Invalid or expired verification code"


@router.post(
    "/send-code",
    response_model=SendCodeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid phone or purpose"},
        429: {"model": ErrorResponse, "description": "Code requested too frequently"},
    },
    summary="Send a verification code",
    description="Issue a one-time numeric code for login or registration. "
    "The code is delivered by SMS and supersedes any earlier code for the same purpose.",
)
async def send_code(
    request_data: SendCodeRequest,
    coordinator: AuthCoordinator = Depends(get_auth_coordinator),
) -> SendCodeResponse:
    """
    Issue a verification code.

    - **phone**: Mobile phone number
    - **purpose**: "login" or "register"
    """
    try:
        issued = await coordinator.request_code(request_data.phone, request_data.purpose)
    except InvalidPhone:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid phone number",
        ) from None
    except InvalidPurpose:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid purpose",
        ) from None
    except RateLimited as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Verification code requested too frequently",
            headers={"Retry-After": str(e.retry_after)},
        ) from None
    return SendCodeResponse(success=True, expires_in_seconds=issued.expires_in_seconds)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid phone or code format"},
        401: {"model": ErrorResponse, "description": "Invalid or expired code"},
        409: {"model": ErrorResponse, "description": "Phone already registered"},
    },
    summary="Register a new user",
    description="Submit the phone number and the register code to create an account. "
    "A session token is returned so the user is logged in immediately.",
)
async def register(
    request_data: VerifyCodeRequest,
    coordinator: AuthCoordinator = Depends(get_auth_coordinator),
) -> AuthResponse:
    """
    Register with a verification code.

    - **phone**: Mobile phone number
    - **code**: Code from a "register" send-code request
    """
    try:
        result = await coordinator.register(request_data.phone, request_data.code)
    except InvalidRequest:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid phone number or code format",
        ) from None
    except InvalidCode:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_INVALID_CODE_DETAIL,
        ) from None
    except UserConflict:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Phone number already registered",
        ) from None
    return AuthResponse(token=result.token, user=UserResponse.from_user(result.user))


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid phone or code format"},
        401: {"model": ErrorResponse, "description": "Invalid or expired code"},
        404: {"model": ErrorResponse, "description": "Phone not registered"},
    },
    summary="Log in with a verification code",
    description="Submit the phone number and the login code to receive a session token.",
)
async def login(
    request_data: VerifyCodeRequest,
    coordinator: AuthCoordinator = Depends(get_auth_coordinator),
) -> AuthResponse:
    """
    Log in with a verification code.

    - **phone**: Mobile phone number
    - **code**: Code from a "login" send-code request
    """
    try:
        result = await coordinator.login(request_data.phone, request_data.code)
    except InvalidRequest:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid phone number or code format",
        ) from None
    except InvalidCode:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_INVALID_CODE_DETAIL,
        ) from None
    except UserNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Phone number not registered, please register first",
        ) from None
    return AuthResponse(token=result.token, user=UserResponse.from_user(result.user))


@router.get(
    "/profile",
    response_model=UserResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid session token"},
        404: {"model": ErrorResponse, "description": "User no longer exists"},
    },
    summary="Get the current user",
    description="Return the account identified by the Bearer session token.",
)
async def profile(
    response: Response,
    token: str = Depends(get_bearer_token),
    coordinator: AuthCoordinator = Depends(get_auth_coordinator),
) -> UserResponse:
    """Resolve the user behind a session token."""
    try:
        user = await coordinator.current_user(token)
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except UserNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        ) from None
    response.headers["Cache-Control"] = "no-store"
    return UserResponse.from_user(user)
