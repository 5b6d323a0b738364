"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
JSON field names are camelCase; Python attributes stay snake_case.

Phone, purpose and code formats are validated by the domain service so the
format rules live in one place and map to 400 responses.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.domain.ports import User


class CamelModel(BaseModel):
    """Base model serializing with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendCodeRequest(CamelModel):
    """Request model for verification code delivery."""

    phone: str = Field(..., description="Mobile phone number, e.g. 13812345678")
    purpose: str = Field(..., description='Code purpose: "login" or "register"')


class SendCodeResponse(CamelModel):
    """Response model for a successfully issued code."""

    success: bool = True
    expires_in_seconds: int


class VerifyCodeRequest(CamelModel):
    """Request model for register and login."""

    phone: str = Field(..., description="Mobile phone number")
    code: str = Field(..., description="Numeric verification code")


class UserResponse(CamelModel):
    """Public view of a user account."""

    id: str
    phone: str
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, phone=user.phone, created_at=user.created_at)


class AuthResponse(CamelModel):
    """Response model for successful register or login."""

    token: str
    user: UserResponse


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
