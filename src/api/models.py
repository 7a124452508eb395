"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    """Request model for starting a registration."""

    email: EmailStr
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, description="User password (min 8 characters)")


class RegisterResponse(BaseModel):
    """Response model for a created pending registration."""

    message: str
    email: str
    expires_in_seconds: int


class VerifyRequest(BaseModel):
    """Request model for verifying a registration code."""

    identity: str = Field(..., min_length=1, description="Email or username used to register")
    code: str = Field(
        ...,
        min_length=4,
        max_length=12,
        pattern=r"^\d+$",
        description="Numeric verification code",
    )


class VerifyResponse(BaseModel):
    """Response model for a completed registration."""

    message: str
    email: str


class ResendRequest(BaseModel):
    """Request model for reissuing a verification code."""

    identity: str = Field(..., min_length=1, description="Email or username used to register")


class ResendResponse(BaseModel):
    """Response model for a reissued verification code."""

    message: str
    expires_in_seconds: int


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
