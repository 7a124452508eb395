"""
API v1 routes.

Defines REST endpoints for the pending-registration verification API.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import get_registration_service
from src.api.models import (
    ErrorResponse,
    RegisterRequest,
    RegisterResponse,
    ResendRequest,
    ResendResponse,
    VerifyRequest,
    VerifyResponse,
)
from src.domain.exceptions import AccountConflict
from src.domain.registration import RegistrationService

router = APIRouter(tags=["v1"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email or username already registered"},
        422: {"description": "Validation error"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Start a registration",
    description="Submit profile and password to begin registration. "
    "A numeric verification code will be sent to the provided email. "
    "Registering again with the same email replaces the pending registration.",
)
def register(
    request_data: RegisterRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegisterResponse:
    """
    Create a pending registration and send its verification code.

    - **email**: Valid email address to register
    - **username**: Desired username
    - **password**: Password (minimum 8 characters)
    """
    try:
        normalized_email, issued = service.register(
            request_data.email,
            request_data.username,
            request_data.first_name,
            request_data.last_name,
            request_data.password,
        )
    except AccountConflict:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email or username already registered",
        ) from None

    return RegisterResponse(
        message="Verification code sent",
        email=normalized_email,
        expires_in_seconds=issued.expires_in_seconds,
    )


@router.post(
    "/verify",
    response_model=VerifyResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired code"},
        422: {"description": "Validation error"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Verify code and complete registration",
    description="Submit the verification code received via email to "
    "confirm the pending registration and create the account.",
)
def verify(
    request_data: VerifyRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> VerifyResponse:
    """
    Verify a code and promote the pending registration.

    - **identity**: Email or username used to register
    - **code**: Verification code from email
    """
    registration = service.verify_and_complete(request_data.identity, request_data.code)

    if registration is None:
        # Wrong, expired, exhausted and unknown all look the same to the client
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired verification code",
        )

    return VerifyResponse(message="Registration complete", email=registration.email)


@router.post(
    "/resend-code",
    response_model=ResendResponse,
    responses={
        429: {"model": ErrorResponse, "description": "Code cannot be resent"},
        422: {"description": "Validation error"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Resend verification code",
    description="Reissue the verification code for a pending registration. "
    "Refused while the registration is inside its resend cool-down.",
)
def resend_code(
    request_data: ResendRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> ResendResponse:
    """
    Reissue a verification code.

    - **identity**: Email or username used to register
    """
    issued = service.resend(request_data.identity)

    if issued is None:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Verification code cannot be resent now",
        )

    return ResendResponse(message="Verification code sent", expires_in_seconds=issued.expires_in_seconds)
