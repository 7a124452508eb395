"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from functools import lru_cache

from fastapi import Depends, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresAccountRepository, PostgresVerificationStore
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.resend_api import ResendEmailSender
from src.config.settings import Settings, get_settings
from src.domain.ports import EmailSender
from src.domain.registration import RegistrationService
from src.domain.verification import VerificationEngine, VerificationPolicy


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_store(request: Request) -> PostgresVerificationStore:
    """Create verification store with connection pool from app state."""
    return PostgresVerificationStore(get_pool(request))


def get_account_creator(request: Request) -> PostgresAccountRepository:
    """Create account repository with connection pool from app state."""
    return PostgresAccountRepository(get_pool(request))


@lru_cache
def get_email_sender() -> EmailSender:
    """
    Get the process-wide email sender.

    Uses Resend when an API key is configured, console logging otherwise.
    """
    settings = get_settings()
    if settings.resend_api_key:
        return ResendEmailSender(settings.resend_api_key, settings.resend_from_email)
    return ConsoleEmailSender()


def policy_from_settings(settings: Settings) -> VerificationPolicy:
    """Map application settings onto the domain's verification policy."""
    return VerificationPolicy(
        code_length=settings.code_length,
        code_expiry_minutes=settings.code_expiry_minutes,
        max_attempts=settings.max_attempts,
        resend_cooldown_minutes=settings.resend_cooldown_minutes,
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_verification_engine(
    store: PostgresVerificationStore = Depends(get_store),
) -> VerificationEngine:
    """Create verification engine over the request's store handle."""
    return VerificationEngine(store=store, policy=policy_from_settings(get_settings()))


def get_registration_service(
    engine: VerificationEngine = Depends(get_verification_engine),
    account_creator: PostgresAccountRepository = Depends(get_account_creator),
) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the engine, email sender and account creator.
    """
    return RegistrationService(
        engine=engine,
        email_sender=get_email_sender(),
        account_creator=account_creator,
    )
