"""
Domain layer - Pure business logic with zero framework imports.

This package contains the pending-registration verification lifecycle.
It defines its own port interfaces for infrastructure abstraction, so
stores and notification channels stay swappable.
"""

from .exceptions import AccountConflict, DuplicatePendingRegistration, StorageError, VerificationError
from .ports import (
    AccountCreator,
    EmailSender,
    IssuedCode,
    PendingRegistration,
    VerificationStore,
)
from .registration import RegistrationService
from .verification import VerificationEngine, VerificationPolicy

__all__ = [
    "AccountConflict",
    "AccountCreator",
    "DuplicatePendingRegistration",
    "EmailSender",
    "IssuedCode",
    "PendingRegistration",
    "RegistrationService",
    "StorageError",
    "VerificationEngine",
    "VerificationError",
    "VerificationPolicy",
    "VerificationStore",
]
