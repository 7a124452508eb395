"""
Domain exceptions - Semantic error types for pending verification.

Not-found, expired, exhausted and throttled outcomes are ordinary return
values (False / None). Only storage faults and account conflicts are raised.
"""


class VerificationError(Exception):
    """Base class for verification domain errors."""

    pass


class StorageError(VerificationError):
    """Store fault: connectivity, timeout, or constraint violation."""

    pass


class DuplicatePendingRegistration(StorageError):
    """A concurrent writer inserted a pending record for the same email."""

    pass


class AccountConflict(VerificationError):
    """The email or username already belongs to a permanent account."""

    pass
