"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the value types and the interfaces (ports) that the
domain requires from infrastructure. Adapters implement these protocols.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class PendingRegistration:
    """
    One in-flight registration awaiting code verification.

    Lifecycle:
    - created by a registration request (attempts=0)
    - mutated by wrong-code verify attempts (attempts += 1)
    - superseded by a resend (new row: new code_hash, code_expiry, attempts=0)
    - destroyed by completion, expiry-on-access, or attempt exhaustion

    `id` is assigned by the store; records not yet persisted carry None.
    """

    email: str
    username: str
    first_name: str
    last_name: str
    password_hash: str
    code_hash: str
    code_expiry: datetime
    created_at: datetime
    attempts: int = 0
    id: int | None = None

    def is_expired(self, now: datetime) -> bool:
        """True once `now` is strictly past the code expiry."""
        return now > self.code_expiry


@dataclass(frozen=True)
class IssuedCode:
    """Plaintext code handed to the notification channel, plus its lifetime."""

    code: str
    expires_in_seconds: int
    email: str = ""
    first_name: str = ""


class VerificationStore(Protocol):
    """Port interface for pending-registration persistence."""

    def find_by_identity(self, identity: str) -> PendingRegistration | None:
        """
        Find the pending record whose email or username equals `identity`.

        Returns:
            The record, or None if no pending registration exists
        """
        ...

    def create_or_replace(self, registration: PendingRegistration) -> PendingRegistration:
        """
        Delete any record holding the same email or username, then insert.

        Implementations must keep at most one record per email. A duplicate
        insert caused by a concurrent writer raises
        DuplicatePendingRegistration so the caller can retry.

        Returns:
            The stored record with its assigned id
        """
        ...

    def increment_attempts(self, record_id: int) -> int | None:
        """
        Atomically add one failed attempt to the record.

        Returns:
            The new attempt count, or None if the record no longer exists
        """
        ...

    def delete(self, record_id: int) -> bool:
        """
        Delete the record if it still exists.

        Returns:
            True only for the call that actually removed the record
        """
        ...

    def purge_expired(self, now: datetime) -> int:
        """Delete every record whose code expired before `now`; return count."""
        ...


class EmailSender(Protocol):
    """Port interface for verification code delivery."""

    def send_verification_code(
        self, email: str, first_name: str, code: str, expires_in_seconds: int
    ) -> bool:
        """
        Deliver a verification code to the recipient.

        Args:
            email: Recipient email address
            first_name: Recipient first name for the greeting
            code: Plaintext one-time code
            expires_in_seconds: Code lifetime shown to the user

        Returns:
            True if the channel accepted the message, False otherwise
        """
        ...


class AccountCreator(Protocol):
    """Port interface for promoting a verified registration to an account."""

    def account_exists(self, email: str, username: str) -> bool:
        """True if a permanent account already holds the email or username."""
        ...

    def create_account(self, registration: PendingRegistration) -> int:
        """
        Materialize a permanent account from a verified registration.

        Returns:
            Identifier of the created account

        Raises:
            AccountConflict: The email or username is already taken
            StorageError: Any other store fault; nothing was created
        """
        ...
