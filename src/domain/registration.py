"""
Registration domain service - Orchestrates the verification lifecycle.

Wires the verification engine to its collaborators:

    register        -> refuse taken email/username, hash password, issue code, notify
    verify_and_complete -> verify code, create account, remove pending record
    resend          -> reissue code (cool-down permitting), notify

The account is created before the pending record is removed, so a store
fault during creation leaves the verified registration in place for a
retry. The accounts table's uniqueness settles a double submit: the
second creation raises AccountConflict and that request completes nothing.

Notification failures never roll back a pending record; the user can
always ask for a resend.
"""

import logging
from dataclasses import dataclass

import bcrypt

from .exceptions import AccountConflict
from .ports import AccountCreator, EmailSender, IssuedCode, PendingRegistration
from .verification import VerificationEngine, normalize_identity

logger = logging.getLogger(__name__)


@dataclass
class RegistrationService:
    """
    Domain service for user registration.

    Orchestrates the registration flow: password hashing, code issuance,
    notification, and promotion to a permanent account.
    """

    engine: VerificationEngine
    email_sender: EmailSender
    account_creator: AccountCreator

    def register(
        self,
        email: str,
        username: str,
        first_name: str,
        last_name: str,
        password: str,
    ) -> tuple[str, IssuedCode]:
        """
        Start a registration by creating a pending verification.

        Args:
            email: User's email address (will be normalized)
            username: Desired username
            first_name: User's first name
            last_name: User's last name
            password: User's password (will be hashed)

        Returns:
            Tuple of (normalized email, issued code)

        Raises:
            AccountConflict: If the email or username already has an account
            StorageError: If the pending record cannot be stored
        """
        normalized_email = normalize_identity(email)
        username = username.strip()

        if self.account_creator.account_exists(normalized_email, username):
            logger.warning("Registration refused, account exists for %s or %s", normalized_email, username)
            raise AccountConflict(normalized_email)

        password_hash = self._hash_password(password)

        issued = self.engine.create_pending_verification(
            normalized_email, username, first_name, last_name, password_hash
        )
        self._notify(issued)
        return normalized_email, issued

    def verify_and_complete(self, identity: str, code: str) -> PendingRegistration | None:
        """
        Verify the code and promote the registration to an account.

        Returns:
            The completed registration, or None if verification failed or
            the record was already completed

        Raises:
            StorageError: The account could not be created; the pending
                registration is kept so the same code can be retried
        """
        if not self.engine.verify_code(identity, code):
            return None

        registration = self.engine.get_pending_verification(identity)
        # The record may have been replaced since verify_code read it
        if registration is None or not self.engine.verify_hash(code, registration.code_hash):
            return None

        try:
            account_id = self.account_creator.create_account(registration)
        except AccountConflict:
            logger.warning("Account for %s already exists, registration not completed", registration.email)
            return None

        self.engine.complete_pending_verification(identity)
        logger.info("Account %s created for %s", account_id, registration.email)
        return registration

    def resend(self, identity: str) -> IssuedCode | None:
        """
        Reissue and deliver a verification code.

        Returns:
            The issued code, or None if nothing to resend or throttled
        """
        issued = self.engine.resend_code(identity)
        if issued is None:
            return None

        self._notify(issued)
        return issued

    def _notify(self, issued: IssuedCode) -> None:
        delivered = self.email_sender.send_verification_code(
            issued.email, issued.first_name, issued.code, issued.expires_in_seconds
        )
        if not delivered:
            logger.error("Verification code delivery failed for %s", issued.email)

    def _hash_password(self, password: str) -> str:
        """Hash password using bcrypt with the engine's cost factor."""
        rounds = self.engine.policy.bcrypt_cost
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()
