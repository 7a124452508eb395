"""
Verification engine - Pending-registration lifecycle.

The engine holds no state of its own; every record lives in the injected
VerificationStore. Decisions are made against the engine's clock.

Verify decision table (evaluated in order)
==========================================

1. No record                    -> False
2. now > code_expiry            -> delete record, False
3. attempts >= max_attempts     -> delete record, False
4. Hash mismatch                -> attempts += 1 (atomic), False;
                                   delete once attempts reaches max_attempts
5. Hash match                   -> True (record kept until completion)

Resend is throttled by a cool-down measured from the stored created_at,
which a reissue resets.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import bcrypt

from .exceptions import DuplicatePendingRegistration
from .ports import IssuedCode, PendingRegistration, VerificationStore

logger = logging.getLogger(__name__)

# Bounded retries when a concurrent register wins the unique(email) race
_MAX_REPLACE_ATTEMPTS = 3


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_identity(identity: str) -> str:
    """
    Normalize an email-or-username lookup key.

    Applies: strip whitespace, lowercase when the identity is an email.
    """
    identity = identity.strip()
    if "@" in identity:
        return identity.lower()
    return identity


@dataclass(frozen=True)
class VerificationPolicy:
    """Tunables for code issuance and abuse limits."""

    code_length: int = 6
    code_expiry_minutes: int = 30
    max_attempts: int = 5
    resend_cooldown_minutes: int = 60
    bcrypt_cost: int = 10


@dataclass
class VerificationEngine:
    """
    Domain service for the pending-registration verification protocol.

    Issues one-time codes, stores only their bcrypt hash, and enforces
    expiry, attempt and resend limits on access.
    """

    store: VerificationStore
    policy: VerificationPolicy = field(default_factory=VerificationPolicy)
    clock: Callable[[], datetime] = utc_now

    def generate_code(self) -> str:
        """
        Generate a numeric one-time code of the configured length.

        Each digit is drawn independently from the secrets CSPRNG.
        Returns string to preserve leading zeros.
        """
        return "".join(secrets.choice("0123456789") for _ in range(self.policy.code_length))

    def hash_code(self, code: str) -> str:
        """Hash a code with bcrypt using the configured cost factor."""
        return bcrypt.hashpw(code.encode(), bcrypt.gensalt(rounds=self.policy.bcrypt_cost)).decode()

    def verify_hash(self, code: str, code_hash: str) -> bool:
        """Constant-time comparison of a plaintext code against its hash."""
        try:
            return bcrypt.checkpw(code.encode(), code_hash.encode())
        except ValueError:
            # Malformed stored hash never matches
            logger.error("Stored code hash is not a valid bcrypt hash")
            return False

    def create_pending_verification(
        self,
        email: str,
        username: str,
        first_name: str,
        last_name: str,
        password_hash: str,
    ) -> IssuedCode:
        """
        Issue a fresh code and store a new pending registration.

        Any prior record for the same email (or username) is replaced, so
        the newest call always wins.

        Args:
            email: Identity key (will be normalized)
            username: Secondary lookup key
            first_name: Opaque profile payload
            last_name: Opaque profile payload
            password_hash: Credential already hashed by the caller

        Returns:
            IssuedCode with the plaintext code and its lifetime in seconds

        Raises:
            StorageError: If the store fails or the replace keeps conflicting
        """
        normalized_email = normalize_identity(email)
        code = self.generate_code()
        now = self.clock()
        registration = PendingRegistration(
            email=normalized_email,
            username=username.strip(),
            first_name=first_name,
            last_name=last_name,
            password_hash=password_hash,
            code_hash=self.hash_code(code),
            code_expiry=now + timedelta(minutes=self.policy.code_expiry_minutes),
            created_at=now,
            attempts=0,
        )

        for attempt in range(1, _MAX_REPLACE_ATTEMPTS + 1):
            try:
                self.store.create_or_replace(registration)
                break
            except DuplicatePendingRegistration:
                if attempt == _MAX_REPLACE_ATTEMPTS:
                    raise
                logger.warning(
                    "Concurrent registration for %s, retrying replace (%d/%d)",
                    normalized_email,
                    attempt,
                    _MAX_REPLACE_ATTEMPTS,
                )

        logger.info("Created pending verification for %s", normalized_email)
        return IssuedCode(
            code=code,
            expires_in_seconds=self.policy.code_expiry_minutes * 60,
            email=normalized_email,
            first_name=first_name,
        )

    def get_pending_verification(self, identity: str) -> PendingRegistration | None:
        """
        Look up a pending registration, discarding it if its code expired.

        Returns:
            The live record, or None if absent or expired
        """
        key = normalize_identity(identity)
        pending = self.store.find_by_identity(key)
        if pending is None:
            return None

        if pending.is_expired(self.clock()):
            logger.warning("Pending verification expired for %s, deleting", key)
            self._delete(pending)
            return None

        return pending

    def verify_code(self, identity: str, plain_code: str) -> bool:
        """
        Check a presented code against the pending registration.

        A pure boolean oracle: success does not delete the record, so the
        completion step can be retried.

        Args:
            identity: Email or username
            plain_code: Code presented by the user

        Returns:
            True if the code matches the current, unexpired, unlocked code
        """
        key = normalize_identity(identity)
        pending = self.store.find_by_identity(key)

        if pending is None:
            logger.warning("No pending verification found for %s", key)
            return False

        if pending.is_expired(self.clock()):
            logger.warning("Pending verification expired for %s, deleting", key)
            self._delete(pending)
            return False

        if pending.attempts >= self.policy.max_attempts:
            logger.warning("Too many verification attempts for %s, deleting", key)
            self._delete(pending)
            return False

        if not self.verify_hash(plain_code, pending.code_hash):
            attempts = self.store.increment_attempts(pending.id)
            logger.warning("Invalid code attempt for %s (%s/%d)", key, attempts, self.policy.max_attempts)
            if attempts is not None and attempts >= self.policy.max_attempts:
                logger.warning("Attempt budget exhausted for %s, deleting", key)
                self._delete(pending)
            return False

        logger.info("Code verified for %s", key)
        return True

    def complete_pending_verification(self, identity: str) -> PendingRegistration | None:
        """
        Remove the pending registration and hand back its payload.

        The store's delete decides the winner: of several concurrent
        completions only the one that removed the record gets it back.

        Returns:
            The deleted record, or None if there was nothing to complete
        """
        pending = self.get_pending_verification(identity)
        if pending is None or pending.id is None:
            return None

        if not self.store.delete(pending.id):
            logger.info("Pending verification for %s already completed", pending.email)
            return None

        logger.info("Completed pending verification for %s", pending.email)
        return pending

    def resend_code(self, identity: str) -> IssuedCode | None:
        """
        Reissue a code for an existing pending registration.

        Refused while the record's created_at is inside the cool-down window.
        A reissue supersedes the previous code and resets attempts.

        Returns:
            New IssuedCode addressed to the stored email and first name,
            or None if nothing to resend or throttled
        """
        pending = self.get_pending_verification(identity)
        if pending is None:
            logger.warning("No pending verification found for resend: %s", normalize_identity(identity))
            return None

        cooldown_start = self.clock() - timedelta(minutes=self.policy.resend_cooldown_minutes)
        if pending.created_at > cooldown_start:
            logger.warning("Resend throttled for %s", pending.email)
            return None

        return self.create_pending_verification(
            pending.email,
            pending.username,
            pending.first_name,
            pending.last_name,
            pending.password_hash,
        )

    def purge_expired(self) -> int:
        """Delete every pending registration whose code has expired."""
        purged = self.store.purge_expired(self.clock())
        if purged:
            logger.info("Purged %d expired pending verification(s)", purged)
        return purged

    def _delete(self, pending: PendingRegistration) -> None:
        if pending.id is not None:
            self.store.delete(pending.id)
