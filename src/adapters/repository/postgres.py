"""
PostgreSQL repository adapter - Implements VerificationStore protocol.

This module provides the PostgreSQL implementation of the domain's
store port using psycopg3 with raw SQL.

Concurrency Design:
-------------------
1. **create_or_replace**: DELETE then INSERT inside one transaction that
   first takes a transaction-scoped advisory lock on the email, so replaces
   for one identity run one after another. Should a duplicate INSERT still
   slip through, UNIQUE(email) rejects it with UniqueViolation, surfaced as
   DuplicatePendingRegistration so the engine can retry the replace.

2. **increment_attempts**: a single server-side
   ``attempts = attempts + 1 ... RETURNING attempts`` keyed by id, so two
   parallel wrong codes both count. A reissue inserts a new row with a new
   id, so a late increment cannot land on the fresh code's counter.

3. **delete**: ``DELETE ... RETURNING id`` tells the caller whether it was
   the one that removed the row, so concurrent completions have one winner.

4. **Faults**: every psycopg error (including pool timeouts, which subclass
   OperationalError) is wrapped in StorageError.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import psycopg
from psycopg import errors
from psycopg_pool import ConnectionPool

from src.domain.exceptions import AccountConflict, DuplicatePendingRegistration, StorageError
from src.domain.ports import PendingRegistration

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, email, username, first_name, last_name, password_hash, "
    "code_hash, code_expiry, attempts, created_at"
)


def _row_to_registration(row: tuple) -> PendingRegistration:
    (
        record_id,
        email,
        username,
        first_name,
        last_name,
        password_hash,
        code_hash,
        code_expiry,
        attempts,
        created_at,
    ) = row
    return PendingRegistration(
        id=record_id,
        email=email,
        username=username,
        first_name=first_name,
        last_name=last_name,
        password_hash=password_hash,
        code_hash=code_hash,
        code_expiry=code_expiry,
        attempts=attempts,
        created_at=created_at,
    )


class PostgresVerificationStore:
    """
    Implements VerificationStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def _connection(self, operation: str) -> Iterator[psycopg.Connection]:
        try:
            with self._pool.connection() as conn:
                yield conn
        except psycopg.Error as e:
            logger.error("Pending registration store %s failed: %s", operation, e)
            raise StorageError(f"Pending registration store {operation} failed") from e

    def find_by_identity(self, identity: str) -> PendingRegistration | None:
        """
        Fetch the pending record matching an email or username.

        An email match is preferred over a username match when both exist.
        """
        sql = f"""
            SELECT {_COLUMNS}
            FROM pending_registrations
            WHERE email = %s OR username = %s
            ORDER BY (email = %s) DESC, created_at DESC
            LIMIT 1
        """

        with self._connection("lookup") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (identity, identity, identity))
            row = cursor.fetchone()
            conn.commit()

        return _row_to_registration(row) if row is not None else None

    def create_or_replace(self, registration: PendingRegistration) -> PendingRegistration:
        """
        Replace any pending record for the email or username with a new one.

        Args:
            registration: Record to store (id is ignored)

        Returns:
            The stored record with its database id

        Raises:
            DuplicatePendingRegistration: Concurrent insert for the same email
            StorageError: Any other database fault
        """
        # Serializes replaces for one email; unrelated emails never wait
        lock_sql = "SELECT pg_advisory_xact_lock(hashtext(%s))"

        delete_sql = """
            DELETE FROM pending_registrations
            WHERE email = %s OR username = %s
        """

        insert_sql = f"""
            INSERT INTO pending_registrations
                (email, username, first_name, last_name, password_hash,
                 code_hash, code_expiry, attempts, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, 0, %s)
            RETURNING {_COLUMNS}
        """

        with self._connection("replace") as conn:
            try:
                with conn.transaction(), conn.cursor() as cursor:
                    cursor.execute(lock_sql, (registration.email,))
                    cursor.execute(delete_sql, (registration.email, registration.username))
                    cursor.execute(
                        insert_sql,
                        (
                            registration.email,
                            registration.username,
                            registration.first_name,
                            registration.last_name,
                            registration.password_hash,
                            registration.code_hash,
                            registration.code_expiry,
                            registration.created_at,
                        ),
                    )
                    row = cursor.fetchone()
            except errors.UniqueViolation as e:
                raise DuplicatePendingRegistration(registration.email) from e

        return _row_to_registration(row)

    def increment_attempts(self, record_id: int) -> int | None:
        """
        Atomically count one failed verification attempt.

        Returns:
            New attempt count, or None if the record was deleted or replaced
        """
        sql = """
            UPDATE pending_registrations
            SET attempts = attempts + 1
            WHERE id = %s
            RETURNING attempts
        """

        with self._connection("attempt update") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (record_id,))
            row = cursor.fetchone()
            conn.commit()

        return row[0] if row is not None else None

    def delete(self, record_id: int) -> bool:
        """
        Delete a pending record by id.

        Returns:
            True if this call removed the row, False if it was already gone
        """
        sql = "DELETE FROM pending_registrations WHERE id = %s RETURNING id"

        with self._connection("delete") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (record_id,))
            row = cursor.fetchone()
            conn.commit()

        return row is not None

    def purge_expired(self, now: datetime) -> int:
        """Delete all records whose code expired before `now`."""
        with self._connection("purge") as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM pending_registrations WHERE code_expiry < %s", (now,))
            purged = cursor.rowcount
            conn.commit()

        return purged


class PostgresAccountRepository:
    """
    Implements AccountCreator protocol via psycopg3.

    Inserts the verified registration into the users table. UNIQUE(email)
    and UNIQUE(username) make a second creation for the same identity fail
    with AccountConflict, which is what settles a double-submitted verify.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def account_exists(self, email: str, username: str) -> bool:
        """Check whether a user already holds the email or username."""
        sql = "SELECT EXISTS (SELECT 1 FROM users WHERE email = %s OR username = %s)"

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (email, username))
                row = cursor.fetchone()
                conn.commit()
        except psycopg.Error as e:
            logger.error("Account lookup failed for %s: %s", email, e)
            raise StorageError("Account lookup failed") from e

        return bool(row[0])

    def create_account(self, registration: PendingRegistration) -> int:
        """
        Create a permanent user row from a verified registration.

        Returns:
            The new user's id

        Raises:
            AccountConflict: The email or username is already taken
            StorageError: Any other database fault; the insert was rolled back
        """
        sql = """
            INSERT INTO users (email, username, first_name, last_name, password_hash)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id
        """

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    sql,
                    (
                        registration.email,
                        registration.username,
                        registration.first_name,
                        registration.last_name,
                        registration.password_hash,
                    ),
                )
                row = cursor.fetchone()
                conn.commit()
        except errors.UniqueViolation as e:
            raise AccountConflict(registration.email) from e
        except psycopg.Error as e:
            logger.error("Account creation failed for %s: %s", registration.email, e)
            raise StorageError("Account creation failed") from e

        return row[0]


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)
                conn.commit()

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
