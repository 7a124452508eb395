"""Repository adapters - Database and in-memory implementations."""

from .memory import InMemoryVerificationStore
from .postgres import PostgresAccountRepository, PostgresVerificationStore, run_migrations

__all__ = [
    "InMemoryVerificationStore",
    "PostgresAccountRepository",
    "PostgresVerificationStore",
    "run_migrations",
]
