"""
Shared fixtures for PostgreSQL integration tests.

Tests in this package need a reachable database (DATABASE_URL); they are
skipped when none answers within a few seconds.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create a migrated connection pool, or skip without a database."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        timeout=5.0,
        open=False,
    )
    try:
        pool.open(wait=True, timeout=3.0)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")

    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean pending registrations and users before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM pending_registrations")
        conn.execute("DELETE FROM users")
        conn.commit()
    yield
