"""
Unit tests for run_migrations.

Uses a mocked pool so the SQL files are read and executed in order
without a database.
"""

import logging
from unittest.mock import MagicMock

import pytest

from src.adapters.repository.postgres import run_migrations


def test_executes_files_in_order(caplog: pytest.LogCaptureFixture) -> None:
    pool = MagicMock()
    conn = pool.connection.return_value.__enter__.return_value

    with caplog.at_level(logging.INFO, logger="src.adapters.repository.postgres"):
        run_migrations(pool)

    executed = [c.args[0] for c in conn.execute.call_args_list]
    assert len(executed) == 2
    assert "pending_registrations" in executed[0]
    assert "users" in executed[1]
    assert conn.commit.call_count == 2

    executing = [r for r in caplog.records if r.msg == "Executing migration: %s"]
    assert [r.args for r in executing] == [
        ("001_create_pending_registrations.sql",),
        ("002_create_users.sql",),
    ]
    assert "Running 2 migration(s)" in caplog.text


def test_failure_is_wrapped() -> None:
    pool = MagicMock()
    pool.connection.return_value.__enter__.return_value.execute.side_effect = ValueError("syntax error")

    with pytest.raises(RuntimeError, match="001_create_pending_registrations.sql"):
        run_migrations(pool)
