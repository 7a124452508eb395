"""
In-memory repository adapter - Implements VerificationStore protocol.

Keeps pending registrations in process memory behind a lock. Used for
local development without PostgreSQL and as the store in unit and
concurrency tests. Every mutation is atomic under the lock, which gives
the same guarantees the PostgreSQL adapter gets from its transactions.
"""

import itertools
import threading
from dataclasses import replace
from datetime import datetime

from src.domain.ports import PendingRegistration


class InMemoryVerificationStore:
    """
    Implements VerificationStore protocol with a dict keyed by record id.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[int, PendingRegistration] = {}
        self._ids = itertools.count(1)

    def find_by_identity(self, identity: str) -> PendingRegistration | None:
        with self._lock:
            by_username = None
            for record in self._records.values():
                if record.email == identity:
                    return record
                if record.username == identity and by_username is None:
                    by_username = record
            return by_username

    def create_or_replace(self, registration: PendingRegistration) -> PendingRegistration:
        with self._lock:
            stale = [
                record_id
                for record_id, record in self._records.items()
                if record.email == registration.email or record.username == registration.username
            ]
            for record_id in stale:
                del self._records[record_id]

            stored = replace(registration, id=next(self._ids), attempts=0)
            self._records[stored.id] = stored
            return stored

    def increment_attempts(self, record_id: int) -> int | None:
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return None
            updated = replace(record, attempts=record.attempts + 1)
            self._records[record_id] = updated
            return updated.attempts

    def delete(self, record_id: int) -> bool:
        with self._lock:
            return self._records.pop(record_id, None) is not None

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [record_id for record_id, record in self._records.items() if record.is_expired(now)]
            for record_id in expired:
                del self._records[record_id]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
