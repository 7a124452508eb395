"""
Adversarial tests for race condition handling.

Verifies that concurrent operations on the same identity stay consistent:
- Concurrent registers leave exactly one pending record
- Concurrent wrong codes are all counted
- A stale verify cannot bump the counter of a reissued code
- Concurrent completions hand the payload to exactly one caller
- A double-submitted verify creates exactly one account
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from src.adapters.repository.memory import InMemoryVerificationStore
from src.domain.exceptions import AccountConflict
from src.domain.ports import PendingRegistration
from src.domain.registration import RegistrationService
from src.domain.verification import VerificationEngine, VerificationPolicy
from tests.helpers import register_alice, wrong_code

# Apply adversarial marker to all tests in this module
pytestmark = pytest.mark.adversarial


class TestConcurrentRegistration:
    """Register + register for the same email."""

    def test_concurrent_registers_leave_one_record(
        self, engine: VerificationEngine, store: InMemoryVerificationStore
    ) -> None:
        codes: list[str] = []
        codes_lock = threading.Lock()
        num_clients = 10

        def register() -> None:
            code = register_alice(engine)
            with codes_lock:
                codes.append(code)

        with ThreadPoolExecutor(max_workers=num_clients) as executor:
            futures = [executor.submit(register) for _ in range(num_clients)]
            for f in futures:
                f.result()

        assert len(codes) == num_clients
        assert len(store) == 1, f"Data corruption: {len(store)} records for same email (expected 1)"

        # Exactly the surviving record's code verifies
        record = store.find_by_identity("alice@example.com")
        matching = [c for c in set(codes) if engine.verify_hash(c, record.code_hash)]
        assert len(matching) == 1


class TestConcurrentVerification:
    """Verify + verify (double submit) against the same record."""

    def test_parallel_wrong_codes_all_counted(
        self, engine: VerificationEngine, store: InMemoryVerificationStore
    ) -> None:
        code = register_alice(engine)
        bad = wrong_code(code)

        with ThreadPoolExecutor(max_workers=4) as executor:
            results = list(executor.map(lambda _: engine.verify_code("alice@example.com", bad), range(4)))

        assert results == [False] * 4
        assert store.find_by_identity("alice@example.com").attempts == 4

    def test_parallel_wrong_codes_never_exceed_budget(
        self, engine: VerificationEngine, store: InMemoryVerificationStore
    ) -> None:
        """A burst larger than the budget ends with the record deleted."""
        code = register_alice(engine)
        bad = wrong_code(code)

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda _: engine.verify_code("alice@example.com", bad), range(20)))

        assert len(store) == 0
        assert engine.verify_code("alice@example.com", code) is False

    def test_stale_increment_does_not_touch_reissued_code(
        self, engine: VerificationEngine, store: InMemoryVerificationStore
    ) -> None:
        register_alice(engine)
        stale = store.find_by_identity("alice@example.com")

        register_alice(engine)

        assert store.increment_attempts(stale.id) is None
        assert store.find_by_identity("alice@example.com").attempts == 0


class GatedStore(InMemoryVerificationStore):
    """Holds every lookup at a barrier so concurrent callers read the same record."""

    def __init__(self, parties: int) -> None:
        super().__init__()
        self.barrier = threading.Barrier(parties)

    def find_by_identity(self, identity: str) -> PendingRegistration | None:
        record = super().find_by_identity(identity)
        self.barrier.wait(timeout=5)
        return record


class UniqueAccounts:
    """Account creator enforcing unique emails, like the users table."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.created: list[str] = []

    def account_exists(self, email: str, username: str) -> bool:
        with self._lock:
            return email in self.created

    def create_account(self, registration: PendingRegistration) -> int:
        with self._lock:
            if registration.email in self.created:
                raise AccountConflict(registration.email)
            self.created.append(registration.email)
            return len(self.created)


class TestConcurrentCompletion:
    """Complete + complete (double submit) against the same record."""

    def test_only_one_completion_gets_payload(self) -> None:
        store = GatedStore(parties=2)
        engine = VerificationEngine(store=store, policy=VerificationPolicy(bcrypt_cost=4))
        register_alice(engine)

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(engine.complete_pending_verification, "alice@example.com") for _ in range(2)]
            results = [f.result() for f in futures]

        completed = [r for r in results if r is not None]
        assert len(completed) == 1, f"Completion handed out {len(completed)} payloads (expected 1)"
        assert len(store) == 0

    def test_double_submitted_verify_creates_one_account(self, store: InMemoryVerificationStore) -> None:
        engine = VerificationEngine(store=store, policy=VerificationPolicy(bcrypt_cost=4))
        accounts = UniqueAccounts()
        sender = Mock()
        sender.send_verification_code.return_value = True
        service = RegistrationService(engine=engine, email_sender=sender, account_creator=accounts)
        code = register_alice(engine)

        with ThreadPoolExecutor(max_workers=4) as executor:
            futures = [executor.submit(service.verify_and_complete, "alice@example.com", code) for _ in range(4)]
            results = [f.result() for f in futures]

        assert len([r for r in results if r is not None]) == 1
        assert accounts.created == ["alice@example.com"]
        assert len(store) == 0
