"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry and cool-down tests
- An in-memory verification store
- A verification engine with a fast bcrypt cost
"""

import pytest

from src.adapters.repository.memory import InMemoryVerificationStore
from src.domain.verification import VerificationEngine, VerificationPolicy
from tests.helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed instant until advanced."""
    return FakeClock()


@pytest.fixture
def policy() -> VerificationPolicy:
    """Default limits with the minimum bcrypt cost to keep tests fast."""
    return VerificationPolicy(
        code_length=6,
        code_expiry_minutes=30,
        max_attempts=5,
        resend_cooldown_minutes=60,
        bcrypt_cost=4,
    )


@pytest.fixture
def store() -> InMemoryVerificationStore:
    """Fresh in-memory store for each test."""
    return InMemoryVerificationStore()


@pytest.fixture
def engine(
    store: InMemoryVerificationStore, policy: VerificationPolicy, clock: FakeClock
) -> VerificationEngine:
    """Verification engine over the in-memory store and fake clock."""
    return VerificationEngine(store=store, policy=policy, clock=clock)
