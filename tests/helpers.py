"""Test helpers shared across unit, integration and adversarial suites."""

from datetime import datetime, timedelta, timezone

from src.domain.verification import VerificationEngine

START = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock returning timezone-aware UTC datetimes."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def register_alice(engine: VerificationEngine) -> str:
    """Create a pending registration for alice and return the plaintext code."""
    issued = engine.create_pending_verification(
        "alice@example.com", "alice", "Alice", "Liddell", "$2b$04$hashedpassword"
    )
    return issued.code


def wrong_code(code: str) -> str:
    """A code of the same length guaranteed to differ from `code`."""
    return "".join(str((int(digit) + 1) % 10) for digit in code)
