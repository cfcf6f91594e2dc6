"""
pytest configuration – test settings and a clean rate guard per test.
"""
import os

# Set before sema.config is imported anywhere
os.environ.setdefault("SEMA_ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("SEMA_LOG_FORMAT", "text")

import pytest

from sema.main import app


class FakeClock:
    """Manually advanced stand-in for time.time()."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _reset_rate_guard():
    """Bans and counters must not leak between tests."""
    app.state.rate_guard.reset()
    yield
    app.state.rate_guard.reset()
