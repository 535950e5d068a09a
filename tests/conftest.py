import pytest

from chromedriver_session import constants
from chromedriver_session.context import reset_context


@pytest.fixture
def fast_poll(monkeypatch):
    """Shrink the shared poll tick so waiting tests run in milliseconds."""
    monkeypatch.setattr(constants, "POLL_INTERVAL_SECS", 0.01)
    return 0.01


@pytest.fixture(autouse=True)
def _fresh_default_context():
    reset_context()
    yield
    reset_context()
