"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from loguru import logger

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from recall.core.models import Card, StudySession  # noqa: E402
from recall.core.repositories import InMemoryCardRepository, InMemorySessionRepository  # noqa: E402

FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite-backed stores)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep loguru output to warnings during tests."""
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
    yield
    logger.remove()


@pytest.fixture
def now():
    """A fixed reference time."""
    return FIXED_NOW


@pytest.fixture
def clock(now):
    """Clock callable returning the fixed reference time."""
    return lambda: now


@pytest.fixture
def sample_card():
    """A card that has never been reviewed."""
    return Card(id="card-001", tags=["spanish", "verbs"])


@pytest.fixture
def card_repo(sample_card):
    return InMemoryCardRepository([sample_card])


@pytest.fixture
def session_factory(now):
    """Build StudySessions relative to the fixed reference time."""

    def _make(days_ago: float = 0, cards: int = 10, response_ms: float | None = None, **kwargs):
        return StudySession(
            id=kwargs.pop("id", f"s-{days_ago}-{cards}"),
            start_time=now - timedelta(days=days_ago),
            cards_studied=cards,
            average_response_time_ms=response_ms,
            **kwargs,
        )

    return _make


@pytest.fixture
def session_repo():
    return InMemorySessionRepository()
