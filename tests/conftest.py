"""
Bridge Test Suite - Shared Fixtures

All tests run in-process without hardware: the serial link is replaced by
helpers.FakeLink and WebSocket subscribers by FastAPI's TestClient.

Usage:
    pip install -e ".[test]"
    pytest tests -v
"""

import sys
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.config import Settings  # noqa: E402
from core.printer_state import StateStore  # noqa: E402
from helpers import FakeLink  # noqa: E402


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def published():
    """List that collects everything passed to a publish callback."""
    return []


@pytest.fixture
def fake_link():
    return FakeLink()


@pytest.fixture
def test_settings():
    return Settings(
        max_subscribers=2,
        subscriber_queue_size=16,
        delivery_idle_interval=0.005,
        cors_origins="",
    )
