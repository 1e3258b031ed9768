"""Pytest configuration and fixtures for test suite."""

import os
import sys
from pathlib import Path

import pytest

TEST_SESSION_SECRET = "test-session-secret-0123456789abcdef0123456789"

# Set test environment BEFORE any other imports
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("SESSION_SECRET", TEST_SESSION_SECRET)

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture
def session_secret():
    """Secret shared by session and socket tokens in tests."""
    return TEST_SESSION_SECRET


@pytest.fixture
def make_transport():
    """Factory for in-memory socket transports."""
    from tests.helpers.fake_transport import FakeTransport

    def _make(**kwargs):
        return FakeTransport(**kwargs)
    return _make
