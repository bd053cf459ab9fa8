"""
tests/conftest.py -- Shared fixtures for the Defender status report tests.

No test touches a real network, subprocess, or SMTP server. Test doubles
live in tests/fakes.py so test modules can import them directly.
"""

from __future__ import annotations

import pytest

from core.config import get_settings
from tests.fakes import FakeStatusSource


@pytest.fixture
def fake_source() -> FakeStatusSource:
    return FakeStatusSource()


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are lru_cached; each test starts from a fresh environment read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
