"""Shared test fixtures and configuration."""
from datetime import datetime, timezone

import pytest

from chronicle.store import MemoryStore

T0 = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def t0():
    return T0
