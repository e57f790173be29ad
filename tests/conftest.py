"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from tests.helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    """Return a fake clock starting at an arbitrary non-zero time."""
    return FakeClock(start=1000.0)
