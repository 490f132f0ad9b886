"""Global pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from single_user_cache import Factory, ManualScheduler


@pytest.fixture
def factory() -> Factory:
    """Create an empty factory."""
    return Factory()


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Create a scheduler that only flushes on demand."""
    return ManualScheduler()
