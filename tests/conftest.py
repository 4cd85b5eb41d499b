"""
Shared pytest configuration and fixtures for engine tests.

Time is always driven by a FakeClock so monitoring windows, idle time and
session length are deterministic.
"""

import pytest

from adaptive_engine.core.config import EngineSettings
from adaptive_engine.difficulty.profile_store import InMemoryProfileStore
from tests.factories import FakeClock


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: unit tests for isolated components"
    )
    config.addinivalue_line(
        "markers", "behavioral: directional checks on tunable heuristics"
    )


# ============================================================================
# Time / Configuration / Store
# ============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> EngineSettings:
    """Settings with defaults only (no .env)"""
    return EngineSettings(_env_file=None)


@pytest.fixture
def store(settings, clock) -> InMemoryProfileStore:
    return InMemoryProfileStore(settings, clock)
