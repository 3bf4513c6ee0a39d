"""Shared pytest fixtures and configuration.

This file is automatically loaded by pytest and provides fixtures
accessible to all tests.
"""

import os

import pytest
from hypothesis import HealthCheck, settings

from kestrel.contracts import default_state
from kestrel.store import InMemoryPersistence, StateStore

# =============================================================================
# Hypothesis Configuration
# =============================================================================

# Define profiles for different environments
settings.register_profile(
    "ci",
    max_examples=50,  # Faster for CI
    deadline=None,  # No deadlines for slow tests
    suppress_health_check=[HealthCheck.too_slow],
)

settings.register_profile(
    "dev",
    max_examples=10,  # Very fast for local development
    deadline=500,  # 500ms deadline for local tests
)

settings.register_profile(
    "thorough",
    max_examples=1000,  # Comprehensive for nightly runs
    deadline=None,
)

# Load profile based on environment variable
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


# =============================================================================
# State Fixtures
# =============================================================================


@pytest.fixture
def blank_state() -> dict:
    """Canonical state with nothing reported yet."""
    return default_state()


@pytest.fixture
def athlete_state() -> dict:
    """A rested intermediate athlete with baselines and a three-session day."""
    state = default_state()
    state["user_profile"].update(
        {
            "name": "Test Athlete",
            "age": 30,
            "sex": "female",
            "baselines": {"hrv_baseline": 65, "resting_hr": 52},
        }
    )
    state["sleep"].update(
        {"duration": 8.0, "efficiency": 92, "hrv": 66, "resting_hr": 52}
    )
    state["mindspace"].update({"mood": 7, "stress": 2})
    state["physical_load"].update({"acwr": 1.1})
    state["timeline"]["sessions"] = [
        {"id": "s1", "title": "Intervals", "intensity": "high", "time_of_day": "17:30"},
        {"id": "s2", "title": "Mobility", "intensity": "low", "time_of_day": "08:00"},
        {"id": "s3", "title": "Tempo", "intensity": "medium", "time_of_day": "12:15"},
    ]
    return state


@pytest.fixture
def red_day_state(athlete_state: dict) -> dict:
    """Athlete state with a critical HRV crash and short sleep."""
    athlete_state["sleep"].update({"hrv": 45, "duration": 4.5, "sleep_debt": 3})
    athlete_state["mindspace"].update({"stress": 8, "mood": 3.5})
    return athlete_state


@pytest.fixture
def persistence() -> InMemoryPersistence:
    return InMemoryPersistence()


@pytest.fixture
def make_store(persistence: InMemoryPersistence):
    """Factory for stores with a short debounce window and no rate limit."""
    def _make(**kwargs) -> StateStore:
        kwargs.setdefault("persistence", persistence)
        kwargs.setdefault("coalesce_window_ms", 20)
        kwargs.setdefault("max_runs_per_sec", None)
        return StateStore(**kwargs)

    return _make
