"""Shared test fixtures for the broker engine tests."""

from __future__ import annotations

import numpy as np
import pytest

from powerbroker.broker.registry import BrokerRegistry
from powerbroker.config import Settings
from powerbroker.core.logging import reset_error_once
from powerbroker.simulation.host import SimClock, SimHost


@pytest.fixture(autouse=True)
def _fresh_error_once():
    """Error-once bookkeeping is process-wide; isolate it per test."""
    reset_error_once()
    yield
    reset_error_once()


# ======================================================================
# Settings and randomness
# ======================================================================

@pytest.fixture
def settings() -> Settings:
    """Default timings: evaluate every second, ten seconds minimum on-time."""
    return Settings(ticks_per_second=60, update_interval=60, minimum_on_time=600)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


# ======================================================================
# Host fixtures
# ======================================================================

@pytest.fixture
def host() -> SimHost:
    return SimHost()


@pytest.fixture
def clock() -> SimClock:
    return SimClock()


@pytest.fixture
def registry() -> BrokerRegistry:
    return BrokerRegistry(domain_id="test-map")

