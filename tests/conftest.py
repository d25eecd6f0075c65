"""Shared fixtures for family graph tests."""

import itertools

import pytest
import structlog


class StepClock:
    """Deterministic epoch-milliseconds clock that advances on every call."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def ids():
    """Sequential ids: p1, p2, ..."""
    counter = itertools.count(1)
    return lambda: f"p{next(counter)}"


@pytest.fixture(autouse=True)
def reset_logging():
    """CLI tests reconfigure structlog; restore the defaults afterwards."""
    yield
    structlog.reset_defaults()
