"""Pytest configuration and shared fixtures."""

from datetime import date

import logfire
import pytest

from homekeep.core.clock import FixedClock


# Sunday
TODAY = date(2026, 10, 18)


@pytest.fixture(scope="session", autouse=True)
def quiet_logfire() -> None:
    """Keep spans local during tests."""
    logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture
def today() -> date:
    """Fixed reference day shared by scheduling tests."""
    return TODAY


@pytest.fixture
def clock(today: date) -> FixedClock:
    """Clock pinned to noon on the reference day."""
    return FixedClock(today)
