"""Pytest configuration and fixtures for unit tests."""

from datetime import date

import pytest

from homekeep.domain.schedule import ScheduledTask, UrgencyTier
from homekeep.domain.task import Task
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches homekeep.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("homekeep.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("homekeep.core.db_client.create_records", in_memory_db.create_records)
    monkeypatch.setattr("homekeep.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("homekeep.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("homekeep.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("homekeep.core.db_client.get_first_record", in_memory_db.get_first_record)
    return in_memory_db


@pytest.fixture
def scheduled_task_factory():
    """Factory for ScheduledTask values.

    Usage:
        item = scheduled_task_factory("t1", tier=UrgencyTier.OVERDUE, minutes=30)
    """

    def _create(
        task_id: str,
        *,
        tier: UrgencyTier = UrgencyTier.PRIMARY,
        minutes: int | None = 10,
        frequency: str = "weekly",
        due_date: date | None = None,
        completed_today: bool = False,
    ) -> ScheduledTask:
        task = Task(id=task_id, title=f"Task {task_id}", frequency=frequency, estimated_minutes=minutes)
        return ScheduledTask(task=task, due_date=due_date, tier=tier, completed_today=completed_today)

    return _create
