"""Unit tests for occurrence state transitions."""

from datetime import date

import pytest

from homekeep.core.errors import DuplicateRecordError, InvalidStateTransitionError
from homekeep.core.recurrence import next_occurrence
from homekeep.domain.occurrence import OccurrenceStatus
from homekeep.services import occurrence_state_machine
from homekeep.services.occurrence_state_machine import OCCURRENCES, TASKS


async def _seed(db, *, frequency="weekly", due_date=date(2026, 10, 18), preferred_weekday=None, status="pending"):
    task = await db.create_record(
        collection=TASKS,
        data={
            "title": "Vacuum living room",
            "frequency": frequency,
            "estimated_minutes": 20,
            "preferred_weekday": preferred_weekday,
        },
    )
    occurrence = await db.create_record(
        collection=OCCURRENCES,
        data={"task_id": task["id"], "due_date": due_date, "status": status},
    )
    return task, occurrence


def _pending_for(db, task_id):
    return [r for r in db.all(OCCURRENCES) if r["task_id"] == task_id and r["status"] == "pending"]


@pytest.mark.unit
class TestTransitionToCompleted:
    """Tests for transition_to_completed."""

    async def test_completes_and_schedules_next(self, patched_db, clock, today):
        """Completion stamps the time and creates the next pending occurrence."""
        task, occurrence = await _seed(patched_db)

        result = await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence["id"], clock=clock)

        assert result.occurrence.status == OccurrenceStatus.COMPLETED
        assert result.occurrence.completed_at == clock.now()
        assert result.next_occurrence is not None
        assert result.next_occurrence.status == OccurrenceStatus.PENDING
        assert result.next_occurrence.due_date == next_occurrence("weekly", today)
        assert result.scheduling_error is None

    async def test_round_trip_leaves_exactly_one_pending(self, patched_db, clock, today):
        """After completion the task has one pending occurrence at the next due date."""
        task, occurrence = await _seed(patched_db, frequency="monthly")

        await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence["id"], clock=clock)

        pending = _pending_for(patched_db, task["id"])
        assert len(pending) == 1
        assert pending[0]["due_date"] == next_occurrence("monthly", today).isoformat()

    async def test_anchors_on_today_not_due_date(self, patched_db, clock, today):
        """An overdue occurrence reschedules from the completion day."""
        _, occurrence = await _seed(patched_db, frequency="biweekly", due_date=date(2026, 9, 1))

        result = await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence["id"], clock=clock)

        assert result.next_occurrence.due_date == date(2026, 11, 1)

    async def test_weekly_preferred_weekday(self, patched_db, clock):
        """Weekly tasks reschedule onto their preferred weekday."""
        _, occurrence = await _seed(patched_db, preferred_weekday=3)

        result = await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence["id"], clock=clock)

        assert result.next_occurrence.due_date == date(2026, 10, 21)

    async def test_reschedule_is_idempotent(self, patched_db, clock, today):
        """An already scheduled next occurrence is reused instead of duplicated."""
        task, occurrence = await _seed(patched_db)
        existing = await patched_db.create_record(
            collection=OCCURRENCES,
            data={"task_id": task["id"], "due_date": next_occurrence("weekly", today), "status": "pending"},
        )

        result = await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence["id"], clock=clock)

        assert result.next_occurrence.id == existing["id"]
        assert len(_pending_for(patched_db, task["id"])) == 1

    @pytest.mark.parametrize("status", ["completed", "skipped"])
    async def test_terminal_states_cannot_complete(self, patched_db, clock, status):
        """Completed and skipped occurrences are final."""
        _, occurrence = await _seed(patched_db, status=status)

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence["id"], clock=clock)

        assert exc_info.value.current == status
        assert len(patched_db.all(OCCURRENCES)) == 1

    async def test_closed_by_another_writer_after_guard(self, patched_db, clock, monkeypatch):
        """A skip landing between the status read and the write turns completion into a conflict."""
        task, occurrence = await _seed(patched_db)
        original_update = patched_db.update_record

        async def update_after_concurrent_skip(**kwargs):
            await original_update(collection=OCCURRENCES, record_id=occurrence["id"], data={"status": "skipped"})
            return await original_update(**kwargs)

        monkeypatch.setattr("homekeep.core.db_client.update_record", update_after_concurrent_skip)

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence["id"], clock=clock)

        assert exc_info.value.current == "skipped"
        stored = await patched_db.get_record(collection=OCCURRENCES, record_id=occurrence["id"])
        assert stored["status"] == "skipped"
        assert stored.get("completed_at") is None
        assert _pending_for(patched_db, task["id"]) == []

    async def test_missing_occurrence_raises_key_error(self, patched_db, clock):
        """Unknown IDs surface as KeyError."""
        with pytest.raises(KeyError):
            await occurrence_state_machine.transition_to_completed(occurrence_id="9999", clock=clock)

    async def test_completion_write_failure_propagates(self, patched_db, clock, monkeypatch):
        """A failed status write raises and nothing else is written."""
        task, occurrence = await _seed(patched_db)

        async def failing_update(**kwargs):
            raise RuntimeError("database is locked")

        monkeypatch.setattr("homekeep.core.db_client.update_record", failing_update)

        with pytest.raises(RuntimeError, match="database is locked"):
            await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence["id"], clock=clock)

        stored = await patched_db.get_record(collection=OCCURRENCES, record_id=occurrence["id"])
        assert stored["status"] == "pending"
        assert len(_pending_for(patched_db, task["id"])) == 1

    async def test_scheduling_failure_keeps_completion(self, patched_db, clock, monkeypatch):
        """If the next occurrence cannot be written, the completion still stands."""
        task, occurrence = await _seed(patched_db)

        async def failing_create(**kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr("homekeep.core.db_client.create_record", failing_create)

        result = await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence["id"], clock=clock)

        assert result.occurrence.status == OccurrenceStatus.COMPLETED
        assert result.next_occurrence is None
        assert result.scheduling_error == "disk full"
        stored = await patched_db.get_record(collection=OCCURRENCES, record_id=occurrence["id"])
        assert stored["status"] == "completed"
        assert _pending_for(patched_db, task["id"]) == []

    async def test_unknown_frequency_strict_reports_scheduling_error(self, patched_db, clock, monkeypatch):
        """Strict mode turns an unknown frequency into a reported scheduling error."""
        monkeypatch.setattr("homekeep.core.recurrence.settings.strict_frequencies", True)
        _, occurrence = await _seed(patched_db, frequency="hourly")

        result = await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence["id"], clock=clock)

        assert result.occurrence.status == OccurrenceStatus.COMPLETED
        assert "hourly" in result.scheduling_error


@pytest.mark.unit
class TestTransitionToSkipped:
    """Tests for transition_to_skipped."""

    async def test_skips_and_schedules_next(self, patched_db, clock, today):
        """Skipping leaves completed_at empty and still schedules ahead."""
        _, occurrence = await _seed(patched_db, frequency="daily")

        result = await occurrence_state_machine.transition_to_skipped(occurrence_id=occurrence["id"], clock=clock)

        assert result.occurrence.status == OccurrenceStatus.SKIPPED
        assert result.occurrence.completed_at is None
        assert result.next_occurrence.due_date == date(2026, 10, 19)

    async def test_skipped_cannot_be_skipped_again(self, patched_db, clock):
        """Skipped is terminal."""
        _, occurrence = await _seed(patched_db)
        await occurrence_state_machine.transition_to_skipped(occurrence_id=occurrence["id"], clock=clock)

        with pytest.raises(InvalidStateTransitionError):
            await occurrence_state_machine.transition_to_skipped(occurrence_id=occurrence["id"], clock=clock)


@pytest.mark.unit
class TestScheduleNextOccurrence:
    """Tests for schedule_next_occurrence."""

    async def test_creates_pending_occurrence(self, patched_db):
        """The new occurrence follows the anchor by the task's rule."""
        task, _ = await _seed(patched_db, frequency="quarterly")

        created = await occurrence_state_machine.schedule_next_occurrence(task_id=task["id"], anchor=date(2026, 1, 31))

        assert created.due_date == date(2026, 4, 30)
        assert created.status == OccurrenceStatus.PENDING

    async def test_reuses_row_inserted_concurrently(self, patched_db, monkeypatch):
        """Losing the insert race to another scheduler returns the winner's row."""
        task, _ = await _seed(patched_db, status="completed")
        original_create = patched_db.create_record

        async def create_after_concurrent_insert(*, collection, data):
            await original_create(collection=collection, data=data)
            raise DuplicateRecordError("UNIQUE constraint failed: occurrences.task_id, occurrences.due_date")

        monkeypatch.setattr("homekeep.core.db_client.create_record", create_after_concurrent_insert)

        created = await occurrence_state_machine.schedule_next_occurrence(task_id=task["id"], anchor=date(2026, 10, 18))

        assert created.due_date == date(2026, 10, 25)
        assert [r["id"] for r in _pending_for(patched_db, task["id"])] == [created.id]

    async def test_missing_task_raises_key_error(self, patched_db):
        """An unknown task cannot be scheduled."""
        with pytest.raises(KeyError):
            await occurrence_state_machine.schedule_next_occurrence(task_id="4242", anchor=date(2026, 10, 18))

    async def test_find_pending_occurrence(self, patched_db):
        """Lookup matches task, status and date together."""
        task, occurrence = await _seed(patched_db)

        found = await occurrence_state_machine.find_pending_occurrence(task_id=task["id"], due_date=date(2026, 10, 18))
        missing = await occurrence_state_machine.find_pending_occurrence(
            task_id=task["id"], due_date=date(2026, 10, 19)
        )

        assert found.id == occurrence["id"]
        assert missing is None
