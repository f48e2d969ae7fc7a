"""State transitions for task occurrences and the reschedule trigger."""

import logging
from datetime import date
from typing import Any

from homekeep.core import db_client
from homekeep.core.clock import Clock, system_clock
from homekeep.core.errors import DuplicateRecordError, InvalidStateTransitionError, StaleRecordError
from homekeep.core.logging import span
from homekeep.core.recurrence import next_occurrence
from homekeep.domain.create_models import OccurrenceCreate
from homekeep.domain.occurrence import Occurrence, OccurrenceStatus
from homekeep.domain.schedule import TransitionResult
from homekeep.domain.task import Task


logger = logging.getLogger(__name__)

TASKS = "tasks"
OCCURRENCES = "occurrences"

# Completed and skipped are terminal
ALLOWED_TRANSITIONS: dict[OccurrenceStatus, set[OccurrenceStatus]] = {
    OccurrenceStatus.PENDING: {OccurrenceStatus.COMPLETED, OccurrenceStatus.SKIPPED},
    OccurrenceStatus.COMPLETED: set(),
    OccurrenceStatus.SKIPPED: set(),
}


def _guard_transition(record: dict[str, Any], target: OccurrenceStatus) -> None:
    current = OccurrenceStatus(record["status"])
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateTransitionError(record["id"], current.value, target.value)


async def get_occurrence(*, occurrence_id: str) -> Occurrence:
    """Fetch an occurrence by ID.

    Raises:
        KeyError: If the occurrence does not exist
    """
    record = await db_client.get_record(collection=OCCURRENCES, record_id=occurrence_id)
    return Occurrence.model_validate(record)


async def find_pending_occurrence(*, task_id: str, due_date: date) -> Occurrence | None:
    """Return the pending occurrence of a task on a given date, if one exists."""
    record = await db_client.get_first_record(
        collection=OCCURRENCES,
        filter_query=(
            f'task_id = "{db_client.sanitize_param(task_id)}" && '
            f'status = "{OccurrenceStatus.PENDING}" && '
            f'due_date = "{due_date.isoformat()}"'
        ),
    )
    return Occurrence.model_validate(record) if record else None


async def schedule_next_occurrence(*, task_id: str, anchor: date) -> Occurrence:
    """Create the pending occurrence that follows ``anchor`` for a task.

    Idempotent on ``(task_id, due_date)``: if that pending occurrence already
    exists it is returned instead of inserting a duplicate, including when a
    concurrent caller inserts it between the lookup and the write.

    Args:
        task_id: Owning task ID
        anchor: Date the recurrence is computed from

    Returns:
        The pending occurrence

    Raises:
        KeyError: If the task does not exist
        UnsupportedFrequencyError: If the task frequency is unknown and strict mode is on
        RuntimeError: If the store write fails
    """
    with span("occurrence_state_machine.schedule_next_occurrence", task_id=task_id):
        task = Task.model_validate(await db_client.get_record(collection=TASKS, record_id=task_id))
        due_date = next_occurrence(task.frequency, anchor, task.preferred_weekday)

        existing = await find_pending_occurrence(task_id=task.id, due_date=due_date)
        if existing:
            logger.info(
                "Next occurrence already scheduled",
                extra={"task_id": task.id, "occurrence_id": existing.id, "due_date": due_date.isoformat()},
            )
            return existing

        payload = OccurrenceCreate(task_id=task.id, due_date=due_date)
        try:
            record = await db_client.create_record(collection=OCCURRENCES, data=payload.to_record())
        except DuplicateRecordError:
            existing = await find_pending_occurrence(task_id=task.id, due_date=due_date)
            if existing is None:
                raise
            logger.info(
                "Next occurrence scheduled concurrently",
                extra={"task_id": task.id, "occurrence_id": existing.id, "due_date": due_date.isoformat()},
            )
            return existing

        logger.info("Scheduled next occurrence for task %s on %s", task.id, due_date.isoformat())
        return Occurrence.model_validate(record)


async def _close_and_reschedule(
    *,
    occurrence_id: str,
    target: OccurrenceStatus,
    clock: Clock,
) -> TransitionResult:
    record = await db_client.get_record(collection=OCCURRENCES, record_id=occurrence_id)
    _guard_transition(record, target)

    update_data: dict[str, Any] = {"status": target.value}
    if target == OccurrenceStatus.COMPLETED:
        update_data["completed_at"] = clock.now()

    # A failure here propagates so the caller can roll back its optimistic state
    try:
        updated = await db_client.update_record(
            collection=OCCURRENCES,
            record_id=occurrence_id,
            data=update_data,
            expected={"status": OccurrenceStatus.PENDING.value},
        )
    except StaleRecordError:
        # Another transition closed it after the guard above
        current = await db_client.get_record(collection=OCCURRENCES, record_id=occurrence_id)
        raise InvalidStateTransitionError(occurrence_id, current["status"], target.value) from None

    closed = Occurrence.model_validate(updated)
    logger.info("Transitioned occurrence %s to %s", occurrence_id, target.upper())

    try:
        following = await schedule_next_occurrence(task_id=closed.task_id, anchor=clock.today())
    except Exception as e:
        # The chore itself is done; only the follow-up scheduling is lost
        logger.exception(
            "Failed to schedule next occurrence",
            extra={"occurrence_id": occurrence_id, "task_id": closed.task_id},
        )
        return TransitionResult(occurrence=closed, scheduling_error=str(e))

    return TransitionResult(occurrence=closed, next_occurrence=following)


async def transition_to_completed(*, occurrence_id: str, clock: Clock = system_clock) -> TransitionResult:
    """Mark an occurrence completed and schedule the task's next occurrence from today.

    Raises:
        KeyError: If the occurrence does not exist
        InvalidStateTransitionError: If the occurrence is not pending
        RuntimeError: If the completion write fails
    """
    with span("occurrence_state_machine.transition_to_completed", occurrence_id=occurrence_id):
        return await _close_and_reschedule(
            occurrence_id=occurrence_id,
            target=OccurrenceStatus.COMPLETED,
            clock=clock,
        )


async def transition_to_skipped(*, occurrence_id: str, clock: Clock = system_clock) -> TransitionResult:
    """Mark an occurrence skipped and schedule the task's next occurrence from today.

    Raises:
        KeyError: If the occurrence does not exist
        InvalidStateTransitionError: If the occurrence is not pending
        RuntimeError: If the skip write fails
    """
    with span("occurrence_state_machine.transition_to_skipped", occurrence_id=occurrence_id):
        return await _close_and_reschedule(
            occurrence_id=occurrence_id,
            target=OccurrenceStatus.SKIPPED,
            clock=clock,
        )
