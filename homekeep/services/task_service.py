"""Task service for CRUD operations and occurrence scheduling."""

import logging
from datetime import date

from homekeep.core import db_client
from homekeep.core.clock import Clock, system_clock
from homekeep.core.config import settings
from homekeep.core.logging import span
from homekeep.core.recurrence import occurrences_within_window, to_date
from homekeep.domain.create_models import OccurrenceCreate, TaskCreate
from homekeep.domain.occurrence import Occurrence, OccurrenceStatus
from homekeep.domain.schedule import TransitionResult
from homekeep.domain.task import Frequency, Task
from homekeep.services import occurrence_state_machine
from homekeep.services.occurrence_state_machine import OCCURRENCES, TASKS


logger = logging.getLogger(__name__)


async def create_task(
    *,
    payload: TaskCreate,
    clock: Clock = system_clock,
    window_months: int | None = None,
) -> tuple[Task, list[Occurrence]]:
    """Create a task and pre-populate its occurrences for the scheduling window.

    The occurrences are written in one transaction, so a failed batch leaves
    no partial window behind. The task row itself is kept; orphan repair gives
    it a next occurrence.

    Args:
        payload: Validated task fields
        clock: Source of "today" for the first occurrence
        window_months: Months of occurrences to create; defaults to settings.occurrence_window_months

    Returns:
        Created task and its pending occurrences in due-date order

    Raises:
        RuntimeError: If a database write fails
    """
    with span("task_service.create_task", frequency=payload.frequency):
        data = payload.model_dump(exclude_none=True)
        data["frequency"] = payload.frequency.value
        if payload.frequency != Frequency.WEEKLY:
            # Weekday preference only applies to weekly tasks
            data.pop("preferred_weekday", None)

        task = Task.model_validate(await db_client.create_record(collection=TASKS, data=data))

        if window_months is None:
            window_months = settings.occurrence_window_months
        due_dates = occurrences_within_window(task.frequency, clock.today(), window_months, task.preferred_weekday)

        await db_client.create_records(
            collection=OCCURRENCES,
            rows=[OccurrenceCreate(task_id=task.id, due_date=due_date).to_record() for due_date in due_dates],
        )
        occurrences = await list_occurrences(task_id=task.id)

        logger.info(
            "Created task '%s' (%s) with %d occurrences",
            task.title,
            task.frequency,
            len(occurrences),
        )
        return task, occurrences


async def get_task(*, task_id: str) -> Task:
    """Get task by ID.

    Raises:
        KeyError: If task not found
    """
    return Task.model_validate(await db_client.get_record(collection=TASKS, record_id=task_id))


async def list_tasks() -> list[Task]:
    """Return every task in creation order."""
    with span("task_service.list_tasks"):
        records = await db_client.list_all_records(collection=TASKS, sort="id ASC")
        return [Task.model_validate(record) for record in records]


async def list_occurrences(
    *,
    task_id: str | None = None,
    status: OccurrenceStatus | None = None,
    completed_since: date | None = None,
) -> list[Occurrence]:
    """Get occurrences with optional filters, ordered by due date.

    Args:
        task_id: Only occurrences of this task
        status: Only occurrences in this state
        completed_since: Only occurrences completed on or after this day

    Returns:
        Matching occurrences
    """
    with span("task_service.list_occurrences"):
        filters = []

        if task_id:
            filters.append(f'task_id = "{db_client.sanitize_param(task_id)}"')

        if status:
            filters.append(f'status = "{status}"')

        if completed_since:
            filters.append(f'completed_at >= "{completed_since.isoformat()}"')

        filter_query = " && ".join(filters)
        records = await db_client.list_all_records(
            collection=OCCURRENCES,
            filter_query=filter_query,
            sort="due_date ASC",
        )

        logger.debug("Retrieved %d occurrences with filters: %s", len(records), filter_query)
        return [Occurrence.model_validate(record) for record in records]


def earliest_pending_occurrences(occurrences: list[Occurrence]) -> dict[str, Occurrence]:
    """Map each task to its pending occurrence with the earliest due date."""
    earliest: dict[str, Occurrence] = {}
    for occurrence in occurrences:
        if occurrence.status != OccurrenceStatus.PENDING:
            continue
        current = earliest.get(occurrence.task_id)
        if current is None or occurrence.due_date < current.due_date:
            earliest[occurrence.task_id] = occurrence
    return earliest


async def complete_occurrence(*, occurrence_id: str, clock: Clock = system_clock) -> TransitionResult:
    """Complete an occurrence and schedule the next one.

    Raises:
        KeyError: If the occurrence does not exist
        InvalidStateTransitionError: If the occurrence is not pending
        RuntimeError: If the completion write fails
    """
    return await occurrence_state_machine.transition_to_completed(occurrence_id=occurrence_id, clock=clock)


async def skip_occurrence(*, occurrence_id: str, clock: Clock = system_clock) -> TransitionResult:
    """Skip an occurrence and schedule the next one.

    Raises:
        KeyError: If the occurrence does not exist
        InvalidStateTransitionError: If the occurrence is not pending
        RuntimeError: If the skip write fails
    """
    return await occurrence_state_machine.transition_to_skipped(occurrence_id=occurrence_id, clock=clock)


async def reschedule_orphaned_tasks(*, clock: Clock = system_clock) -> list[Occurrence]:
    """Give every task without a pending occurrence its next one.

    Repairs completions whose follow-up scheduling failed. The recurrence is
    anchored on the task's most recent completion, or today if it has none.

    Returns:
        Occurrences created (or found) for the orphaned tasks
    """
    with span("task_service.reschedule_orphaned_tasks"):
        tasks = await list_tasks()
        pending = earliest_pending_occurrences(await list_occurrences(status=OccurrenceStatus.PENDING))

        last_completed: dict[str, date] = {}
        for occurrence in await list_occurrences(status=OccurrenceStatus.COMPLETED):
            if occurrence.completed_at is None:
                continue
            done = to_date(occurrence.completed_at)
            if occurrence.task_id not in last_completed or done > last_completed[occurrence.task_id]:
                last_completed[occurrence.task_id] = done

        repaired = []
        for task in tasks:
            if task.id in pending:
                continue
            anchor = last_completed.get(task.id, clock.today())
            try:
                repaired.append(await occurrence_state_machine.schedule_next_occurrence(task_id=task.id, anchor=anchor))
            except Exception:
                logger.exception("Failed to reschedule orphaned task", extra={"task_id": task.id})

        if repaired:
            logger.warning("Rescheduled %d orphaned tasks", len(repaired))
        return repaired
