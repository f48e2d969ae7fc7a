"""HTTP endpoints for tasks, occurrences and today's view."""

import logging
from typing import NoReturn

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from homekeep.core.clock import system_clock
from homekeep.core.config import constants
from homekeep.core.errors import classify_error_with_response
from homekeep.core.logging import log_with_context
from homekeep.domain.create_models import TaskCreate
from homekeep.domain.occurrence import Occurrence
from homekeep.domain.schedule import TodayView, TransitionResult
from homekeep.domain.task import Task
from homekeep.services import dashboard_service, occurrence_state_machine, task_service


router = APIRouter(tags=["tasks"])
logger = logging.getLogger(__name__)


class TaskCreatedResponse(BaseModel):
    """Response body for task creation."""

    task: Task
    occurrences: list[Occurrence]


def _raise_http_error(error: Exception) -> NoReturn:
    response = classify_error_with_response(error)
    log_with_context(
        logger,
        "warning",
        "request_failed",
        code=response.code,
        status_code=response.status_code,
        error=str(error),
    )
    raise HTTPException(status_code=response.status_code, detail=response.model_dump(mode="json")) from error


@router.get("/tasks")
async def list_tasks() -> list[Task]:
    """List every task."""
    return await task_service.list_tasks()


@router.post("/tasks", status_code=constants.HTTP_CREATED)
async def create_task(payload: TaskCreate) -> TaskCreatedResponse:
    """Create a task and pre-populate its occurrences."""
    try:
        task, occurrences = await task_service.create_task(payload=payload, clock=system_clock)
    except (ValueError, RuntimeError) as e:
        _raise_http_error(e)
    return TaskCreatedResponse(task=task, occurrences=occurrences)


@router.get("/tasks/today")
async def get_today(
    budget_minutes: int | None = Query(
        default=None,
        ge=constants.MIN_BUDGET_MINUTES,
        le=constants.MAX_BUDGET_MINUTES,
    ),
    budget_enabled: bool | None = Query(default=None),
) -> TodayView:
    """Prioritized view of today's work with daily progress."""
    return await dashboard_service.get_today_view(
        clock=system_clock,
        budget_minutes=budget_minutes,
        budget_enabled=budget_enabled,
    )


@router.get("/tasks/{task_id}/occurrences")
async def list_task_occurrences(task_id: str) -> list[Occurrence]:
    """List every occurrence of a task, oldest due date first."""
    try:
        await task_service.get_task(task_id=task_id)
    except KeyError as e:
        _raise_http_error(e)
    return await task_service.list_occurrences(task_id=task_id)


@router.get("/occurrences/{occurrence_id}")
async def get_occurrence(occurrence_id: str) -> Occurrence:
    """Fetch one occurrence."""
    try:
        return await occurrence_state_machine.get_occurrence(occurrence_id=occurrence_id)
    except KeyError as e:
        _raise_http_error(e)


@router.post("/occurrences/{occurrence_id}/complete")
async def complete_occurrence(occurrence_id: str) -> TransitionResult:
    """Mark an occurrence done and schedule the next one."""
    try:
        return await task_service.complete_occurrence(occurrence_id=occurrence_id, clock=system_clock)
    except (KeyError, ValueError, RuntimeError) as e:
        _raise_http_error(e)


@router.post("/occurrences/{occurrence_id}/skip")
async def skip_occurrence(occurrence_id: str) -> TransitionResult:
    """Skip an occurrence and schedule the next one."""
    try:
        return await task_service.skip_occurrence(occurrence_id=occurrence_id, clock=system_clock)
    except (KeyError, ValueError, RuntimeError) as e:
        _raise_http_error(e)


@router.post("/maintenance/reschedule")
async def reschedule_orphaned_tasks() -> list[Occurrence]:
    """Schedule a next occurrence for every task that has none pending."""
    return await task_service.reschedule_orphaned_tasks(clock=system_clock)
