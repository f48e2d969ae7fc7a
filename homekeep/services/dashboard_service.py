"""Read path: prioritized view of today's tasks and daily progress."""

import logging
from datetime import date

from homekeep.core.clock import Clock, system_clock
from homekeep.core.config import settings
from homekeep.core.logging import span
from homekeep.core.recurrence import to_date
from homekeep.domain.occurrence import Occurrence, OccurrenceStatus
from homekeep.domain.schedule import DailyProgress, ScheduledTask, TodayView, UrgencyTier
from homekeep.domain.task import Frequency, Task
from homekeep.services import task_service
from homekeep.services.budget_allocator import BudgetAllocator, default_allocator, frequency_priority
from homekeep.services.urgency_service import classify


logger = logging.getLogger(__name__)


def completed_today_ids(occurrences: list[Occurrence], today: date) -> set[str]:
    """IDs of tasks with an occurrence completed on ``today``."""
    return {
        occurrence.task_id
        for occurrence in occurrences
        if occurrence.status == OccurrenceStatus.COMPLETED
        and occurrence.completed_at is not None
        and to_date(occurrence.completed_at) == today
    }


def build_scheduled_tasks(tasks: list[Task], occurrences: list[Occurrence], today: date) -> list[ScheduledTask]:
    """Pair each task with its earliest pending occurrence and urgency tier.

    A task counts as done for the current cycle when it was completed today and
    nothing is still pending on or before today.
    """
    earliest = task_service.earliest_pending_occurrences(occurrences)
    done_today = completed_today_ids(occurrences, today)

    scheduled = []
    for task in tasks:
        pending = earliest.get(task.id)
        due_date = pending.due_date if pending else None
        still_due = due_date is not None and due_date <= today
        scheduled.append(
            ScheduledTask(
                task=task,
                occurrence_id=pending.id if pending else None,
                due_date=due_date,
                tier=classify(task.frequency, due_date, today=today),
                completed_today=task.id in done_today and not still_due,
            )
        )
    return scheduled


def compute_daily_progress(tasks: list[Task], occurrences: list[Occurrence], today: date) -> DailyProgress:
    """Summarize today's completion progress.

    Relevant tasks are daily tasks, tasks with a pending occurrence due today
    or earlier, and tasks completed today. Completed tasks are the relevant ones
    with an occurrence completed today.
    """
    earliest = task_service.earliest_pending_occurrences(occurrences)
    done_today = completed_today_ids(occurrences, today)

    relevant = {
        task.id
        for task in tasks
        if task.frequency == Frequency.DAILY
        or (task.id in earliest and earliest[task.id].due_date <= today)
        or task.id in done_today
    }
    completed = relevant & done_today

    percent = int(len(completed) * 100 / len(relevant) + 0.5) if relevant else 0
    return DailyProgress(completed_count=len(completed), total_relevant=len(relevant), percent=percent)


def _get_ahead_key(item: ScheduledTask) -> tuple[date, int, int]:
    return (item.due_date or date.max, frequency_priority(item.task.frequency), item.minutes)


def build_today_view(
    tasks: list[Task],
    occurrences: list[Occurrence],
    *,
    today: date,
    budget_minutes: int,
    budget_enabled: bool = True,
    focus_count: int | None = None,
    allocator: BudgetAllocator = default_allocator,
) -> TodayView:
    """Build the prioritized view from already-loaded tasks and occurrences.

    Tasks in the overdue, urgent and primary tiers compete for the budget;
    not-yet-urgent tasks go straight to the get-ahead list. Overdue tasks that
    did not fit are reported separately instead of joining the get-ahead list.
    """
    scheduled = [item for item in build_scheduled_tasks(tasks, occurrences, today) if not item.completed_today]
    due = [item for item in scheduled if item.tier != UrgencyTier.GET_AHEAD]
    not_yet_due = [item for item in scheduled if item.tier == UrgencyTier.GET_AHEAD]

    allocation = allocator.allocate(due, budget_minutes)
    deferred = [item for item in allocation.overflow if item.tier != UrgencyTier.OVERDUE]

    return TodayView(
        focus_tasks=allocation.focus(focus_count or settings.focus_task_count),
        todays_tasks=allocation.budgeted,
        get_ahead_tasks=deferred + sorted(not_yet_due, key=_get_ahead_key),
        overdue_overflow=allocation.overdue_overflow,
        overdue_overflow_count=allocation.overdue_overflow_count,
        total_minutes=allocation.total_minutes,
        budget_minutes=budget_minutes,
        budget_enabled=budget_enabled,
        progress=compute_daily_progress(tasks, occurrences, today),
    )


async def get_today_view(
    *,
    clock: Clock = system_clock,
    budget_minutes: int | None = None,
    budget_enabled: bool | None = None,
    allocator: BudgetAllocator = default_allocator,
) -> TodayView:
    """Load tasks and occurrences from the store and build today's view.

    Args:
        clock: Source of "today"
        budget_minutes: Override of settings.daily_budget_minutes
        budget_enabled: Override of settings.budget_enabled; False means unlimited
        allocator: Allocation strategy

    Returns:
        The prioritized view including daily progress
    """
    with span("dashboard_service.get_today_view"):
        today = clock.today()
        enabled = settings.budget_enabled if budget_enabled is None else budget_enabled
        budget = settings.effective_budget(budget_minutes=budget_minutes, budget_enabled=enabled)

        tasks = await task_service.list_tasks()
        pending = await task_service.list_occurrences(status=OccurrenceStatus.PENDING)
        completed = await task_service.list_occurrences(status=OccurrenceStatus.COMPLETED, completed_since=today)

        view = build_today_view(
            tasks,
            pending + completed,
            today=today,
            budget_minutes=budget,
            budget_enabled=enabled,
            allocator=allocator,
        )

        logger.info(
            "Built today view",
            extra={
                "today": today.isoformat(),
                "focus": len(view.focus_tasks),
                "todays_tasks": len(view.todays_tasks),
                "get_ahead": len(view.get_ahead_tasks),
            },
        )
        return view
