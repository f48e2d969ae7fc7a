"""Daily time-budget allocation for scheduled tasks.

The allocator is a single sorted first-fit pass: predictable, stable ordering
is preferred over squeezing in one more task. Other strategies can be plugged
in through the ``BudgetAllocator`` protocol.
"""

import logging
from collections.abc import Iterable
from typing import Protocol

from homekeep.core.logging import span
from homekeep.domain.schedule import BudgetAllocation, ScheduledTask
from homekeep.domain.task import Frequency, parse_frequency


logger = logging.getLogger(__name__)

# Tie-break after urgency tier: more frequent chores first
FREQUENCY_PRIORITY: dict[Frequency, int] = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 2,
    Frequency.BIWEEKLY: 3,
    Frequency.SEMI_MONTHLY: 4,
    Frequency.MONTHLY: 5,
    Frequency.QUARTERLY: 6,
    Frequency.SEASONAL_SPRING: 7,
    Frequency.SEASONAL_SUMMER: 7,
    Frequency.SEASONAL_FALL: 7,
    Frequency.SEASONAL_WINTER: 7,
    Frequency.SEMI_ANNUAL: 8,
    Frequency.ANNUAL: 9,
}
UNKNOWN_FREQUENCY_PRIORITY = 10


def frequency_priority(frequency: str) -> int:
    """Return the rank of a frequency; unknown values rank last."""
    known = parse_frequency(frequency)
    if known is None:
        return UNKNOWN_FREQUENCY_PRIORITY
    return FREQUENCY_PRIORITY[known]


def sort_key(item: ScheduledTask) -> tuple[int, int, int]:
    """Composite ordering: urgency tier, then frequency priority, then duration."""
    return (item.tier.order, frequency_priority(item.task.frequency), item.minutes)


class BudgetAllocator(Protocol):
    """Strategy that splits scheduled tasks into budgeted and overflow lists."""

    def allocate(self, candidates: Iterable[ScheduledTask], budget_minutes: int) -> BudgetAllocation: ...


class GreedyBudgetAllocator:
    """Sorted first-fit allocator without backtracking."""

    def allocate(self, candidates: Iterable[ScheduledTask], budget_minutes: int) -> BudgetAllocation:
        with span("budget_allocator.allocate", budget_minutes=budget_minutes):
            open_items = [item for item in candidates if not item.completed_today]
            ordered = sorted(open_items, key=sort_key)

            result = BudgetAllocation()
            for item in ordered:
                if result.total_minutes + item.minutes <= budget_minutes:
                    result.budgeted.append(item)
                    result.total_minutes += item.minutes
                else:
                    result.overflow.append(item)

            if result.overdue_overflow_count:
                logger.warning(
                    "Overdue tasks exceeded the daily budget",
                    extra={"overdue_overflow": result.overdue_overflow_count, "budget_minutes": budget_minutes},
                )

            logger.debug(
                "Allocated tasks",
                extra={
                    "budgeted": len(result.budgeted),
                    "overflow": len(result.overflow),
                    "total_minutes": result.total_minutes,
                },
            )
            return result


default_allocator = GreedyBudgetAllocator()


def allocate(candidates: Iterable[ScheduledTask], budget_minutes: int) -> BudgetAllocation:
    """Fit candidates into ``budget_minutes`` using the greedy allocator."""
    return default_allocator.allocate(candidates, budget_minutes)
