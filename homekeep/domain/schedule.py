"""Derived scheduling models: urgency tiers, allocations and dashboard views."""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field

from homekeep.domain.occurrence import Occurrence
from homekeep.domain.task import Task


class UrgencyTier(StrEnum):
    """Derived urgency classification, recomputed on every read."""

    OVERDUE = "overdue"
    URGENT = "urgent"
    PRIMARY = "primary"
    GET_AHEAD = "get_ahead"

    @property
    def order(self) -> int:
        """Sort rank; lower sorts first."""
        return TIER_ORDER[self]


TIER_ORDER: dict[UrgencyTier, int] = {
    UrgencyTier.OVERDUE: 0,
    UrgencyTier.URGENT: 1,
    UrgencyTier.PRIMARY: 2,
    UrgencyTier.GET_AHEAD: 3,
}


class ScheduledTask(BaseModel):
    """A task paired with its current due date and tier, as fed to the allocator."""

    task: Task
    occurrence_id: str | None = Field(default=None, description="Pending occurrence that sets the due date")
    due_date: date | None = Field(default=None, description="Earliest pending due date, if any")
    tier: UrgencyTier
    completed_today: bool = Field(default=False, description="Already done for the current cycle")

    @property
    def minutes(self) -> int:
        return self.task.budget_minutes


class BudgetAllocation(BaseModel):
    """Result of fitting scheduled tasks into a daily time budget."""

    budgeted: list[ScheduledTask] = Field(default_factory=list)
    overflow: list[ScheduledTask] = Field(default_factory=list)
    total_minutes: int = 0

    @property
    def overdue_overflow(self) -> list[ScheduledTask]:
        """Overdue tasks pushed out purely by budget exhaustion."""
        return [item for item in self.overflow if item.tier == UrgencyTier.OVERDUE]

    @property
    def overdue_overflow_count(self) -> int:
        return len(self.overdue_overflow)

    def focus(self, count: int) -> list[ScheduledTask]:
        """First ``count`` budgeted tasks, designated for prominent display."""
        return self.budgeted[:count]


class DailyProgress(BaseModel):
    """Completion progress for the current day."""

    completed_count: int = 0
    total_relevant: int = 0
    percent: int = 0


class TodayView(BaseModel):
    """Prioritized view of the day's work."""

    focus_tasks: list[ScheduledTask] = Field(default_factory=list)
    todays_tasks: list[ScheduledTask] = Field(default_factory=list)
    get_ahead_tasks: list[ScheduledTask] = Field(default_factory=list)
    overdue_overflow: list[ScheduledTask] = Field(default_factory=list)
    overdue_overflow_count: int = 0
    total_minutes: int = 0
    budget_minutes: int = 0
    budget_enabled: bool = True
    progress: DailyProgress = Field(default_factory=DailyProgress)


class TransitionResult(BaseModel):
    """Outcome of closing an occurrence (completed or skipped).

    ``scheduling_error`` is set when the occurrence was closed but the next
    occurrence could not be scheduled.
    """

    occurrence: Occurrence
    next_occurrence: Occurrence | None = None
    scheduling_error: str | None = None
