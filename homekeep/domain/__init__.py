"""Domain models and DTOs."""

from homekeep.domain.create_models import OccurrenceCreate, TaskCreate
from homekeep.domain.occurrence import Occurrence, OccurrenceStatus
from homekeep.domain.schedule import (
    BudgetAllocation,
    DailyProgress,
    ScheduledTask,
    TodayView,
    TransitionResult,
    UrgencyTier,
)
from homekeep.domain.task import Frequency, Task


__all__ = [
    "BudgetAllocation",
    "DailyProgress",
    "Frequency",
    "Occurrence",
    "OccurrenceCreate",
    "OccurrenceStatus",
    "ScheduledTask",
    "Task",
    "TaskCreate",
    "TodayView",
    "TransitionResult",
    "UrgencyTier",
]
