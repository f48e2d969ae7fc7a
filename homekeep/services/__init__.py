from homekeep.services import (
    budget_allocator,
    dashboard_service,
    occurrence_state_machine,
    task_service,
    urgency_service,
)


__all__ = [
    "budget_allocator",
    "dashboard_service",
    "occurrence_state_machine",
    "task_service",
    "urgency_service",
]
