"""Pydantic models for creating records in database."""

from datetime import date

from pydantic import BaseModel, Field, field_validator

from homekeep.domain.occurrence import OccurrenceStatus
from homekeep.domain.task import Frequency


MAX_WEEKDAY = 6


class TaskCreate(BaseModel):
    """Pydantic model for creating a task record."""

    title: str = Field(..., min_length=1, description="Task title")
    frequency: Frequency = Field(..., description="Recurrence rule")
    estimated_minutes: int | None = Field(default=None, description="Estimated duration in minutes")
    preferred_weekday: int | None = Field(default=None, description="0=Sunday .. 6=Saturday, weekly tasks only")
    room: str | None = Field(default=None, description="Where in the house the task happens")

    @field_validator("estimated_minutes")
    @classmethod
    def validate_estimate_positive(cls, v: int | None) -> int | None:
        """Reject zero or negative durations."""
        if v is not None and v <= 0:
            msg = "Estimated minutes must be a positive integer"
            raise ValueError(msg)
        return v

    @field_validator("preferred_weekday")
    @classmethod
    def validate_weekday_range(cls, v: int | None) -> int | None:
        """Validate weekday is within 0 (Sunday) to 6 (Saturday)."""
        if v is not None and not 0 <= v <= MAX_WEEKDAY:
            msg = "Preferred weekday must be between 0 (Sunday) and 6 (Saturday)"
            raise ValueError(msg)
        return v


class OccurrenceCreate(BaseModel):
    """Pydantic model for creating an occurrence record."""

    task_id: str = Field(..., description="ID of the owning task")
    due_date: date = Field(..., description="Calendar date the occurrence is due")
    status: OccurrenceStatus = Field(default=OccurrenceStatus.PENDING, description="Initial state")

    def to_record(self) -> dict[str, str]:
        """Serialize for db_client.create_record."""
        return {
            "task_id": self.task_id,
            "due_date": self.due_date.isoformat(),
            "status": self.status.value,
        }
