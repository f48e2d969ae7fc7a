"""Occurrence domain models and enums."""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class OccurrenceStatus(StrEnum):
    """Lifecycle state of one scheduled occurrence."""

    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class Occurrence(BaseModel):
    """Occurrence data transfer object."""

    id: str = Field(..., description="Unique occurrence ID from database")
    task_id: str = Field(..., description="ID of the owning task")
    due_date: date = Field(..., description="Calendar date the occurrence is due")
    status: OccurrenceStatus = Field(default=OccurrenceStatus.PENDING, description="Current lifecycle state")
    completed_at: datetime | None = Field(default=None, description="Set only when status is completed")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")
