"""Task domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field, computed_field

from homekeep.core.config import constants


class Frequency(StrEnum):
    """Recurrence rule of a household task."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    SEMI_MONTHLY = "semi_monthly"
    QUARTERLY = "quarterly"
    SEASONAL_SPRING = "seasonal_spring"
    SEASONAL_SUMMER = "seasonal_summer"
    SEASONAL_FALL = "seasonal_fall"
    SEASONAL_WINTER = "seasonal_winter"
    SEMI_ANNUAL = "semi_annual"
    ANNUAL = "annual"


FREQUENCY_LABELS: dict[Frequency, str] = {
    Frequency.DAILY: "Daily",
    Frequency.WEEKLY: "Weekly",
    Frequency.BIWEEKLY: "Every Other Week",
    Frequency.MONTHLY: "Monthly",
    Frequency.SEMI_MONTHLY: "Semi-Monthly",
    Frequency.QUARTERLY: "Quarterly",
    Frequency.SEASONAL_SPRING: "Spring",
    Frequency.SEASONAL_SUMMER: "Summer",
    Frequency.SEASONAL_FALL: "Fall",
    Frequency.SEASONAL_WINTER: "Winter",
    Frequency.SEMI_ANNUAL: "Semi-Annual",
    Frequency.ANNUAL: "Annual",
}


def parse_frequency(value: str) -> Frequency | None:
    """Return the matching Frequency, or None for unknown values."""
    try:
        return Frequency(value)
    except ValueError:
        return None


class Task(BaseModel):
    """Task data transfer object.

    ``frequency`` stays a plain string so that records written by older clients
    with values outside ``Frequency`` can still be read and ranked.
    """

    id: str = Field(..., description="Unique task ID from database")
    title: str = Field(default="", description="Task title (e.g., 'Clean gutters')")
    frequency: str = Field(..., description="Recurrence rule, normally a Frequency value")
    estimated_minutes: int | None = Field(default=None, description="Estimated duration in minutes")
    preferred_weekday: int | None = Field(
        default=None,
        description="Preferred weekday for weekly tasks (0=Sunday .. 6=Saturday)",
    )
    room: str | None = Field(default=None, description="Where in the house the task happens")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")

    @property
    def budget_minutes(self) -> int:
        """Duration charged against the daily budget."""
        if self.estimated_minutes is None or self.estimated_minutes <= 0:
            return constants.DEFAULT_TASK_MINUTES
        return self.estimated_minutes

    @computed_field
    @property
    def label(self) -> str:
        """Display name of the frequency."""
        known = parse_frequency(self.frequency)
        return FREQUENCY_LABELS[known] if known else self.frequency
