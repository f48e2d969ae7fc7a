"""Configuration management for homekeep."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings read from the environment or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/homekeep.db", description="Path to the SQLite database file")

    # Observability
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Time Budget Configuration
    daily_budget_minutes: int = Field(
        default=75,
        ge=30,
        le=180,
        description="Minutes of task time surfaced as today's work",
    )
    budget_enabled: bool = Field(
        default=True, description="When false, every due task is shown regardless of time"
    )
    focus_task_count: int = Field(default=3, ge=1, le=4, description="Number of budgeted tasks shown as focus")

    # Scheduling Configuration
    occurrence_window_months: int = Field(
        default=12, ge=1, description="Months of occurrences pre-populated when a task is created"
    )
    strict_frequencies: bool = Field(
        default=False,
        description="Raise on unknown frequencies instead of defaulting to tomorrow",
    )

    def effective_budget(self, *, budget_minutes: int | None = None, budget_enabled: bool | None = None) -> int:
        """Resolve the budget to pass to the allocator.

        Args:
            budget_minutes: Per-request override of the daily budget
            budget_enabled: Per-request override of the budget toggle

        Returns:
            Budget in minutes; an effectively unbounded value when the budget is disabled
        """
        enabled = self.budget_enabled if budget_enabled is None else budget_enabled
        if not enabled:
            return constants.UNLIMITED_BUDGET_MINUTES
        return self.daily_budget_minutes if budget_minutes is None else budget_minutes


# Engine defaults
class Constants:
    """Fixed values shared across modules."""

    # Budgeting
    DEFAULT_TASK_MINUTES: int = 10  # Used when a task has no estimate
    MIN_BUDGET_MINUTES: int = 30
    MAX_BUDGET_MINUTES: int = 180
    UNLIMITED_BUDGET_MINUTES: int = 10**9

    # HTTP status codes
    HTTP_OK: int = 200
    HTTP_CREATED: int = 201
    HTTP_NOT_FOUND: int = 404
    HTTP_CONFLICT: int = 409
    HTTP_UNPROCESSABLE: int = 422
    HTTP_SERVER_ERROR: int = 500

    # Pagination
    DEFAULT_PER_PAGE_LIMIT: int = 200  # Page size used when walking whole collections


def get_settings() -> Settings:
    """Build the settings object from the current environment."""
    return Settings()


# Module-level singletons
settings = get_settings()
constants = Constants()
