"""Urgency classification for task occurrences."""

from datetime import date

from homekeep.core.clock import Clock, system_clock
from homekeep.domain.schedule import UrgencyTier
from homekeep.domain.task import Frequency, parse_frequency


# Days before the due date at which a task escalates to URGENT
URGENCY_WINDOW_DAYS: dict[Frequency, int] = {
    Frequency.DAILY: 0,
    Frequency.WEEKLY: 0,
    Frequency.BIWEEKLY: 3,
    Frequency.SEMI_MONTHLY: 5,
    Frequency.MONTHLY: 7,
    Frequency.QUARTERLY: 10,
    Frequency.SEASONAL_SPRING: 14,
    Frequency.SEASONAL_SUMMER: 14,
    Frequency.SEASONAL_FALL: 14,
    Frequency.SEASONAL_WINTER: 14,
    Frequency.SEMI_ANNUAL: 14,
    Frequency.ANNUAL: 14,
}

# Tasks that are the day's must-do items when due today
_PRIMARY_FREQUENCIES = frozenset({Frequency.DAILY, Frequency.WEEKLY})


def urgency_window(frequency: str) -> int:
    """Return the escalation window for a frequency; unknown frequencies get 0."""
    known = parse_frequency(frequency)
    return URGENCY_WINDOW_DAYS.get(known, 0) if known else 0


def classify(
    frequency: str,
    due_date: date | None,
    *,
    today: date | None = None,
    clock: Clock = system_clock,
) -> UrgencyTier:
    """Classify how urgent a task is on a given day.

    Args:
        frequency: Task frequency
        due_date: Earliest pending due date, or None if nothing is scheduled
        today: Reference day; defaults to ``clock.today()``
        clock: Clock used when ``today`` is not given

    Returns:
        The urgency tier
    """
    if due_date is None:
        return UrgencyTier.GET_AHEAD

    reference = today or clock.today()
    days_until_due = (due_date - reference).days

    if days_until_due < 0:
        return UrgencyTier.OVERDUE

    if days_until_due == 0 and parse_frequency(frequency) in _PRIMARY_FREQUENCIES:
        return UrgencyTier.PRIMARY

    if days_until_due <= urgency_window(frequency):
        return UrgencyTier.URGENT

    return UrgencyTier.GET_AHEAD
