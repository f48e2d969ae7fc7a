"""Recurrence date calculation for household task scheduling.

Weekdays follow the storage convention 0=Sunday .. 6=Saturday, which differs
from ``date.weekday()`` (0=Monday).
"""

import logging
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from homekeep.core.config import settings
from homekeep.core.errors import UnsupportedFrequencyError
from homekeep.domain.task import Frequency, parse_frequency


logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7

# (month, day) of the solstice/equinox each seasonal task is pinned to
SEASON_START: dict[Frequency, tuple[int, int]] = {
    Frequency.SEASONAL_SPRING: (3, 20),
    Frequency.SEASONAL_SUMMER: (6, 21),
    Frequency.SEASONAL_FALL: (9, 22),
    Frequency.SEASONAL_WINTER: (12, 21),
}

_STEP: dict[Frequency, timedelta | relativedelta] = {
    Frequency.DAILY: timedelta(days=1),
    Frequency.WEEKLY: timedelta(days=7),
    Frequency.BIWEEKLY: timedelta(days=14),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.SEMI_MONTHLY: timedelta(days=15),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.SEMI_ANNUAL: relativedelta(months=6),
    Frequency.ANNUAL: relativedelta(years=1),
}


def to_date(value: date | datetime) -> date:
    """Strip the time of day from a date or datetime."""
    if isinstance(value, datetime):
        return value.date()
    return value


def sunday_weekday(day: date) -> int:
    """Return the weekday of ``day`` with 0=Sunday."""
    return day.isoweekday() % DAYS_PER_WEEK


def season_start_date(frequency: str, year: int) -> date:
    """Return the fixed solstice/equinox date for a seasonal frequency.

    Args:
        frequency: One of the seasonal_* frequencies
        year: Calendar year

    Raises:
        UnsupportedFrequencyError: If the frequency is not seasonal
    """
    known = parse_frequency(frequency)
    if known not in SEASON_START:
        raise UnsupportedFrequencyError(frequency)
    month, day = SEASON_START[known]
    return date(year, month, day)


def _resolve_frequency(frequency: str, *, strict: bool | None) -> Frequency | None:
    known = parse_frequency(frequency)
    if known is not None:
        return known

    if settings.strict_frequencies if strict is None else strict:
        raise UnsupportedFrequencyError(frequency)

    logger.warning("Unknown frequency, defaulting to tomorrow", extra={"frequency": frequency})
    return None


def next_occurrence(
    frequency: str,
    anchor: date | datetime,
    preferred_weekday: int | None = None,
    *,
    strict: bool | None = None,
) -> date:
    """Calculate the next due date strictly after the anchor.

    Args:
        frequency: Recurrence rule (a Frequency value)
        anchor: Date the task was last done or scheduled; time of day is ignored
        preferred_weekday: 0=Sunday .. 6=Saturday, honoured for weekly tasks only
        strict: Raise on unknown frequencies; defaults to settings.strict_frequencies

    Returns:
        Next due date

    Raises:
        UnsupportedFrequencyError: If the frequency is unknown and strict mode is on
    """
    base = to_date(anchor)
    known = _resolve_frequency(frequency, strict=strict)

    if known is None:
        return base + timedelta(days=1)

    if known in SEASON_START:
        return season_start_date(known, base.year + 1)

    if known == Frequency.WEEKLY and preferred_weekday is not None:
        days_ahead = (preferred_weekday - sunday_weekday(base)) % DAYS_PER_WEEK
        # Same weekday means a full week ahead, never today
        return base + timedelta(days=days_ahead or DAYS_PER_WEEK)

    return base + _STEP[known]


def _first_in_window(frequency: Frequency | None, start: date, preferred_weekday: int | None) -> date:
    if frequency in SEASON_START:
        season_date = season_start_date(frequency, start.year)
        if season_date < start:
            season_date = season_start_date(frequency, start.year + 1)
        return season_date

    if frequency == Frequency.WEEKLY and preferred_weekday is not None:
        return start + timedelta(days=(preferred_weekday - sunday_weekday(start)) % DAYS_PER_WEEK)

    return start


def occurrences_within_window(
    frequency: str,
    start: date | datetime,
    window_months: int = 12,
    preferred_weekday: int | None = None,
    *,
    strict: bool | None = None,
) -> list[date]:
    """List every due date from ``start`` up to ``start + window_months`` inclusive.

    Used at task creation to pre-populate occurrences in one pass. Seasonal
    tasks start at the next unexpired solstice/equinox date and weekly tasks
    with a preferred weekday at the first matching day on or after ``start``;
    every other frequency starts on ``start`` itself.

    Args:
        frequency: Recurrence rule
        start: First candidate date; time of day is ignored
        window_months: Length of the window in calendar months
        preferred_weekday: 0=Sunday .. 6=Saturday, honoured for weekly tasks only
        strict: Raise on unknown frequencies; defaults to settings.strict_frequencies

    Returns:
        Ascending list of due dates
    """
    begin = to_date(start)
    end = begin + relativedelta(months=window_months)
    known = _resolve_frequency(frequency, strict=strict)

    dates: list[date] = []
    current = _first_in_window(known, begin, preferred_weekday)
    while current <= end:
        dates.append(current)
        if known is None:
            current += timedelta(days=1)
        else:
            current = next_occurrence(known, current, preferred_weekday)

    return dates
