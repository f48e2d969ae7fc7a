"""Injectable wall-clock source for date-dependent scheduling logic."""

from datetime import date, datetime, time
from typing import Protocol


class Clock(Protocol):
    """Provides the current local date and time."""

    def today(self) -> date: ...

    def now(self) -> datetime: ...


class SystemClock:
    """Clock backed by the host's local wall-clock time."""

    def today(self) -> date:
        return datetime.now().date()

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    """Clock pinned to a given moment, for tests and replays."""

    def __init__(self, moment: date | datetime) -> None:
        if not isinstance(moment, datetime):
            moment = datetime.combine(moment, time(hour=12))
        self._moment = moment

    def today(self) -> date:
        return self._moment.date()

    def now(self) -> datetime:
        return self._moment


system_clock = SystemClock()
