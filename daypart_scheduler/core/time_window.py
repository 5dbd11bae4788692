"""
Recurring weekly time windows for daypart schedules.

A window is a set of weekdays plus a start/end time of day. Windows whose end
is earlier than their start cross midnight: the part after midnight belongs to
the *previous* day's rule.

Example: A "Late Night" window for Monday 22:00-02:00 is active at 01:00 on
         Tuesday, because the rule that drives it lists Monday.

Days are numbered Sunday=0 ... Saturday=6.
"""
from dataclasses import dataclass
from datetime import datetime, time
from typing import FrozenSet, Iterable, Optional, Tuple, Union

import pytz

from daypart_scheduler.core.exceptions import WindowValidationError


DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def day_of_week(dt: datetime) -> int:
    """
    Convert a datetime to its weekday number with Sunday=0.

    Python's ``weekday()`` counts Monday=0, so it is shifted by one.

    Examples:
        >>> day_of_week(datetime(2024, 1, 7))   # a Sunday
        0
        >>> day_of_week(datetime(2024, 1, 8))   # a Monday
        1
    """
    return (dt.weekday() + 1) % 7


def parse_time_of_day(value: Union[str, time]) -> time:
    """
    Parse "HH:MM" or "HH:MM:SS" into a time object (seconds resolution).

    Raises:
        WindowValidationError: if the string is malformed or out of range
    """
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)

    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise WindowValidationError(f"Invalid time format: {value}. Expected HH:MM or HH:MM:SS.")
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        raise WindowValidationError(f"Invalid time format: {value}. Expected HH:MM or HH:MM:SS.")

    h, m = numbers[0], numbers[1]
    s = numbers[2] if len(numbers) == 3 else 0
    if not (0 <= h <= 23 and 0 <= m <= 59 and 0 <= s <= 59):
        raise WindowValidationError(
            f"Invalid time: {value}. Hours must be 0-23, minutes and seconds 0-59."
        )
    return time(h, m, s)


def format_time_of_day(t: time) -> str:
    """Format a time as HH:MM, or HH:MM:SS when seconds are set."""
    if t.second:
        return t.strftime("%H:%M:%S")
    return t.strftime("%H:%M")


def normalize_days(days: Iterable[int]) -> FrozenSet[int]:
    """Validate a day-of-week collection and return it as a frozenset."""
    result = set()
    for day in days:
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            raise WindowValidationError(f"Invalid day of week: {day!r}. Days are 0 (Sunday) to 6 (Saturday).")
        result.add(day)
    if not result:
        raise WindowValidationError("days_of_week must contain at least one day")
    return frozenset(result)


def to_store_local(instant: datetime, store_timezone: Optional[str] = None) -> datetime:
    """
    Convert an instant to store-local wall time.

    Args:
        instant: The instant to convert. Naive values are taken as already local.
        store_timezone: IANA timezone string (e.g., "America/Chicago")

    Returns:
        A naive datetime in the store's local time
    """
    if store_timezone is None or instant.tzinfo is None:
        return instant.replace(tzinfo=None)
    tz = pytz.timezone(store_timezone)
    return instant.astimezone(tz).replace(tzinfo=None)


@dataclass(frozen=True)
class TimeWindow:
    """A set of weekdays with a start/end time of day.

    The interval is half-open: ``[start_time, end_time)``. Zero-length
    windows are rejected at construction.
    """
    days_of_week: FrozenSet[int]
    start_time: time
    end_time: time

    def __post_init__(self):
        object.__setattr__(self, "days_of_week", normalize_days(self.days_of_week))
        object.__setattr__(self, "start_time", parse_time_of_day(self.start_time))
        object.__setattr__(self, "end_time", parse_time_of_day(self.end_time))
        if self.start_time == self.end_time:
            raise WindowValidationError(
                f"start_time and end_time are both {format_time_of_day(self.start_time)}; "
                f"zero-length windows are not allowed"
            )

    @property
    def crosses_midnight(self) -> bool:
        return self.start_time > self.end_time

    def contains(self, instant: datetime) -> bool:
        """
        Is the (local, naive or aware) instant inside this window?

        Only the instant's own weekday and wall-clock time are used; convert
        to store-local time first with :func:`to_store_local`.
        """
        return self.contains_local(day_of_week(instant), instant.time())

    def contains_local(self, day: int, time_of_day: time) -> bool:
        """
        Is (day, time_of_day) inside this window?

        Examples (window Monday 22:00-02:00):
            Monday 23:00  -> True   (before midnight, Monday's rule)
            Tuesday 01:00 -> True   (after midnight, still Monday's rule)
            Tuesday 03:00 -> False
            Sunday 23:00  -> False
        """
        tod = time_of_day.replace(microsecond=0, tzinfo=None)

        if not self.crosses_midnight:
            return day in self.days_of_week and self.start_time <= tod < self.end_time

        if tod >= self.start_time and day in self.days_of_week:
            return True
        # After midnight the window belongs to the previous day's rule
        if tod < self.end_time and (day - 1) % 7 in self.days_of_week:
            return True
        return False

    def as_tuple(self) -> Tuple[Tuple[int, ...], str, str]:
        return (
            tuple(sorted(self.days_of_week)),
            format_time_of_day(self.start_time),
            format_time_of_day(self.end_time),
        )
