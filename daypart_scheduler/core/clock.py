"""Clock sources for everything that needs "now".

Production code uses :class:`SystemClock`; tests drive time explicitly with
:class:`FixedClock` so that window checks and the publish sweep are
deterministic.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol implemented by clock providers."""

    def now(self) -> datetime:
        """Return the current instant as a timezone-aware UTC datetime."""


class SystemClock:
    """Clock backed by the host's wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Deterministic clock used for tests.

    Time only moves when :meth:`set` or :meth:`advance` is called.
    """

    def __init__(self, start: datetime) -> None:
        self._current = ensure_utc(start)
        self._lock = Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._current

    def set(self, instant: datetime) -> None:
        with self._lock:
            self._current = ensure_utc(instant)

    def advance(self, delta: timedelta) -> datetime:
        """Advance the clock by ``delta`` (must be non-negative)."""
        if delta < timedelta(0):
            raise ValueError("FixedClock cannot move backwards")
        with self._lock:
            self._current = self._current + delta
            return self._current


def ensure_utc(instant: datetime) -> datetime:
    """Return ``instant`` as an aware UTC datetime; naive values are taken as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_storage(instant: datetime) -> datetime:
    """Convert an instant to the naive-UTC form stored in the database."""
    return ensure_utc(instant).replace(tzinfo=None)
