"""
Domain errors raised by the scheduling engine.

Routers translate these into HTTP responses; services let them propagate.
"""
from typing import Optional
from uuid import UUID


class DaypartError(Exception):
    """Base class for scheduling engine errors."""


class WindowValidationError(DaypartError, ValueError):
    """A time window or day set is malformed (zero-length, bad day value, empty days)."""


class StaleTargetError(DaypartError):
    """An update/delete (or a referenced row) no longer exists at apply time."""

    def __init__(self, target_table: str, target_id: Optional[UUID], message: Optional[str] = None):
        self.target_table = target_table
        self.target_id = target_id
        super().__init__(message or f"{target_table} row {target_id} no longer exists")


class DoubleApplyError(DaypartError):
    """A publish job was about to be applied a second time."""


class ResolutionCancelledError(DaypartError):
    """A resolution call was cancelled before it produced output."""


class EmptyLedgerError(DaypartError):
    """Publish was requested with no staged changes."""
