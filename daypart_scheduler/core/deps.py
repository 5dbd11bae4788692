"""
Shared FastAPI dependencies.
"""
from daypart_scheduler.core.clock import Clock, SystemClock

_system_clock = SystemClock()


def get_clock() -> Clock:
    """Dependency that provides the "now" source; tests override it with a FixedClock."""
    return _system_clock
