"""
Day-collision detection for staged schedules.

Two rows for the same daypart (and, for overrides, the same placement) that
share a weekday are reported so the operator can review them. Collisions are
advisory: overlapping windows are treated as a union when resolving.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional
from uuid import UUID

from daypart_scheduler.core.time_window import DAY_NAMES


@dataclass(frozen=True)
class DayCollision:
    daypart_id: UUID
    placement_id: Optional[UUID]
    conflicting_days: List[int]
    conflicting_ids: List[UUID]

    @property
    def message(self) -> str:
        names = ", ".join(DAY_NAMES[d] for d in self.conflicting_days)
        return f"This daypart already has a schedule for: {names}"


def find_day_collisions(
    existing: Iterable,
    daypart_id: UUID,
    days: Iterable[int],
    placement_id: Optional[UUID] = None,
    exclude_id: Optional[UUID] = None,
) -> Optional[DayCollision]:
    """
    Compare a proposed day set with existing rows of the same daypart.

    Args:
        existing: Schedule or override rows (anything with id, daypart_id,
                  days_of_week and, for overrides, placement_id)
        daypart_id: Daypart of the proposed row
        days: Weekdays of the proposed row
        placement_id: Set when the proposed row is an override
        exclude_id: Row being edited, which never collides with itself

    Returns:
        DayCollision, or None when no day is shared
    """
    selected = set(days)
    if not selected:
        return None

    conflicting_days = set()
    conflicting_ids = []
    for row in existing:
        if exclude_id is not None and row.id == exclude_id:
            continue
        if row.daypart_id != daypart_id:
            continue
        if placement_id is not None and getattr(row, "placement_id", None) != placement_id:
            continue
        shared = selected.intersection(row.days_of_week or ())
        if shared:
            conflicting_days.update(shared)
            conflicting_ids.append(row.id)

    if not conflicting_days:
        return None

    return DayCollision(
        daypart_id=daypart_id,
        placement_id=placement_id,
        conflicting_days=sorted(conflicting_days),
        conflicting_ids=conflicting_ids,
    )
