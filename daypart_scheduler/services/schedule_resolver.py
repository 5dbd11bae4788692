"""
Schedule resolution: merges base schedules with placement overrides.

Two questions are answered here:

1. What does a placement's schedule look like? Base rows and override rows
   are returned side by side (a union), so the caller can show both.
2. Which dayparts are active right now, and where? An override row for a
   (placement, daypart) pair suppresses the base schedule for that pair even
   while none of its own windows is active. Overrides narrow inherited
   access and can switch it off entirely.

All functions here are pure reads over the rows they are given.
"""
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
from uuid import UUID

from daypart_scheduler.core.exceptions import ResolutionCancelledError
from daypart_scheduler.core.time_window import TimeWindow
from daypart_scheduler.models.daypart import DaypartSchedule, PlacementDaypartOverride
from daypart_scheduler.services.daypart_registry import EffectiveDefinition

logger = logging.getLogger(__name__)


class ScheduleSource(str, Enum):
    BASE = "base"
    OVERRIDE = "override"


@dataclass(frozen=True)
class EffectiveScheduleRow:
    """One schedule row in effect, with its daypart's display metadata."""
    id: UUID  # the base schedule or override row id
    source: ScheduleSource
    daypart_id: UUID
    daypart_name: str
    display_label: str
    color: Optional[str]
    sort_order: int
    window: TimeWindow
    placement_id: Optional[UUID] = None  # None for base rows
    schedule_type: Optional[str] = None
    schedule_name: Optional[str] = None
    event_name: Optional[str] = None
    found_by: Optional[str] = None  # "id" or "name" for override rows


@dataclass(frozen=True)
class UnresolvableOverride:
    """An override that was left out of the result."""
    override_id: UUID
    placement_id: UUID
    daypart_id: Optional[UUID]
    daypart_name: Optional[str]
    reason: str


@dataclass
class ResolutionResult:
    rows: List[EffectiveScheduleRow] = field(default_factory=list)
    warnings: List[UnresolvableOverride] = field(default_factory=list)


class DefinitionIndex:
    """Lookup of effective definitions by id and by lower-cased name."""

    def __init__(self, definitions: Iterable[EffectiveDefinition]):
        self.by_id: Dict[UUID, EffectiveDefinition] = {}
        self.by_name: Dict[str, EffectiveDefinition] = {}
        for definition in definitions:
            self.by_id[definition.id] = definition
            self.by_name.setdefault(definition.name.lower(), definition)

    def resolve_override(
        self, override: PlacementDaypartOverride
    ) -> Tuple[Optional[EffectiveDefinition], Optional[str]]:
        """
        Find the definition an override belongs to.

        The daypart id is tried first. Legacy rows that have no id, or whose id
        is not among the store's effective definitions, fall back to a
        case-insensitive match on daypart_name.
        """
        if override.daypart_id is not None and override.daypart_id in self.by_id:
            return self.by_id[override.daypart_id], "id"
        if override.daypart_name:
            definition = self.by_name.get(override.daypart_name.strip().lower())
            if definition is not None:
                return definition, "name"
        return None, None


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ResolutionCancelledError("Schedule resolution was cancelled")


def _unresolvable(override: PlacementDaypartOverride, reason: str) -> UnresolvableOverride:
    logger.warning(
        f"Dropping override {override.id} for placement {override.placement_id}: {reason} "
        f"(daypart_id={override.daypart_id}, daypart_name={override.daypart_name!r})"
    )
    return UnresolvableOverride(
        override_id=override.id,
        placement_id=override.placement_id,
        daypart_id=override.daypart_id,
        daypart_name=override.daypart_name,
        reason=reason,
    )


def _base_row(rule: DaypartSchedule, definition: EffectiveDefinition) -> EffectiveScheduleRow:
    return EffectiveScheduleRow(
        id=rule.id,
        source=ScheduleSource.BASE,
        daypart_id=definition.id,
        daypart_name=definition.name,
        display_label=definition.display_label,
        color=definition.color,
        sort_order=definition.sort_order,
        window=rule.window,
        schedule_type=rule.schedule_type,
        schedule_name=rule.schedule_name,
        event_name=rule.event_name,
    )


def _override_row(
    override: PlacementDaypartOverride, definition: EffectiveDefinition, found_by: str
) -> EffectiveScheduleRow:
    return EffectiveScheduleRow(
        id=override.id,
        source=ScheduleSource.OVERRIDE,
        daypart_id=definition.id,
        daypart_name=definition.name,
        display_label=definition.display_label,
        color=definition.color,
        sort_order=definition.sort_order,
        window=override.window,
        placement_id=override.placement_id,
        schedule_type=override.schedule_type,
        schedule_name=override.schedule_name,
        event_name=override.event_name,
        found_by=found_by,
    )


def _row_sort_key(row: EffectiveScheduleRow):
    return (
        row.sort_order,
        row.daypart_name,
        row.source != ScheduleSource.BASE,
        str(row.placement_id or ""),
        row.window.start_time,
        str(row.id),
    )


def _base_rows(
    index: DefinitionIndex,
    base_rules: Iterable[DaypartSchedule],
    cancel_event: Optional[threading.Event],
) -> List[EffectiveScheduleRow]:
    rows = []
    for rule in base_rules:
        _check_cancelled(cancel_event)
        definition = index.by_id.get(rule.daypart_id)
        if definition is None:
            # Rule for a daypart this store cannot see
            continue
        rows.append(_base_row(rule, definition))
    return rows


def resolve_effective_schedule(
    placement_id: UUID,
    definitions: Sequence[EffectiveDefinition],
    base_rules: Iterable[DaypartSchedule],
    overrides: Iterable[PlacementDaypartOverride],
    cancel_event: Optional[threading.Event] = None,
) -> ResolutionResult:
    """
    Build the schedule in effect for one placement.

    Base rows for every resolvable rule plus override rows for this
    placement. No precedence is applied here; see :func:`active_dayparts`.
    Overrides that match no definition are reported in ``warnings``.

    Raises:
        ResolutionCancelledError: if ``cancel_event`` is set before completion
    """
    index = DefinitionIndex(definitions)
    result = ResolutionResult(rows=_base_rows(index, base_rules, cancel_event))

    for override in overrides:
        _check_cancelled(cancel_event)
        if override.placement_id != placement_id:
            continue
        definition, found_by = index.resolve_override(override)
        if definition is None:
            result.warnings.append(_unresolvable(override, "no matching daypart definition"))
            continue
        result.rows.append(_override_row(override, definition, found_by))

    result.rows.sort(key=_row_sort_key)
    return result


def resolve_store_schedule(
    placement_ids: Iterable[UUID],
    definitions: Sequence[EffectiveDefinition],
    base_rules: Iterable[DaypartSchedule],
    overrides: Iterable[PlacementDaypartOverride],
    cancel_event: Optional[threading.Event] = None,
) -> ResolutionResult:
    """
    Build the unified schedule for a whole store: base rows once, plus the
    override rows of every placement in ``placement_ids``.

    Overrides for placements outside the store are reported as warnings,
    the same way as overrides with no matching definition.
    """
    known_placements = set(placement_ids)
    index = DefinitionIndex(definitions)
    result = ResolutionResult(rows=_base_rows(index, base_rules, cancel_event))

    for override in overrides:
        _check_cancelled(cancel_event)
        definition, found_by = index.resolve_override(override)
        if definition is None:
            result.warnings.append(_unresolvable(override, "no matching daypart definition"))
            continue
        if override.placement_id not in known_placements:
            result.warnings.append(_unresolvable(override, "placement is not part of this store"))
            continue
        result.rows.append(_override_row(override, definition, found_by))

    result.rows.sort(key=_row_sort_key)
    return result


def active_dayparts(
    placement_ids: Iterable[UUID],
    local_instant: datetime,
    definitions: Sequence[EffectiveDefinition],
    base_rules: Iterable[DaypartSchedule],
    overrides: Iterable[PlacementDaypartOverride],
    cancel_event: Optional[threading.Event] = None,
) -> Dict[UUID, Set[UUID]]:
    """
    Which placements have which daypart active at ``local_instant``.

    A (daypart, placement) pair is active when the placement has an active
    override for the daypart, or when it has no override row at all for
    that daypart and a base rule for it is active.

    Args:
        placement_ids: Placements of the store
        local_instant: Store-local wall time
        definitions: The store's effective definitions

    Returns:
        daypart_id -> set of placement ids; dayparts with no placements are left out
    """
    placements = list(dict.fromkeys(placement_ids))
    placement_set = set(placements)
    index = DefinitionIndex(definitions)

    active_base: Set[UUID] = set()
    for rule in base_rules:
        _check_cancelled(cancel_event)
        if rule.daypart_id in index.by_id and rule.window.contains(local_instant):
            active_base.add(rule.daypart_id)

    overridden: Dict[UUID, Set[UUID]] = defaultdict(set)
    active_override: Dict[UUID, Set[UUID]] = defaultdict(set)
    for override in overrides:
        _check_cancelled(cancel_event)
        if override.placement_id not in placement_set:
            continue
        definition, _ = index.resolve_override(override)
        if definition is None:
            _unresolvable(override, "no matching daypart definition")
            continue
        # Presence alone suppresses the base schedule for this pair
        overridden[override.placement_id].add(definition.id)
        if override.window.contains(local_instant):
            active_override[override.placement_id].add(definition.id)

    result: Dict[UUID, Set[UUID]] = defaultdict(set)
    for placement_id in placements:
        _check_cancelled(cancel_event)
        for daypart_id in active_override[placement_id]:
            result[daypart_id].add(placement_id)
        for daypart_id in active_base - overridden[placement_id]:
            result[daypart_id].add(placement_id)

    return {daypart_id: ids for daypart_id, ids in result.items() if ids}
