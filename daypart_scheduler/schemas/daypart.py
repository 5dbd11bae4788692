"""
Daypart Pydantic schemas for API request/response models.
"""
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from daypart_scheduler.core.time_window import format_time_of_day
from daypart_scheduler.models.daypart import DefinitionScope
from daypart_scheduler.services.daypart_registry import EffectiveDefinition
from daypart_scheduler.services.schedule_resolver import (
    EffectiveScheduleRow,
    ResolutionResult,
    ScheduleSource,
    UnresolvableOverride,
)


class EffectiveDefinitionResponse(BaseModel):
    id: UUID
    name: str
    display_label: str
    color: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    sort_order: int
    source_level: DefinitionScope
    is_customized: bool

    @classmethod
    def from_definition(cls, definition: EffectiveDefinition) -> "EffectiveDefinitionResponse":
        return cls(**definition.__dict__)


class EffectiveDefinitionListResponse(BaseModel):
    definitions: List[EffectiveDefinitionResponse]
    total: int


class ScheduleRowResponse(BaseModel):
    """One row of an effective schedule."""
    id: UUID
    source: ScheduleSource
    daypart_id: UUID
    daypart_name: str
    display_label: str
    color: Optional[str] = None
    placement_id: Optional[UUID] = None
    days_of_week: List[int]
    start_time: str  # "HH:MM" or "HH:MM:SS"
    end_time: str
    crosses_midnight: bool
    schedule_type: Optional[str] = None
    schedule_name: Optional[str] = None
    event_name: Optional[str] = None
    found_by: Optional[str] = None

    @classmethod
    def from_row(cls, row: EffectiveScheduleRow) -> "ScheduleRowResponse":
        return cls(
            id=row.id,
            source=row.source,
            daypart_id=row.daypart_id,
            daypart_name=row.daypart_name,
            display_label=row.display_label,
            color=row.color,
            placement_id=row.placement_id,
            days_of_week=sorted(row.window.days_of_week),
            start_time=format_time_of_day(row.window.start_time),
            end_time=format_time_of_day(row.window.end_time),
            crosses_midnight=row.window.crosses_midnight,
            schedule_type=row.schedule_type,
            schedule_name=row.schedule_name,
            event_name=row.event_name,
            found_by=row.found_by,
        )


class UnresolvableOverrideResponse(BaseModel):
    override_id: UUID
    placement_id: UUID
    daypart_id: Optional[UUID] = None
    daypart_name: Optional[str] = None
    reason: str

    @classmethod
    def from_warning(cls, warning: UnresolvableOverride) -> "UnresolvableOverrideResponse":
        return cls(**warning.__dict__)


class ScheduleResponse(BaseModel):
    """Resolved schedule rows plus the overrides that had to be dropped."""
    rows: List[ScheduleRowResponse]
    warnings: List[UnresolvableOverrideResponse]
    total: int

    @classmethod
    def from_result(cls, result: ResolutionResult) -> "ScheduleResponse":
        return cls(
            rows=[ScheduleRowResponse.from_row(r) for r in result.rows],
            warnings=[UnresolvableOverrideResponse.from_warning(w) for w in result.warnings],
            total=len(result.rows),
        )


class ResolveRequest(BaseModel):
    placement_id: UUID


class ActiveNowRequest(BaseModel):
    store_id: UUID
    at: Optional[datetime] = Field(
        default=None,
        description=(
            "Instant to evaluate, defaults to now. A value without an offset is a "
            "wall-clock time in the store's own timezone."
        ),
    )


class ActiveNowResponse(BaseModel):
    store_id: UUID
    at: datetime
    active: Dict[UUID, List[UUID]]  # daypart_id -> placement ids
