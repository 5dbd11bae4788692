"""
Staged change models: pending create/update/delete edits to schedule rows.

change_data is a tagged union over the two legal targets so that its shape is
validated before anything is applied.
"""
from datetime import time
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from daypart_scheduler.core.exceptions import WindowValidationError
from daypart_scheduler.core.time_window import TimeWindow, normalize_days, parse_time_of_day


class ChangeType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class TargetTable(str, Enum):
    SCHEDULE = "schedule"
    OVERRIDE = "override"


class WindowPatch(BaseModel):
    """Window and label fields shared by both patch shapes. None means "leave as is"."""
    days_of_week: Optional[List[int]] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    schedule_type: Optional[str] = None
    schedule_name: Optional[str] = None
    event_name: Optional[str] = None

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is None:
            return v
        return sorted(normalize_days(v))

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_time_of_day(v)
        return v

    @model_validator(mode="after")
    def validate_window(self):
        if self.start_time is not None and self.end_time is not None and self.start_time == self.end_time:
            raise WindowValidationError("start_time and end_time must differ; zero-length windows are not allowed")
        return self

    def has_full_window(self) -> bool:
        return None not in (self.days_of_week, self.start_time, self.end_time)

    def patch_values(self) -> Dict[str, Any]:
        """Fields to write onto the target row."""
        return self.model_dump(exclude_none=True, exclude={"target_table"})


class SchedulePatch(WindowPatch):
    """Patch for a base schedule row."""
    target_table: Literal["schedule"] = "schedule"
    daypart_id: Optional[UUID] = None


class OverridePatch(WindowPatch):
    """Patch for a placement override row."""
    target_table: Literal["override"] = "override"
    placement_id: Optional[UUID] = None
    daypart_id: Optional[UUID] = None
    daypart_name: Optional[str] = None


ChangeData = Annotated[Union[SchedulePatch, OverridePatch], Field(discriminator="target_table")]


class StagedChange(BaseModel):
    """A single pending edit."""
    change_type: ChangeType
    target_table: TargetTable
    target_id: Optional[UUID] = None  # required for update/delete, absent for create
    change_data: ChangeData
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def tag_change_data(cls, data: Any) -> Any:
        """Let callers omit the union tag inside change_data; it follows target_table."""
        if not isinstance(data, dict):
            return data
        table = data.get("target_table")
        if isinstance(table, TargetTable):
            table = table.value
        change_data = data.get("change_data")
        if change_data is None:
            change_data = {}
        if isinstance(change_data, dict) and "target_table" not in change_data and table is not None:
            data = {**data, "change_data": {**change_data, "target_table": table}}
        return data

    @model_validator(mode="after")
    def validate_target(self):
        if self.change_data.target_table != self.target_table.value:
            raise ValueError(
                f"change_data is shaped for {self.change_data.target_table!r} "
                f"but target_table is {self.target_table.value!r}"
            )

        if self.change_type == ChangeType.CREATE:
            if self.target_id is not None:
                raise ValueError("target_id must be absent for create")
            self._validate_create()
        elif self.target_id is None:
            raise ValueError(f"target_id is required for {self.change_type.value}")
        return self

    def _validate_create(self) -> None:
        data = self.change_data
        if not data.has_full_window():
            raise ValueError("create requires days_of_week, start_time and end_time")
        TimeWindow(frozenset(data.days_of_week), data.start_time, data.end_time)

        if isinstance(data, SchedulePatch):
            if data.daypart_id is None:
                raise ValueError("schedule create requires daypart_id")
        else:
            if data.placement_id is None:
                raise ValueError("override create requires placement_id")
            if data.daypart_id is None and not data.daypart_name:
                raise ValueError("override create requires daypart_id or daypart_name")

    @property
    def target_key(self):
        return (self.target_table, self.target_id)


class ChangeSummary(BaseModel):
    """Counts by change type, for display."""
    create: int = 0
    update: int = 0
    delete: int = 0
    total: int = 0
