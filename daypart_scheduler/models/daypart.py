"""
Daypart definitions, base schedules and placement overrides.

DaypartDefinition: Named time period ("Breakfast", "Lunch") scoped globally,
                   to a concept, or to a single store
DaypartSchedule: Store-wide base schedule for a daypart
PlacementDaypartOverride: Placement-specific schedule that replaces the base
                          schedule for that placement and daypart
"""
import enum
import uuid
from sqlalchemy import (
    Column, String, Integer, Text, Time, DateTime, JSON, ForeignKey, Uuid, func, Index, CheckConstraint,
)
from sqlalchemy.orm import relationship

from daypart_scheduler.core.time_window import TimeWindow
from daypart_scheduler.db.base import Base


class DefinitionScope(str, enum.Enum):
    """Where a daypart definition applies. Store is the most specific."""
    GLOBAL = "global"
    CONCEPT = "concept"
    STORE = "store"


class DaypartDefinition(Base):
    """
    Catalog entry for a named daypart.
    Neither store_id nor concept_id set means the definition is global.
    """
    __tablename__ = "daypart_definitions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)  # machine key, e.g. "breakfast"
    display_label = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(100), nullable=True)
    icon = Column(String(50), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    concept_id = Column(Uuid, nullable=True)
    store_id = Column(Uuid, ForeignKey("stores.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "store_id IS NULL OR concept_id IS NULL",
            name="ck_daypart_definitions_single_scope",
        ),
        Index('idx_daypart_definitions_name', 'name'),
    )

    @property
    def scope(self) -> DefinitionScope:
        if self.store_id is not None:
            return DefinitionScope.STORE
        if self.concept_id is not None:
            return DefinitionScope.CONCEPT
        return DefinitionScope.GLOBAL


class ScheduleWindowMixin:
    """Columns shared by base schedules and placement overrides."""

    days_of_week = Column(JSON, nullable=False)  # list of 0=Sunday .. 6=Saturday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    # Free-form labels, carried through untouched
    schedule_type = Column(String(50), nullable=True)
    schedule_name = Column(String(100), nullable=True)
    event_name = Column(String(100), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def window(self) -> TimeWindow:
        """The row's window; raises WindowValidationError if the row is malformed."""
        return TimeWindow(frozenset(self.days_of_week or ()), self.start_time, self.end_time)


class DaypartSchedule(ScheduleWindowMixin, Base):
    """Base (store-wide) schedule rule for a daypart."""
    __tablename__ = "daypart_schedules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    daypart_id = Column(Uuid, ForeignKey("daypart_definitions.id", ondelete="CASCADE"), nullable=False)
    version = Column(Integer, nullable=False, default=1)  # bumped on every applied update

    definition = relationship("DaypartDefinition")

    __table_args__ = (
        Index('idx_daypart_schedules_daypart', 'daypart_id'),
    )
    # UPDATE and DELETE check the version read earlier; a concurrent change raises StaleDataError
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}


class PlacementDaypartOverride(ScheduleWindowMixin, Base):
    """
    Placement-specific schedule for a daypart.

    daypart_name is a legacy fallback key used when daypart_id is missing;
    it is matched case-insensitively against definition names.
    """
    __tablename__ = "placement_daypart_overrides"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    placement_id = Column(Uuid, ForeignKey("placements.id", ondelete="CASCADE"), nullable=False)
    daypart_id = Column(Uuid, ForeignKey("daypart_definitions.id", ondelete="SET NULL"), nullable=True)
    daypart_name = Column(String(100), nullable=True)
    version = Column(Integer, nullable=False, default=1)  # bumped on every applied update

    placement = relationship("Placement")

    __table_args__ = (
        Index('idx_placement_overrides_placement_daypart', 'placement_id', 'daypart_id'),
    )
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}
