"""
SQLAlchemy models for the daypart scheduler.
"""
# Stores
from daypart_scheduler.models.store import Store, Placement

# Dayparts
from daypart_scheduler.models.daypart import (
    DefinitionScope,
    DaypartDefinition,
    DaypartSchedule,
    PlacementDaypartOverride,
)

# Publishing
from daypart_scheduler.models.publish_job import JobStatus, PublishJob


__all__ = [
    # Stores
    "Store",
    "Placement",
    # Dayparts
    "DefinitionScope",
    "DaypartDefinition",
    "DaypartSchedule",
    "PlacementDaypartOverride",
    # Publishing
    "JobStatus",
    "PublishJob",
]
