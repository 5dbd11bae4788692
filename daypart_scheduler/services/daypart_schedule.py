import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Set
from uuid import UUID

import pytz

from sqlalchemy import select
from sqlalchemy.orm import Session

from daypart_scheduler.core.clock import Clock, SystemClock
from daypart_scheduler.core.config import get_settings
from daypart_scheduler.core.time_window import to_store_local
from daypart_scheduler.models.daypart import DaypartSchedule, PlacementDaypartOverride
from daypart_scheduler.models.store import Placement, Store
from daypart_scheduler.schemas.staged_change import ChangeType, OverridePatch, StagedChange, TargetTable
from daypart_scheduler.services.collisions import DayCollision, find_day_collisions
from daypart_scheduler.services.daypart_registry import DaypartRegistry, EffectiveDefinition
from daypart_scheduler.services.schedule_resolver import (
    ResolutionResult,
    active_dayparts,
    resolve_effective_schedule,
    resolve_store_schedule,
)

logger = logging.getLogger(__name__)


class DaypartScheduleService:
    """
    Loads definitions, base schedules and overrides for a store and hands
    them to the pure resolver functions.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.registry = DaypartRegistry(db)

    # ============ Reads ============

    def get_store(self, store_id: UUID) -> Optional[Store]:
        return self.db.get(Store, store_id)

    def get_placement(self, placement_id: UUID) -> Optional[Placement]:
        return self.db.get(Placement, placement_id)

    def placement_ids(self, store_id: UUID) -> List[UUID]:
        stmt = select(Placement.id).where(Placement.store_id == store_id).order_by(Placement.name, Placement.id)
        return list(self.db.execute(stmt).scalars().all())

    def load_base_rules(self, daypart_ids: Optional[List[UUID]] = None) -> List[DaypartSchedule]:
        """Base schedules are store-wide; narrowing by daypart only skips rows the resolver would drop."""
        stmt = select(DaypartSchedule)
        if daypart_ids is not None:
            stmt = stmt.where(DaypartSchedule.daypart_id.in_(daypart_ids))
        return list(self.db.execute(stmt).scalars().all())

    def load_overrides(self, placement_ids: List[UUID]) -> List[PlacementDaypartOverride]:
        if not placement_ids:
            return []
        stmt = select(PlacementDaypartOverride).where(PlacementDaypartOverride.placement_id.in_(placement_ids))
        return list(self.db.execute(stmt).scalars().all())

    def effective_definitions(self, store: Store) -> List[EffectiveDefinition]:
        return self.registry.for_store(store)

    # ============ Resolution ============

    def resolve_placement(
        self, placement: Placement, cancel_event: Optional[threading.Event] = None
    ) -> ResolutionResult:
        definitions = self.effective_definitions(placement.store)
        return resolve_effective_schedule(
            placement.id,
            definitions,
            self.load_base_rules([d.id for d in definitions]),
            self.load_overrides([placement.id]),
            cancel_event=cancel_event,
        )

    def resolve_store(self, store: Store, cancel_event: Optional[threading.Event] = None) -> ResolutionResult:
        definitions = self.effective_definitions(store)
        placement_ids = self.placement_ids(store.id)
        return resolve_store_schedule(
            placement_ids,
            definitions,
            self.load_base_rules([d.id for d in definitions]),
            self.load_overrides(placement_ids),
            cancel_event=cancel_event,
        )

    def active_now(
        self,
        store: Store,
        at: Optional[datetime] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[UUID, Set[UUID]]:
        """
        Dayparts active for each placement of the store at ``at`` (default: now).

        Aware instants are converted to the store's timezone; naive instants
        are taken as store-local already.
        """
        instant = at if at is not None else self.clock.now()
        local_instant = to_store_local(instant, self.store_timezone(store))

        definitions = self.effective_definitions(store)
        placement_ids = self.placement_ids(store.id)
        return active_dayparts(
            placement_ids,
            local_instant,
            definitions,
            self.load_base_rules([d.id for d in definitions]),
            self.load_overrides(placement_ids),
            cancel_event=cancel_event,
        )

    def store_timezone(self, store: Store) -> str:
        """The store's IANA timezone, or the configured default when it is unset or unknown."""
        default = get_settings().DEFAULT_STORE_TIMEZONE
        if not store.timezone:
            return default
        try:
            pytz.timezone(store.timezone)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Store {store.id} has unknown timezone {store.timezone!r}, using {default}")
            return default
        return store.timezone

    # ============ Staging helpers ============

    def collisions_for(self, change: StagedChange) -> Optional[DayCollision]:
        """
        Check a staged create/update against existing rows of the same daypart.

        Updates are merged with the stored row first; deletes and changes to
        rows that no longer exist never collide.
        """
        if change.change_type == ChangeType.DELETE:
            return None

        data = change.change_data
        is_override = change.target_table == TargetTable.OVERRIDE
        model = PlacementDaypartOverride if is_override else DaypartSchedule

        daypart_id = data.daypart_id
        days = data.days_of_week
        placement_id = data.placement_id if isinstance(data, OverridePatch) else None

        if change.change_type == ChangeType.UPDATE:
            current = self.db.get(model, change.target_id)
            if current is None:
                return None
            daypart_id = daypart_id or current.daypart_id
            days = days if days is not None else current.days_of_week
            if is_override:
                placement_id = placement_id or current.placement_id

        if daypart_id is None or not days:
            return None

        stmt = select(model).where(model.daypart_id == daypart_id)
        if is_override:
            stmt = stmt.where(PlacementDaypartOverride.placement_id == placement_id)
        existing = self.db.execute(stmt).scalars().all()

        return find_day_collisions(
            existing,
            daypart_id,
            days,
            placement_id=placement_id,
            exclude_id=change.target_id,
        )
