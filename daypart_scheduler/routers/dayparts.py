"""
Daypart router for effective definitions and schedule resolution.

Provides endpoints for:
- Listing the daypart definitions a store sees after scope resolution
- Resolving the effective schedule of a placement or a whole store
- Asking which dayparts are active right now, per placement
"""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from daypart_scheduler.core.clock import Clock
from daypart_scheduler.core.deps import get_clock
from daypart_scheduler.db.session import get_db
from daypart_scheduler.models.store import Store
from daypart_scheduler.schemas.daypart import (
    ActiveNowRequest,
    ActiveNowResponse,
    EffectiveDefinitionListResponse,
    EffectiveDefinitionResponse,
    ResolveRequest,
    ScheduleResponse,
)
from daypart_scheduler.services.daypart_schedule import DaypartScheduleService

router = APIRouter(tags=["dayparts"])


# ============ Helper Functions ============

def get_store_or_404(service: DaypartScheduleService, store_id: UUID) -> Store:
    store = service.get_store(store_id)
    if not store:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Store not found"
        )
    return store


# ============ Endpoints ============

@router.get("/stores/{store_id}/daypart-definitions", response_model=EffectiveDefinitionListResponse)
def list_effective_definitions(
    store_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Daypart definitions visible to a store.

    Store-level definitions replace concept-level ones with the same name,
    which in turn replace global ones.
    """
    service = DaypartScheduleService(db)
    store = get_store_or_404(service, store_id)
    definitions = service.effective_definitions(store)

    return EffectiveDefinitionListResponse(
        definitions=[EffectiveDefinitionResponse.from_definition(d) for d in definitions],
        total=len(definitions),
    )


@router.get("/stores/{store_id}/schedule", response_model=ScheduleResponse)
def get_store_schedule(
    store_id: UUID,
    db: Session = Depends(get_db),
):
    """Unified schedule for a store: base rows plus every placement's overrides."""
    service = DaypartScheduleService(db)
    store = get_store_or_404(service, store_id)
    return ScheduleResponse.from_result(service.resolve_store(store))


@router.post("/schedules/resolve", response_model=ScheduleResponse)
def resolve_schedule(
    request: ResolveRequest,
    db: Session = Depends(get_db),
):
    """
    Effective schedule for one placement.

    Base and override rows are both returned; overrides that match no
    daypart definition are listed under warnings.
    """
    service = DaypartScheduleService(db)
    placement = service.get_placement(request.placement_id)
    if not placement:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Placement not found"
        )
    return ScheduleResponse.from_result(service.resolve_placement(placement))


@router.post("/schedules/active-now", response_model=ActiveNowResponse)
def active_now(
    request: ActiveNowRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Which placements of a store have which daypart active at the given instant."""
    service = DaypartScheduleService(db, clock)
    store = get_store_or_404(service, request.store_id)

    at = request.at or clock.now()
    active = service.active_now(store, at)

    return ActiveNowResponse(
        store_id=store.id,
        at=at,
        active={daypart_id: sorted(ids, key=str) for daypart_id, ids in active.items()},
    )
