"""
Booking draft endpoints (the booking wizard's working state)
============================================================

POST   /api/v1/drafts                  -- start a draft
GET    /api/v1/drafts/{draft_id}       -- read it
PATCH  /api/v1/drafts/{draft_id}       -- partial update
DELETE /api/v1/drafts/{draft_id}       -- discard it
POST   /api/v1/drafts/{draft_id}/next  -- advance one step
POST   /api/v1/drafts/{draft_id}/prev  -- go back one step
POST   /api/v1/drafts/{draft_id}/reset -- back to the initial state
POST   /api/v1/drafts/{draft_id}/quote -- price the draft for every vehicle
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from fareservice.api.dependencies import get_draft_store, get_quote_service
from fareservice.api.middleware import limiter
from fareservice.api.schemas import (
    DraftQuoteResponse,
    DraftResponse,
    DraftUpdate,
    ErrorResponse,
    VehicleOptionResponse,
)
from fareservice.config import settings
from fareservice.domain.entities import BookingDraft, SelectedFare
from fareservice.domain.enums import ServiceType
from fareservice.domain.pricing import round_half_up
from fareservice.domain.quoting import FareQuoteService
from fareservice.infrastructure.drafts import DraftStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/drafts", tags=["drafts"])


def needs_route(draft: BookingDraft) -> bool:
    """True when the draft has no distance yet and is not a package rental."""
    is_package = draft.service_type is ServiceType.CAR_RENTAL and draft.package_id
    return draft.distance_km == 0 and not is_package


@router.post("", status_code=201, response_model=DraftResponse, summary="Start a draft")
@limiter.limit(settings.rate_limit)
async def create_draft(
    request: Request,
    store: DraftStore = Depends(get_draft_store),
):
    draft_id, draft = await store.create()
    return DraftResponse.from_draft(draft_id, draft)


@router.get("/{draft_id}", response_model=DraftResponse, summary="Read a draft")
@limiter.limit(settings.rate_limit)
async def get_draft(
    request: Request,
    draft_id: str,
    store: DraftStore = Depends(get_draft_store),
):
    return DraftResponse.from_draft(draft_id, await store.get(draft_id))


@router.patch(
    "/{draft_id}",
    response_model=DraftResponse,
    summary="Update a draft",
    description="Changing any pricing input clears the selected fare.",
)
@limiter.limit(settings.rate_limit)
async def update_draft(
    request: Request,
    draft_id: str,
    body: DraftUpdate,
    store: DraftStore = Depends(get_draft_store),
):
    draft = await store.get(draft_id)
    try:
        draft.update(**body.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    await store.save(draft_id, draft)
    return DraftResponse.from_draft(draft_id, draft)


@router.delete("/{draft_id}", status_code=204, summary="Discard a draft")
@limiter.limit(settings.rate_limit)
async def delete_draft(
    request: Request,
    draft_id: str,
    store: DraftStore = Depends(get_draft_store),
):
    await store.delete(draft_id)


@router.post("/{draft_id}/next", response_model=DraftResponse, summary="Next step")
@limiter.limit(settings.rate_limit)
async def next_step(
    request: Request,
    draft_id: str,
    store: DraftStore = Depends(get_draft_store),
):
    draft = await store.get(draft_id)
    draft.next_step()
    await store.save(draft_id, draft)
    return DraftResponse.from_draft(draft_id, draft)


@router.post("/{draft_id}/prev", response_model=DraftResponse, summary="Previous step")
@limiter.limit(settings.rate_limit)
async def prev_step(
    request: Request,
    draft_id: str,
    store: DraftStore = Depends(get_draft_store),
):
    draft = await store.get(draft_id)
    draft.prev_step()
    await store.save(draft_id, draft)
    return DraftResponse.from_draft(draft_id, draft)


@router.post("/{draft_id}/reset", response_model=DraftResponse, summary="Reset a draft")
@limiter.limit(settings.rate_limit)
async def reset_draft(
    request: Request,
    draft_id: str,
    store: DraftStore = Depends(get_draft_store),
):
    draft = await store.get(draft_id)
    draft.reset()
    await store.save(draft_id, draft)
    return DraftResponse.from_draft(draft_id, draft)


@router.post(
    "/{draft_id}/quote",
    response_model=DraftQuoteResponse,
    summary="Quote a draft",
    description=(
        "Resolves the route from the draft's coordinates when no distance is "
        "known yet, prices every vehicle option and, if the draft already "
        "names a vehicle, stores that vehicle's fare as the selected fare."
    ),
    responses={
        422: {"model": ErrorResponse, "description": "No route to price"},
        503: {"model": ErrorResponse, "description": "Route unavailable"},
    },
)
@limiter.limit(settings.rate_limit)
async def quote_draft(
    request: Request,
    draft_id: str,
    store: DraftStore = Depends(get_draft_store),
    service: FareQuoteService = Depends(get_quote_service),
):
    draft = await store.get(draft_id)

    if needs_route(draft):
        if draft.pickup is None or draft.dropoff is None:
            raise HTTPException(
                status_code=422,
                detail="Pickup and drop-off coordinates are required to quote",
            )
        # RouteUnavailableError propagates: no price is computed from a
        # placeholder distance.
        metrics = await service.resolve_route(draft.pickup, draft.dropoff)
        draft.update(
            distance_km=round_half_up(metrics.distance_km, "0.01"),
            duration_minutes=round_half_up(metrics.duration_minutes),
        )

    options = await service.quote_options(
        draft.service_type,
        distance_km=draft.distance_km,
        duration_minutes=draft.duration_minutes,
        round_trip=draft.is_round_trip,
        package_id=draft.package_id,
    )

    for option in options:
        if option.vehicle_type is draft.vehicle_type and option.available:
            draft.selected_fare = SelectedFare(
                option.vehicle_type, option.fare.total_fare
            )
    await store.save(draft_id, draft)
    logger.info(
        "Draft %s quoted: %d/%d vehicle options available",
        draft_id, sum(o.available for o in options), len(options),
    )

    return DraftQuoteResponse(
        draft=DraftResponse.from_draft(draft_id, draft),
        options=[VehicleOptionResponse.from_option(o) for o in options],
    )
