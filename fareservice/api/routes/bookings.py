"""
Booking endpoints
=================

POST  /api/v1/bookings                      -- confirm a draft (201)
GET   /api/v1/bookings?user_id=...          -- trip history, newest first
GET   /api/v1/bookings/{booking_id}         -- booking detail
PATCH /api/v1/bookings/{booking_id}/cancel  -- cancel a booking
PATCH /api/v1/bookings/{booking_id}/status  -- trip tracking transition

The fare is always recomputed on the server from the draft's inputs; the
price the client saw is never trusted.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fareservice.api.dependencies import get_db, get_draft_store, get_quote_service
from fareservice.api.middleware import limiter
from fareservice.api.routes.drafts import needs_route
from fareservice.api.schemas import (
    BookingCreate,
    BookingResponse,
    BookingStatusUpdate,
    ErrorResponse,
)
from fareservice.config import settings
from fareservice.domain.entities import check_transition
from fareservice.domain.enums import BookingStatus
from fareservice.domain.exceptions import BookingNotFoundError
from fareservice.domain.pricing import advance_payment
from fareservice.domain.quoting import FareQuoteService
from fareservice.infrastructure.drafts import DraftStore
from fareservice.infrastructure.repositories import BookingRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "",
    status_code=201,
    response_model=BookingResponse,
    summary="Confirm a booking from a draft",
    responses={
        404: {"model": ErrorResponse, "description": "Draft or pricing not found"},
        422: {"model": ErrorResponse, "description": "Draft incomplete"},
    },
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
    store: DraftStore = Depends(get_draft_store),
    service: FareQuoteService = Depends(get_quote_service),
):
    repo = BookingRepository(db)

    # ── Idempotency guard ─────────────────────────────────────────
    if body.idempotency_key:
        existing = await repo.get_by_idempotency_key(body.idempotency_key)
        if existing:
            return existing

    draft = await store.get(body.draft_id)
    if draft.vehicle_type is None or not draft.pickup_location:
        raise HTTPException(
            status_code=422,
            detail="Draft needs a pickup location and a vehicle type",
        )
    if needs_route(draft):
        raise HTTPException(
            status_code=422, detail="Draft has no resolved route; quote it first"
        )

    fare = await service.quote(
        draft.service_type,
        draft.vehicle_type,
        distance_km=draft.distance_km,
        duration_minutes=draft.duration_minutes,
        round_trip=draft.is_round_trip,
        package_id=draft.package_id,
    )
    advance, remaining = advance_payment(
        fare.total_fare, settings.advance_payment_percent
    )

    booking = await repo.create_booking(
        user_id=body.user_id,
        service_type=draft.service_type,
        vehicle_type=draft.vehicle_type,
        package_id=draft.package_id,
        pickup_location=draft.pickup_location,
        dropoff_location=draft.dropoff_location or None,
        pickup_lat=draft.pickup.latitude if draft.pickup else None,
        pickup_lng=draft.pickup.longitude if draft.pickup else None,
        dropoff_lat=draft.dropoff.latitude if draft.dropoff else None,
        dropoff_lng=draft.dropoff.longitude if draft.dropoff else None,
        scheduled_at=draft.scheduled_at,
        return_at=draft.return_at,
        is_round_trip=draft.is_round_trip,
        passengers=draft.passengers,
        special_instructions=draft.special_instructions or None,
        distance_km=draft.distance_km,
        duration_minutes=draft.duration_minutes,
        total_fare=fare.total_fare,
        advance_amount=advance,
        remaining_amount=remaining,
        idempotency_key=body.idempotency_key,
    )

    draft.reset()
    await store.save(body.draft_id, draft)
    logger.info(
        "Booking %s confirmed for user %s: total=%d advance=%d",
        booking.id, body.user_id, fare.total_fare, advance,
    )
    return booking


@router.get(
    "",
    response_model=list[BookingResponse],
    summary="Trip history for a user",
)
@limiter.limit(settings.rate_limit)
async def list_bookings(
    request: Request,
    user_id: str,
    status: Optional[BookingStatus] = None,
    db: AsyncSession = Depends(get_db),
):
    return await BookingRepository(db).list_for_user(user_id, status)


async def _get_or_404(repo: BookingRepository, booking_id: int):
    booking = await repo.get_by_id(booking_id)
    if not booking:
        raise BookingNotFoundError(f"Booking {booking_id} not found")
    return booking


@router.get("/{booking_id}", response_model=BookingResponse, summary="Get a booking")
@limiter.limit(settings.rate_limit)
async def get_booking(
    request: Request,
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await _get_or_404(BookingRepository(db), booking_id)


@router.patch(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking",
    description="Only pending or accepted bookings can be cancelled.",
)
@limiter.limit(settings.rate_limit)
async def cancel_booking(
    request: Request,
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    booking = await _get_or_404(BookingRepository(db), booking_id)
    check_transition(booking.status, BookingStatus.CANCELLED)
    booking.status = BookingStatus.CANCELLED
    return booking


@router.patch(
    "/{booking_id}/status",
    response_model=BookingResponse,
    summary="Move a booking along its lifecycle",
)
@limiter.limit(settings.rate_limit)
async def update_status(
    request: Request,
    booking_id: int,
    body: BookingStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    booking = await _get_or_404(BookingRepository(db), booking_id)
    check_transition(booking.status, body.status)
    booking.status = body.status
    logger.info("Booking %s -> %s", booking_id, body.status.value)
    return booking
