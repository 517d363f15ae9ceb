"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- liveness plus the pricing knobs in effect
"""

from fastapi import APIRouter

from fareservice.api.schemas import HealthResponse
from fareservice.config import settings

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse(
        route_provider=settings.route_provider,
        advance_payment_percent=settings.advance_payment_percent,
        rental_included_km_offset=settings.rental_included_km_offset,
    )
