"""
Pricing catalog endpoints
=========================

GET    /api/v1/pricing/rules           -- list rate cards
POST   /api/v1/pricing/rules           -- add a rate card
DELETE /api/v1/pricing/rules/{rule_id} -- deactivate a rate card
GET    /api/v1/pricing/packages        -- list active rental packages
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fareservice.api.dependencies import get_db
from fareservice.api.middleware import limiter
from fareservice.api.schemas import (
    PricingRuleCreate,
    PricingRuleResponse,
    RentalPackageResponse,
)
from fareservice.config import settings
from fareservice.domain.enums import ServiceType, VehicleType
from fareservice.infrastructure.models import PricingRuleModel
from fareservice.infrastructure.repositories import (
    PricingRuleRepository,
    RentalPackageRepository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.get(
    "/rules",
    response_model=list[PricingRuleResponse],
    summary="List pricing rules",
)
@limiter.limit(settings.rate_limit)
async def list_rules(
    request: Request,
    service_type: Optional[ServiceType] = None,
    vehicle_type: Optional[VehicleType] = None,
    active_only: bool = False,
    db: AsyncSession = Depends(get_db),
):
    return await PricingRuleRepository(db).list_rules(
        service_type, vehicle_type, active_only=active_only
    )


@router.post(
    "/rules",
    status_code=201,
    response_model=PricingRuleResponse,
    summary="Create a pricing rule",
    description=(
        "Older active rules for the same pair stay in place; lookups pick "
        "the one with the latest effective_from."
    ),
)
@limiter.limit(settings.rate_limit)
async def create_rule(
    request: Request,
    body: PricingRuleCreate,
    db: AsyncSession = Depends(get_db),
):
    values = body.model_dump(exclude_none=True)
    rule = await PricingRuleRepository(db).create(PricingRuleModel(**values))
    logger.info(
        "Pricing rule %s created for %s/%s",
        rule.id, body.service_type.value, body.vehicle_type.value,
    )
    return rule


@router.delete(
    "/rules/{rule_id}",
    response_model=PricingRuleResponse,
    summary="Deactivate a pricing rule",
)
@limiter.limit(settings.rate_limit)
async def deactivate_rule(
    request: Request,
    rule_id: int,
    db: AsyncSession = Depends(get_db),
):
    rule = await PricingRuleRepository(db).deactivate(rule_id)
    if rule is None:
        raise HTTPException(status_code=404, detail="Pricing rule not found")
    return rule


@router.get(
    "/packages",
    response_model=list[RentalPackageResponse],
    summary="List active rental packages",
)
@limiter.limit(settings.rate_limit)
async def list_packages(
    request: Request,
    vehicle_type: Optional[VehicleType] = None,
    db: AsyncSession = Depends(get_db),
):
    return await RentalPackageRepository(db).list_packages(vehicle_type)
