"""
FastAPI application factory.

* Registers routes for fares, pricing, drafts, bookings and admin.
* Maps lookup failures to HTTP errors in one place, so a missing pricing
  rule or route always reads "unavailable" and never a made-up price.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fareservice.api.middleware import limiter
from fareservice.api.routes import admin, bookings, drafts, fares, pricing
from fareservice.config import settings
from fareservice.domain.entities import InvalidStateTransition
from fareservice.domain.exceptions import (
    BookingNotFoundError,
    DraftNotFoundError,
    PackageNotFoundError,
    RouteUnavailableError,
    RuleNotFoundError,
)
from fareservice.infrastructure.database import dispose_engine
from fareservice.infrastructure.redis_client import close_redis

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Flag a missing routing key at startup; release pools on shutdown."""
    if settings.route_provider == "google" and not settings.google_maps_api_key:
        logger.error(
            "route_provider is google but google_maps_api_key is not set; "
            "route lookups will fail"
        )
    yield
    await close_redis()
    await dispose_engine()


# ── Error mapping ─────────────────────────────────────────────────────


async def _rule_not_found(request: Request, exc: RuleNotFoundError):
    logger.warning("%s", exc)
    return JSONResponse(status_code=404, content={"detail": "Pricing unavailable"})


async def _route_unavailable(request: Request, exc: RouteUnavailableError):
    logger.warning("Route lookup failed: %s", exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Unable to calculate fare: route unavailable"},
    )


async def _not_found(request: Request, exc: Exception):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _invalid_transition(request: Request, exc: InvalidStateTransition):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ride Fare Service API",
        description=(
            "Quotes ride fares for city, airport, outstation, rental and "
            "shared rides, holds booking-wizard drafts and records "
            "confirmed bookings for trip history."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(RuleNotFoundError, _rule_not_found)
    app.add_exception_handler(RouteUnavailableError, _route_unavailable)
    for exc_class in (PackageNotFoundError, DraftNotFoundError, BookingNotFoundError):
        app.add_exception_handler(exc_class, _not_found)
    app.add_exception_handler(InvalidStateTransition, _invalid_transition)

    # Routers
    for module in (fares, pricing, drafts, bookings, admin):
        app.include_router(module.router, prefix="/api/v1")

    return app
