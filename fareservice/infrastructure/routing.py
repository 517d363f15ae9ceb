"""
Route providers
===============

All providers satisfy ``fareservice.domain.quoting.RouteProvider``:
``await provider.route(origin, destination) -> RouteMetrics``.

* ``GoogleDirectionsRouteProvider`` -- Google Directions API (driving,
  metric); first leg of the first route.
* ``HaversineRouteProvider``        -- offline straight-line estimate.
* ``CachedRouteProvider``           -- Redis memoization around either.
* ``LazyRouteProvider``             -- builds one of the above on first use.

Any upstream failure is raised as ``RouteUnavailableError`` so callers skip
pricing instead of quoting a zero-distance fare.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

import httpx
import redis.asyncio as aioredis

from fareservice.config import Settings
from fareservice.domain.distance import estimate_route
from fareservice.domain.entities import Location, RouteMetrics
from fareservice.domain.exceptions import RouteUnavailableError

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"


def _latlng(point: Location) -> str:
    return f"{point.latitude},{point.longitude}"


class GoogleDirectionsRouteProvider:
    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise ValueError("google_maps_api_key is not configured")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    async def route(self, origin: Location, destination: Location) -> RouteMetrics:
        params = {
            "origin": _latlng(origin),
            "destination": _latlng(destination),
            "mode": "driving",
            "units": "metric",
            "key": self.api_key,
        }
        try:
            if self._client is not None:
                resp = await self._client.get(DIRECTIONS_URL, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.get(DIRECTIONS_URL, params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("Google Directions request failed")
            raise RouteUnavailableError(f"Directions request failed: {exc}") from exc

        status = data.get("status")
        if status != "OK":
            logger.error("Directions API returned non-OK status: %s", status)
            raise RouteUnavailableError(f"Directions request failed: {status}")

        try:
            leg = data["routes"][0]["legs"][0]
            meters = leg["distance"]["value"]
            seconds = leg["duration"]["value"]
        except (KeyError, IndexError, TypeError) as exc:
            logger.error("Unexpected Directions response format: %s", data)
            raise RouteUnavailableError("No routes found") from exc

        return RouteMetrics.from_provider_units(meters, seconds)


class HaversineRouteProvider:
    def __init__(self, average_speed_kmh: float = 30.0):
        self.average_speed_kmh = average_speed_kmh

    async def route(self, origin: Location, destination: Location) -> RouteMetrics:
        return estimate_route(origin, destination, self.average_speed_kmh)


class CachedRouteProvider:
    """Memoize another provider's answers in Redis.

    Cache errors are logged and ignored; only the wrapped provider's
    failures reach the caller.
    """

    def __init__(self, inner, redis: aioredis.Redis, ttl_seconds: int = 6 * 3600):
        self.inner = inner
        self.redis = redis
        self.ttl = ttl_seconds

    @staticmethod
    def cache_key(origin: Location, destination: Location) -> str:
        return (
            f"route:{origin.latitude:.6f}:{origin.longitude:.6f}:"
            f"{destination.latitude:.6f}:{destination.longitude:.6f}"
        )

    async def route(self, origin: Location, destination: Location) -> RouteMetrics:
        key = self.cache_key(origin, destination)
        try:
            cached = await self.redis.get(key)
        except aioredis.RedisError:
            logger.exception("Route cache read failed (non-fatal)")
            cached = None
        if cached is not None:
            try:
                payload = json.loads(cached)
                metrics = RouteMetrics.from_provider_units(
                    payload["meters"], payload["seconds"]
                )
            except (ValueError, KeyError, TypeError, ArithmeticError):
                logger.warning("Corrupt route cache entry %s (non-fatal)", key)
            else:
                logger.debug("route cache hit for %s", key)
                return metrics

        metrics = await self.inner.route(origin, destination)
        payload = {
            "meters": str(metrics.distance_km * 1000),
            "seconds": str(metrics.duration_minutes * 60),
        }
        try:
            await self.redis.set(key, json.dumps(payload), ex=self.ttl)
        except aioredis.RedisError:
            logger.exception("Route cache write failed (non-fatal)")
        return metrics


class LazyRouteProvider:
    """Defer building a provider until a route is actually requested.

    A factory that fails with ``ValueError`` (a misconfigured provider)
    surfaces as ``RouteUnavailableError`` from ``route``.
    """

    def __init__(self, factory: Callable[[], Any]):
        self._factory = factory
        self._provider = None

    async def route(self, origin: Location, destination: Location) -> RouteMetrics:
        if self._provider is None:
            try:
                self._provider = self._factory()
            except ValueError as exc:
                logger.error("Route provider is misconfigured: %s", exc)
                raise RouteUnavailableError(str(exc)) from exc
        return await self._provider.route(origin, destination)


def build_route_provider(settings: Settings, redis: Optional[aioredis.Redis] = None):
    """Pick the provider named by ``settings.route_provider``."""
    if settings.route_provider == "google":
        provider = GoogleDirectionsRouteProvider(
            settings.google_maps_api_key, timeout=settings.routing_timeout_seconds
        )
    elif settings.route_provider == "haversine":
        provider = HaversineRouteProvider(settings.average_speed_kmh)
    else:
        raise ValueError(f"Unknown route provider: {settings.route_provider}")

    if redis is not None and settings.route_cache_ttl_seconds > 0:
        return CachedRouteProvider(provider, redis, settings.route_cache_ttl_seconds)
    return provider
