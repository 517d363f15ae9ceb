"""Tests for route providers (Google Directions, haversine, Redis cache)."""

from __future__ import annotations

import json
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest
import redis.asyncio as aioredis

from fareservice.config import Settings
from fareservice.domain.distance import estimate_route, haversine_km
from fareservice.domain.entities import Location, RouteMetrics
from fareservice.domain.exceptions import RouteUnavailableError
from fareservice.infrastructure.routing import (
    CachedRouteProvider,
    GoogleDirectionsRouteProvider,
    HaversineRouteProvider,
    LazyRouteProvider,
    build_route_provider,
)

AIRPORT = Location(19.0896, 72.8656)
ANDHERI = Location(19.1176, 72.8490)

OK_PAYLOAD = {
    "status": "OK",
    "routes": [
        {"legs": [{"distance": {"value": 12_500}, "duration": {"value": 1_800}}]}
    ],
}


def _google(handler) -> GoogleDirectionsRouteProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleDirectionsRouteProvider("test-key", client=client)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(19.0896, 72.8656, 19.0896, 72.8656) == 0.0

    def test_airport_to_andheri(self):
        d = haversine_km(19.0896, 72.8656, 19.1176, 72.8490)
        assert 3.0 < d < 4.0

    def test_estimate_uses_average_speed(self):
        metrics = estimate_route(AIRPORT, ANDHERI, average_speed_kmh=60)
        # 60 km/h: one minute per km
        assert abs(metrics.duration_minutes - metrics.distance_km) < Decimal("0.1")

    def test_estimate_rejects_non_positive_speed(self):
        with pytest.raises(ValueError):
            estimate_route(AIRPORT, ANDHERI, average_speed_kmh=0)

    @pytest.mark.asyncio
    async def test_provider_returns_metrics(self):
        metrics = await HaversineRouteProvider().route(AIRPORT, ANDHERI)
        assert metrics.distance_km > 0
        assert metrics.duration_minutes > 0


class TestGoogleDirections:
    @pytest.mark.asyncio
    async def test_converts_first_leg(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json=OK_PAYLOAD)

        metrics = await _google(handler).route(AIRPORT, ANDHERI)
        assert metrics.distance_km == Decimal("12.5")
        assert metrics.duration_minutes == Decimal("30")
        assert seen["origin"] == "19.0896,72.8656"
        assert seen["mode"] == "driving"
        assert seen["units"] == "metric"
        assert seen["key"] == "test-key"

    @pytest.mark.asyncio
    async def test_non_ok_status_raises(self):
        provider = _google(
            lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "routes": []})
        )
        with pytest.raises(RouteUnavailableError, match="ZERO_RESULTS"):
            await provider.route(AIRPORT, ANDHERI)

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        provider = _google(lambda request: httpx.Response(500))
        with pytest.raises(RouteUnavailableError):
            await provider.route(AIRPORT, ANDHERI)

    @pytest.mark.asyncio
    async def test_network_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(RouteUnavailableError):
            await _google(handler).route(AIRPORT, ANDHERI)

    @pytest.mark.asyncio
    async def test_missing_leg_raises(self):
        provider = _google(
            lambda request: httpx.Response(200, json={"status": "OK", "routes": []})
        )
        with pytest.raises(RouteUnavailableError, match="No routes"):
            await provider.route(AIRPORT, ANDHERI)

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GoogleDirectionsRouteProvider("")


class TestCachedRouteProvider:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self, fake_redis):
        inner = AsyncMock()
        inner.route = AsyncMock(return_value=RouteMetrics(Decimal("12.5"), Decimal("30")))
        provider = CachedRouteProvider(inner, fake_redis, ttl_seconds=60)

        first = await provider.route(AIRPORT, ANDHERI)
        second = await provider.route(AIRPORT, ANDHERI)

        assert first == second
        inner.route.assert_awaited_once()
        key = CachedRouteProvider.cache_key(AIRPORT, ANDHERI)
        assert json.loads(fake_redis.data[key]) == {"meters": "12500.0", "seconds": "1800"}
        assert fake_redis.expiry[key] == 60

    @pytest.mark.asyncio
    async def test_inner_failure_is_not_cached(self, fake_redis):
        inner = AsyncMock()
        inner.route = AsyncMock(side_effect=RouteUnavailableError("down"))
        provider = CachedRouteProvider(inner, fake_redis)

        with pytest.raises(RouteUnavailableError):
            await provider.route(AIRPORT, ANDHERI)
        assert fake_redis.data == {}

    @pytest.mark.asyncio
    async def test_cache_outage_falls_through(self):
        broken = AsyncMock()
        broken.get = AsyncMock(side_effect=aioredis.ConnectionError("refused"))
        broken.set = AsyncMock(side_effect=aioredis.ConnectionError("refused"))
        inner = AsyncMock()
        inner.route = AsyncMock(return_value=RouteMetrics(Decimal("4"), Decimal("8")))

        metrics = await CachedRouteProvider(inner, broken).route(AIRPORT, ANDHERI)
        assert metrics.distance_km == Decimal("4")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "stored",
        ["not-json", '{"meters": "x"}', '{"meters": "x", "seconds": "1"}', "[1, 2]"],
    )
    async def test_corrupt_entry_is_a_miss(self, fake_redis, stored):
        key = CachedRouteProvider.cache_key(AIRPORT, ANDHERI)
        fake_redis.data[key] = stored
        inner = AsyncMock()
        inner.route = AsyncMock(return_value=RouteMetrics(Decimal("12.5"), Decimal("30")))

        metrics = await CachedRouteProvider(inner, fake_redis).route(AIRPORT, ANDHERI)

        assert metrics.distance_km == Decimal("12.5")
        inner.route.assert_awaited_once()
        assert json.loads(fake_redis.data[key]) == {"meters": "12500.0", "seconds": "1800"}


class TestLazyRouteProvider:
    @pytest.mark.asyncio
    async def test_builds_once_on_first_route(self):
        built = []

        def factory():
            built.append(1)
            return HaversineRouteProvider()

        provider = LazyRouteProvider(factory)
        assert built == []
        first = await provider.route(AIRPORT, ANDHERI)
        second = await provider.route(AIRPORT, ANDHERI)
        assert first == second
        assert built == [1]

    @pytest.mark.asyncio
    async def test_misconfigured_provider_is_unavailable(self):
        settings = Settings(route_provider="google", google_maps_api_key="")
        provider = LazyRouteProvider(lambda: build_route_provider(settings))
        with pytest.raises(RouteUnavailableError, match="google_maps_api_key"):
            await provider.route(AIRPORT, ANDHERI)


class TestBuildRouteProvider:
    def test_haversine_without_cache(self):
        provider = build_route_provider(Settings(route_provider="haversine"))
        assert isinstance(provider, HaversineRouteProvider)

    def test_google_wrapped_in_cache(self, fake_redis):
        provider = build_route_provider(
            Settings(route_provider="google", google_maps_api_key="k"), fake_redis
        )
        assert isinstance(provider, CachedRouteProvider)
        assert isinstance(provider.inner, GoogleDirectionsRouteProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            build_route_provider(Settings(route_provider="osrm"))
