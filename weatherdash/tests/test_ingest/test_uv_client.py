"""Tests for the UV-index client."""

import asyncio

import httpx
import pytest
import respx

from weatherdash.config.schema import UvConfig
from weatherdash.ingest.uv_client import UvIndexClient

UV = "https://test-uv.example.com/data/3.0"
LAT, LON = 40.7128, -74.006


def onecall_params(lat: str = "40.7128", lon: str = "-74.0060") -> dict[str, str]:
    return {
        "lat": lat,
        "lon": lon,
        "appid": "test-key",
        "exclude": "minutely,hourly,daily,alerts",
    }


def fetch_uv(uv_config, cache, executor, *points):
    async def _go():
        async with UvIndexClient(uv_config, cache=cache, executor=executor) as uv:
            return [await uv.get_uv_index(lat, lon) for lat, lon in points]

    return asyncio.run(_go())


@pytest.fixture
def onecall(load_fixture) -> dict:
    return load_fixture("owm_onecall.json")


class TestEnabled:
    @respx.mock
    def test_disabled_without_key(self, cache, executor, caplog):
        config = UvConfig(api_key="", base_url=UV)

        with caplog.at_level("WARNING"):
            results = fetch_uv(config, cache, executor, (LAT, LON))
        assert results == [None]
        assert not respx.calls
        assert "UV Index service disabled" in caplog.text

    def test_is_enabled(self, uv_config, cache, executor):
        async def _go():
            async with UvIndexClient(uv_config, cache=cache, executor=executor) as uv:
                return uv.is_enabled()

        assert asyncio.run(_go()) is True


class TestGetUvIndex:
    @respx.mock
    def test_success(self, uv_config, cache, executor, onecall):
        route = respx.get(f"{UV}/onecall", params=onecall_params()).mock(
            return_value=httpx.Response(200, json=onecall)
        )

        [reading] = fetch_uv(uv_config, cache, executor, (LAT, LON))
        assert reading.value == 3.47
        assert reading.timestamp == "2025-10-16T14:00:00+00:00"
        assert reading.latitude == 40.7128
        assert reading.longitude == -74.006
        assert route.call_count == 1

    @respx.mock
    def test_cached_within_ttl(self, uv_config, cache, executor, onecall):
        route = respx.get(f"{UV}/onecall", params=onecall_params()).mock(
            return_value=httpx.Response(200, json=onecall)
        )

        first, second = fetch_uv(uv_config, cache, executor, (LAT, LON), (LAT, LON))
        assert first == second
        assert route.call_count == 1

    @respx.mock
    def test_refetched_after_ttl(self, uv_config, cache, executor, clock, onecall):
        route = respx.get(f"{UV}/onecall", params=onecall_params()).mock(
            return_value=httpx.Response(200, json=onecall)
        )

        async def _go():
            async with UvIndexClient(uv_config, cache=cache, executor=executor) as uv:
                await uv.get_uv_index(LAT, LON)
                clock.advance(3600)
                await uv.get_uv_index(LAT, LON)

        asyncio.run(_go())
        assert route.call_count == 2

    @respx.mock
    def test_signed_zero_points_share_cache(self, uv_config, cache, executor, onecall):
        route = respx.get(
            f"{UV}/onecall", params=onecall_params("90.0000", "0.0000")
        ).mock(return_value=httpx.Response(200, json=onecall))

        first, second = fetch_uv(
            uv_config, cache, executor, (90.00004, 0.00004), (89.99996, -0.00004)
        )
        assert route.call_count == 1
        assert first is second
        assert cache.keys() == ["uv:90.0000,0.0000"]

    @respx.mock
    @pytest.mark.parametrize("status", [401, 429])
    def test_auth_and_rate_limit_fail_fast(
        self, uv_config, cache, executor, recording_sleep, status
    ):
        route = respx.get(f"{UV}/onecall").mock(return_value=httpx.Response(status))

        assert fetch_uv(uv_config, cache, executor, (LAT, LON)) == [None]
        assert route.call_count == 1
        assert recording_sleep.delays == []

    @respx.mock
    def test_server_error_retried_once(
        self, uv_config, cache, executor, recording_sleep, caplog
    ):
        route = respx.get(f"{UV}/onecall").mock(return_value=httpx.Response(503))

        with caplog.at_level("ERROR"):
            assert fetch_uv(uv_config, cache, executor, (LAT, LON)) == [None]
        assert route.call_count == 2
        assert recording_sleep.delays == [1.0]
        assert "after 2 attempts" in caplog.text

    @respx.mock
    def test_retry_recovers(self, uv_config, cache, executor, onecall):
        route = respx.get(f"{UV}/onecall").mock(
            side_effect=[
                httpx.Response(500),
                httpx.Response(200, json=onecall),
            ]
        )

        [reading] = fetch_uv(uv_config, cache, executor, (LAT, LON))
        assert reading is not None
        assert route.call_count == 2

    @respx.mock
    def test_network_error_returns_none(self, uv_config, cache, executor):
        route = respx.get(f"{UV}/onecall").mock(
            side_effect=httpx.ConnectError("unreachable")
        )

        assert fetch_uv(uv_config, cache, executor, (LAT, LON)) == [None]
        assert route.call_count == 2

    @respx.mock
    def test_malformed_response_returns_none(self, uv_config, cache, executor):
        respx.get(f"{UV}/onecall").mock(
            return_value=httpx.Response(200, json={"lat": 40.7})
        )

        assert fetch_uv(uv_config, cache, executor, (LAT, LON)) == [None]
        assert cache.keys() == []

    @respx.mock
    def test_failures_not_cached(self, uv_config, cache, executor, onecall):
        route = respx.get(f"{UV}/onecall").mock(
            side_effect=[
                httpx.Response(401),
                httpx.Response(200, json=onecall),
            ]
        )

        first, second = fetch_uv(uv_config, cache, executor, (LAT, LON), (LAT, LON))
        assert first is None
        assert second is not None
        assert route.call_count == 2


class TestCacheManagement:
    @respx.mock
    def test_clear_location_cache(self, uv_config, cache, executor, onecall):
        route = respx.get(f"{UV}/onecall").mock(
            return_value=httpx.Response(200, json=onecall)
        )

        async def _go():
            async with UvIndexClient(uv_config, cache=cache, executor=executor) as uv:
                await uv.get_uv_index(LAT, LON)
                uv.clear_location_cache(LAT, LON)
                await uv.get_uv_index(LAT, LON)
                stats = uv.get_cache_stats()
                uv.clear_cache()
                return stats, uv.get_cache_stats()

        stats, cleared = asyncio.run(_go())
        assert route.call_count == 2
        assert stats.keys == 1
        assert stats.misses == 2
        assert cleared.keys == 0
