"""NWS (api.weather.gov) client with retry, rate limit handling and caching."""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from weatherdash.config.schema import CacheTtlConfig, NwsConfig
from weatherdash.ingest.nws_parsers import (
    parse_alerts,
    parse_forecast,
    parse_grid_reference,
    parse_hourly_forecast,
    parse_observation,
    parse_stations,
)
from weatherdash.ingest.retry import (
    NWS_RETRY_POLICY,
    RetryExecutor,
    RetryPolicy,
    gather_or_raise,
)
from weatherdash.ingest.ttl_cache import CacheStats, TTLCache, make_key
from weatherdash.models.common import Coordinates
from weatherdash.models.weather import (
    Alert,
    ForecastPeriod,
    GridReference,
    HourlyPeriod,
    Observation,
    Station,
    WeatherSnapshot,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NwsClient:
    """Async gateway to the NWS API.

    Every request goes through the retry executor. Points, forecasts,
    stations and observations are cached per resource; alerts never are.
    """

    def __init__(
        self,
        config: NwsConfig | None = None,
        cache: TTLCache | None = None,
        ttls: CacheTtlConfig | None = None,
        executor: RetryExecutor | None = None,
        policy: RetryPolicy = NWS_RETRY_POLICY,
        http: httpx.AsyncClient | None = None,
    ):
        self.config = config or NwsConfig()
        self.ttls = ttls or CacheTtlConfig()
        self.cache = cache or TTLCache(default_ttl=self.ttls.forecast)
        self.executor = executor or RetryExecutor()
        self.policy = policy
        self._http = http or httpx.AsyncClient(
            base_url=self.config.base_url,
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "application/geo+json",
            },
            timeout=self.config.timeout_seconds,
            follow_redirects=True,
        )
        self._grids: dict[str, GridReference] = {}
        self._first_station: dict[str, str] = {}

    async def __aenter__(self) -> "NwsClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> dict:
        resp = await self.executor.execute(
            lambda: self._http.get(path, params=params), self.policy, endpoint=path
        )
        return resp.json()

    async def _cached(
        self, key: str, ttl: int, fetch: Callable[[], Awaitable[T]]
    ) -> T:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("NWS cache hit for %s", key)
            return cached
        value = await fetch()
        self.cache.set(key, value, ttl)
        return value

    async def get_grid_reference(self, lat: float, lon: float) -> GridReference:
        """Resolve coordinates (rounded to 4 decimals) to an NWS grid cell."""
        coords = Coordinates(lat, lon)

        async def fetch() -> GridReference:
            raw = await self._get_json(f"/points/{coords.key()}")
            return parse_grid_reference(raw)

        grid = await self._cached(make_key("points", lat, lon), self.ttls.points, fetch)
        self._grids[coords.key()] = grid
        return grid

    async def get_forecast(self, grid: GridReference) -> list[ForecastPeriod]:
        async def fetch() -> list[ForecastPeriod]:
            return parse_forecast(await self._get_json(f"/gridpoints/{grid.path()}/forecast"))

        return await self._cached(f"forecast:{grid.path()}", self.ttls.forecast, fetch)

    async def get_hourly_forecast(self, grid: GridReference) -> list[HourlyPeriod]:
        async def fetch() -> list[HourlyPeriod]:
            raw = await self._get_json(f"/gridpoints/{grid.path()}/forecast/hourly")
            return parse_hourly_forecast(raw)

        return await self._cached(
            f"hourly:{grid.path()}", self.ttls.hourly_forecast, fetch
        )

    async def get_stations(self, grid: GridReference) -> list[Station]:
        async def fetch() -> list[Station]:
            return parse_stations(await self._get_json(f"/gridpoints/{grid.path()}/stations"))

        return await self._cached(f"stations:{grid.path()}", self.ttls.stations, fetch)

    async def get_latest_observation(self, station_id: str) -> Observation:
        async def fetch() -> Observation:
            raw = await self._get_json(f"/stations/{station_id}/observations/latest")
            return parse_observation(raw, station_id)

        return await self._cached(
            f"observation:{station_id}", self.ttls.observation, fetch
        )

    async def get_active_alerts(self, lat: float, lon: float) -> list[Alert]:
        """Active alerts for a point. Always fetched fresh."""
        point = Coordinates(lat, lon).key()
        raw = await self._get_json("/alerts/active", params={"point": point})
        return parse_alerts(raw)

    async def get_weather_snapshot(self, lat: float, lon: float) -> WeatherSnapshot:
        """Fetch everything the dashboard shows for one location.

        Only the observation may fail without failing the snapshot; it is
        None in that case.
        """
        grid = await self.get_grid_reference(lat, lon)

        forecast, hourly, stations, alerts = await gather_or_raise(
            self.get_forecast(grid),
            self.get_hourly_forecast(grid),
            self.get_stations(grid),
            self.get_active_alerts(lat, lon),
        )

        observation: Observation | None = None
        if stations:
            station_id = stations[0].station_id
            self._first_station[grid.path()] = station_id
            try:
                observation = await self.get_latest_observation(station_id)
            except Exception as e:
                logger.warning("Failed to get observation from %s: %s", station_id, e)
        else:
            logger.warning("No observation stations found for %s", grid.path())

        return WeatherSnapshot(
            grid_reference=grid,
            forecast=forecast,
            hourly_forecast=hourly,
            stations=stations,
            observation=observation,
            alerts=alerts,
        )

    def clear_location_cache(self, lat: float, lon: float) -> int:
        """Drop every cached resource belonging to a location."""
        coords_key = Coordinates(lat, lon).key()
        doomed = {make_key("points", lat, lon)}
        grid = self._grids.pop(coords_key, None)
        if grid is not None:
            path = grid.path()
            doomed |= {f"forecast:{path}", f"hourly:{path}", f"stations:{path}"}
            station_id = self._first_station.pop(path, None)
            if station_id is not None:
                doomed.add(f"observation:{station_id}")
        removed = self.cache.delete_where(lambda k: k in doomed)
        logger.info("Cleared %d cached NWS entries for %s", removed, coords_key)
        return removed

    def clear_cache(self) -> None:
        self.cache.clear()
        self._grids.clear()
        self._first_station.clear()

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()
