"""UV-index client for the OpenWeatherMap One Call API.

UV is a best-effort enrichment: every failure is logged and reported to the
caller as ``None``, never raised.
"""

import logging

import httpx

from weatherdash.config.schema import UvConfig
from weatherdash.ingest.errors import AuthError, RateLimitExceeded, UpstreamError
from weatherdash.ingest.retry import UV_RETRY_POLICY, RetryExecutor, RetryPolicy
from weatherdash.ingest.ttl_cache import CacheStats, TTLCache, make_key
from weatherdash.models.common import epoch_to_iso, format_coordinate, round_coordinate
from weatherdash.models.weather import UVIndexReading

logger = logging.getLogger(__name__)

ONECALL_PATH = "/onecall"
ONECALL_EXCLUDE = "minutely,hourly,daily,alerts"


class UvIndexClient:
    def __init__(
        self,
        config: UvConfig | None = None,
        cache: TTLCache | None = None,
        executor: RetryExecutor | None = None,
        policy: RetryPolicy = UV_RETRY_POLICY,
        http: httpx.AsyncClient | None = None,
    ):
        self.config = config or UvConfig()
        self.cache = cache or TTLCache(default_ttl=self.config.cache_ttl_seconds)
        self.executor = executor or RetryExecutor()
        self.policy = policy
        self._http = http or httpx.AsyncClient(
            base_url=self.config.base_url,
            headers={"Accept": "application/json"},
            timeout=self.config.timeout_seconds,
        )
        if not self.is_enabled():
            logger.warning(
                "UV Index service disabled: OPENWEATHER_API_KEY not configured. "
                "UV Index will not be available."
            )

    async def __aenter__(self) -> "UvIndexClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def is_enabled(self) -> bool:
        return bool(self.config.api_key)

    async def get_uv_index(self, lat: float, lon: float) -> UVIndexReading | None:
        """Current UV index for a point, or None when unavailable."""
        if not self.is_enabled():
            return None

        key = make_key("uv", lat, lon)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        params = {
            "lat": format_coordinate(lat),
            "lon": format_coordinate(lon),
            "appid": self.config.api_key,
            "exclude": ONECALL_EXCLUDE,
        }
        try:
            resp = await self.executor.execute(
                lambda: self._http.get(ONECALL_PATH, params=params),
                self.policy,
                endpoint=ONECALL_PATH,
            )
            current = resp.json()["current"]
            reading = UVIndexReading(
                value=float(current["uvi"]),
                timestamp=epoch_to_iso(current["dt"]),
                latitude=round_coordinate(lat),
                longitude=round_coordinate(lon),
            )
        except (AuthError, RateLimitExceeded) as e:
            logger.error("UV Index fetch failed: %s", e)
            return None
        except UpstreamError as e:
            logger.error(
                "Failed to fetch UV Index after %d attempts: %s", e.attempts, e
            )
            return None
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Malformed UV Index response for %s: %s", key, e)
            return None

        self.cache.set(key, reading)
        return reading

    def clear_location_cache(self, lat: float, lon: float) -> None:
        self.cache.delete(make_key("uv", lat, lon))

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()
