"""Dashboard pipeline: ZIP code in, complete weather package out."""

import logging

from weatherdash.config.schema import DashboardConfig
from weatherdash.ingest.geocoding import ZipGeocoder
from weatherdash.ingest.nws_client import NwsClient
from weatherdash.ingest.retry import RetryExecutor, gather_or_raise
from weatherdash.ingest.sun_times import get_sun_times
from weatherdash.ingest.ttl_cache import TTLCache
from weatherdash.ingest.uv_client import UvIndexClient
from weatherdash.models.common import utc_now, utc_now_iso
from weatherdash.models.weather import WeatherPackage

logger = logging.getLogger(__name__)


class DashboardPipeline:
    """Wires the geocoder, NWS and UV clients into one fetch per ZIP code."""

    def __init__(
        self,
        geocoder: ZipGeocoder,
        nws: NwsClient,
        uv: UvIndexClient,
    ):
        self.geocoder = geocoder
        self.nws = nws
        self.uv = uv

    @classmethod
    def from_config(
        cls, config: DashboardConfig, executor: RetryExecutor | None = None
    ) -> "DashboardPipeline":
        executor = executor or RetryExecutor()
        return cls(
            geocoder=ZipGeocoder(config.geocoding, executor=executor),
            nws=NwsClient(
                config.nws,
                cache=TTLCache(default_ttl=config.cache_ttl.forecast),
                ttls=config.cache_ttl,
                executor=executor,
            ),
            uv=UvIndexClient(config.uv, executor=executor),
        )

    async def aclose(self) -> None:
        await gather_or_raise(
            self.geocoder.aclose(), self.nws.aclose(), self.uv.aclose()
        )

    async def get_weather_by_zip(self, zip_code: str) -> WeatherPackage:
        """Geocode, then fetch the NWS snapshot and UV reading together.

        NWS failures propagate; UV failures come back as a None reading.
        """
        location = await self.geocoder.geocode(zip_code)
        coords = location.coordinates.rounded()
        logger.info("Fetching weather for %s (%s)", zip_code, coords.key())

        snapshot, uv_reading = await gather_or_raise(
            self.nws.get_weather_snapshot(coords.latitude, coords.longitude),
            self.uv.get_uv_index(coords.latitude, coords.longitude),
        )
        return WeatherPackage(
            zip_code=location.zip_code,
            coordinates=coords,
            place_name=f"{location.place_name}, {location.state}".strip(", "),
            snapshot=snapshot,
            uv_index=uv_reading,
            sun_times=get_sun_times(coords.latitude, coords.longitude, utc_now().date()),
            last_updated=utc_now_iso(),
        )

    async def refresh_weather(self, zip_code: str) -> WeatherPackage:
        """Like get_weather_by_zip, but bypasses cached data for the location."""
        location = await self.geocoder.geocode(zip_code)
        coords = location.coordinates
        self.nws.clear_location_cache(coords.latitude, coords.longitude)
        self.uv.clear_location_cache(coords.latitude, coords.longitude)
        return await self.get_weather_by_zip(zip_code)
