"""ZIP code geocoding via the Zippopotam.us API, cached for 24 hours."""

import logging
import re

import httpx

from weatherdash.config.schema import GeocodingConfig
from weatherdash.ingest.errors import (
    InvalidZipCode,
    ResourceNotFound,
    ZipCodeNotFound,
)
from weatherdash.ingest.retry import GEOCODING_RETRY_POLICY, RetryExecutor, RetryPolicy
from weatherdash.ingest.ttl_cache import TTLCache
from weatherdash.models.common import Coordinates
from weatherdash.models.weather import ZipLocation

logger = logging.getLogger(__name__)

ZIP_PATTERN = re.compile(r"[0-9]{5}")

# Rough US bounds including Alaska, Hawaii and Puerto Rico
MIN_LAT, MAX_LAT = 17.5, 72.0
MIN_LON, MAX_LON = -180.0, -64.0


def is_valid_zip_code(zip_code: str | None) -> bool:
    return bool(zip_code) and ZIP_PATTERN.fullmatch(zip_code) is not None


class ZipGeocoder:
    def __init__(
        self,
        config: GeocodingConfig | None = None,
        cache: TTLCache | None = None,
        executor: RetryExecutor | None = None,
        policy: RetryPolicy = GEOCODING_RETRY_POLICY,
        http: httpx.AsyncClient | None = None,
    ):
        self.config = config or GeocodingConfig()
        self.cache = cache or TTLCache(default_ttl=self.config.cache_ttl_seconds)
        self.executor = executor or RetryExecutor()
        self.policy = policy
        self._http = http or httpx.AsyncClient(
            base_url=self.config.base_url,
            headers={"User-Agent": "weatherdash/0.1.0"},
            timeout=self.config.timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def geocode(self, zip_code: str) -> ZipLocation:
        """Resolve a 5-digit ZIP code to its centroid.

        Raises InvalidZipCode for malformed input and ZipCodeNotFound when
        the upstream has no usable place for it.
        """
        zip_code = (zip_code or "").strip()
        if not is_valid_zip_code(zip_code):
            raise InvalidZipCode(f"Invalid ZIP code format: {zip_code!r}. Must be 5 digits.")

        key = f"geocode:{zip_code}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        path = f"/{zip_code}"
        try:
            resp = await self.executor.execute(
                lambda: self._http.get(path), self.policy, endpoint=path
            )
        except ResourceNotFound as e:
            raise ZipCodeNotFound(f"ZIP code not found: {zip_code}") from e

        places = resp.json().get("places") or []
        if not places:
            raise ZipCodeNotFound(f"No location data found for ZIP code: {zip_code}")

        place = places[0]
        try:
            lat = float(place["latitude"])
            lon = float(place["longitude"])
        except (KeyError, TypeError, ValueError) as e:
            raise ZipCodeNotFound(f"Invalid coordinates for ZIP code: {zip_code}") from e
        if not (MIN_LAT <= lat <= MAX_LAT and MIN_LON <= lon <= MAX_LON):
            raise ZipCodeNotFound(
                f"Coordinates outside the US for ZIP code: {zip_code} "
                f"(lat: {lat}, lon: {lon})"
            )

        location = ZipLocation(
            zip_code=zip_code,
            coordinates=Coordinates(lat, lon),
            place_name=place.get("place name", ""),
            state=place.get("state abbreviation", ""),
        )
        self.cache.set(key, location)
        logger.debug("Geocoded %s -> %s", zip_code, location.coordinates.key())
        return location
