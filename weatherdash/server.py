"""Weather dashboard HTTP API: FastAPI app over the dashboard pipeline."""

import asyncio
import logging
import platform
import resource
import sys
import time
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from weatherdash.config.schema import DashboardConfig
from weatherdash.ingest.errors import (
    GeocodingError,
    InvalidZipCode,
    RateLimitExceeded,
    ResourceNotFound,
    UpstreamError,
    ZipCodeNotFound,
)
from weatherdash.models.common import utc_now_iso
from weatherdash.pipeline.dashboard_pipeline import DashboardPipeline
from weatherdash.pipeline.prefetcher import CachePrefetcher
from weatherdash.reporting.health_checker import HealthChecker

logger = logging.getLogger(__name__)

SERVICE_NAME = "weatherdash"
VERSION = "0.1.0"


def create_app(
    config: DashboardConfig,
    pipeline: DashboardPipeline | None = None,
    prefetcher: CachePrefetcher | None = None,
    health_checker: HealthChecker | None = None,
) -> FastAPI:
    """Build the API. The prefetch loop runs for the lifetime of the app."""
    pipeline = pipeline or DashboardPipeline.from_config(config)
    prefetcher = prefetcher or CachePrefetcher(pipeline, config.prefetch)
    health_checker = health_checker or HealthChecker(config, pipeline.nws, pipeline.uv)
    started = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        stop = asyncio.Event()
        task = asyncio.create_task(prefetcher.run_forever(stop))
        try:
            yield
        finally:
            stop.set()
            await task
            await pipeline.aclose()

    app = FastAPI(title="Weather Dashboard", version=VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def service_info() -> dict:
        return {
            "status": "ok",
            "timestamp": utc_now_iso(),
            "uptime_seconds": round(time.monotonic() - started, 1),
            "service": SERVICE_NAME,
            "version": VERSION,
        }

    def cache_stats() -> dict:
        return {
            "nws": asdict(pipeline.nws.get_cache_stats()),
            "uv": asdict(pipeline.uv.get_cache_stats()),
        }

    # ── Health endpoints ────────────────────────────────────────────

    @app.get("/api/health")
    def get_health():
        """Liveness: no upstream calls."""
        return service_info()

    @app.get("/api/health/detailed")
    async def get_health_detailed():
        """Upstream reachability, cache stats and process info."""
        status = await health_checker.check()
        info = service_info()
        if not status.ok:
            info["status"] = "degraded"
        info["upstream"] = asdict(status)
        info["system"] = {
            "python_version": platform.python_version(),
            "platform": sys.platform,
            "arch": platform.machine(),
            # ru_maxrss is KiB on Linux
            "max_rss_mb": round(resource.getrusage(resource.RUSAGE_SELF).ru_maxrss / 1024, 1),
        }
        return info

    # ── Cache endpoints ─────────────────────────────────────────────

    @app.get("/api/weather/cache/stats")
    def get_cache_stats():
        return {"cache": cache_stats(), "timestamp": utc_now_iso()}

    @app.post("/api/weather/cache/clear")
    def clear_cache():
        """Drop every cached NWS and UV response."""
        pipeline.nws.clear_cache()
        pipeline.uv.clear_cache()
        logger.info("Weather cache cleared")
        return {"message": "Cache cleared successfully", "timestamp": utc_now_iso()}

    @app.post("/api/weather/cache/clear/{zip_code}")
    async def clear_location_cache(zip_code: str):
        try:
            location = await pipeline.geocoder.geocode(zip_code)
        except GeocodingError as e:
            raise _http_error(e) from e
        coords = location.coordinates
        pipeline.nws.clear_location_cache(coords.latitude, coords.longitude)
        pipeline.uv.clear_location_cache(coords.latitude, coords.longitude)
        logger.info("Location cache cleared for %s", zip_code)
        return {
            "message": f"Cache cleared for ZIP code {zip_code}",
            "timestamp": utc_now_iso(),
        }

    @app.get("/api/weather/background-jobs/status")
    def get_background_jobs_status():
        return {
            "background_jobs": prefetcher.status(),
            "cache": cache_stats(),
            "timestamp": utc_now_iso(),
        }

    # ── Weather endpoints ───────────────────────────────────────────

    @app.get("/api/weather/{zip_code}")
    async def get_weather(zip_code: str):
        """Complete weather package for a ZIP code, served from cache when fresh."""
        try:
            return asdict(await pipeline.get_weather_by_zip(zip_code))
        except (GeocodingError, UpstreamError) as e:
            raise _http_error(e) from e

    @app.post("/api/weather/{zip_code}/refresh")
    async def refresh_weather(zip_code: str):
        """Bypass the location's cached data and fetch fresh."""
        try:
            return asdict(await pipeline.refresh_weather(zip_code))
        except (GeocodingError, UpstreamError) as e:
            raise _http_error(e) from e

    return app


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, InvalidZipCode):
        return HTTPException(400, str(e))
    if isinstance(e, ZipCodeNotFound):
        return HTTPException(404, f"{e}. Please verify the ZIP code is valid.")
    if isinstance(e, ResourceNotFound):
        return HTTPException(404, "No NWS forecast data for this location")
    if isinstance(e, RateLimitExceeded):
        return HTTPException(429, "Weather service is rate limiting requests, try again shortly")
    logger.error("Upstream failure: %s", e)
    return HTTPException(502, "Weather service temporarily unavailable")
