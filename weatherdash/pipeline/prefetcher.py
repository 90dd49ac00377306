"""Background cache pre-warming for a configured list of ZIP codes.

Each cycle fetches every configured ZIP code concurrently through the
dashboard pipeline, which leaves the geocoding, NWS and UV caches warm for
the next visitor. A failing ZIP code is logged and never stops the others.
The first cycle runs as soon as the loop starts, then one every interval.
"""

import asyncio
import logging
import time
from dataclasses import asdict

from weatherdash.config.schema import PrefetchConfig
from weatherdash.models.common import utc_now_iso
from weatherdash.models.reporting import PrefetchCycle
from weatherdash.pipeline.dashboard_pipeline import DashboardPipeline

logger = logging.getLogger(__name__)


class CachePrefetcher:
    def __init__(self, pipeline: DashboardPipeline, config: PrefetchConfig):
        self.pipeline = pipeline
        self.config = config
        self._running = False
        self._consecutive_failures = 0
        self._total_cycles = 0
        self._started_at: str | None = None
        self._last_cycle: PrefetchCycle | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def run_cycle(self) -> PrefetchCycle:
        """Refresh every configured ZIP code once and log one summary line."""
        self._total_cycles += 1
        zip_codes = list(self.config.zip_codes)
        started_at = utc_now_iso()
        start = time.monotonic()

        results = await asyncio.gather(
            *(self._refresh_zip(z) for z in zip_codes), return_exceptions=True
        )

        refreshed: list[str] = []
        failed: dict[str, str] = {}
        for zip_code, result in zip(zip_codes, results):
            if isinstance(result, Exception):
                logger.error("Failed to refresh ZIP %s: %s", zip_code, result)
                failed[zip_code] = str(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                refreshed.append(zip_code)

        cycle = PrefetchCycle(
            number=self._total_cycles,
            started_at=started_at,
            duration_ms=round((time.monotonic() - start) * 1000),
            refreshed=refreshed,
            failed=failed,
        )
        self._last_cycle = cycle
        logger.info(
            "Prefetch cycle #%d: %d/%d ZIP codes refreshed in %dms",
            cycle.number, len(refreshed), len(zip_codes), cycle.duration_ms,
        )
        return cycle

    async def _refresh_zip(self, zip_code: str) -> None:
        logger.debug("Refreshing ZIP %s", zip_code)
        await self.pipeline.get_weather_by_zip(zip_code)

    def next_wait(self, cycle: PrefetchCycle | None) -> float:
        """Seconds until the next cycle, backing off while every ZIP fails."""
        interval = self.config.interval_seconds
        if cycle is not None and (cycle.refreshed or not cycle.failed):
            self._consecutive_failures = 0
            return interval

        self._consecutive_failures += 1
        wait = min(
            interval * (2 ** self._consecutive_failures),
            self.config.max_backoff_seconds,
        )
        logger.warning(
            "Prefetch failed (%d consecutive), backing off %.0fs",
            self._consecutive_failures, wait,
        )
        return wait

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Run cycles until ``stop`` is set. Returns at once when disabled."""
        if not self.config.enabled or not self.config.zip_codes:
            logger.info("Cache prefetch disabled")
            return

        self._running = True
        self._started_at = utc_now_iso()
        logger.info(
            "Prefetching %s every %.0fs",
            ", ".join(self.config.zip_codes), self.config.interval_seconds,
        )
        try:
            while not stop.is_set():
                cycle: PrefetchCycle | None = None
                try:
                    cycle = await self.run_cycle()
                except Exception:
                    logger.exception("Prefetch cycle #%d crashed", self._total_cycles)

                try:
                    await asyncio.wait_for(stop.wait(), timeout=self.next_wait(cycle))
                except TimeoutError:
                    pass
        finally:
            self._running = False
            logger.info("Prefetcher stopped after %d cycles", self._total_cycles)

    def status(self) -> dict:
        """Plain-dict report for the background jobs status endpoint."""
        last = self._last_cycle
        return {
            "enabled": self.config.enabled,
            "running": self._running,
            "cached_zip_codes": list(self.config.zip_codes),
            "refresh_interval_seconds": self.config.interval_seconds,
            "started_at": self._started_at,
            "total_cycles": self._total_cycles,
            "consecutive_failures": self._consecutive_failures,
            "last_cycle": None if last is None else asdict(last),
        }
