"""Health checker: upstream reachability and cache statistics."""

import logging

import httpx

from weatherdash.config.schema import DashboardConfig
from weatherdash.ingest.nws_client import NwsClient
from weatherdash.ingest.uv_client import UvIndexClient
from weatherdash.models.common import utc_now_iso
from weatherdash.models.reporting import HealthStatus

logger = logging.getLogger(__name__)

HEALTH_TIMEOUT = 10.0


class HealthChecker:
    def __init__(self, config: DashboardConfig, nws: NwsClient, uv: UvIndexClient):
        self.config = config
        self.nws = nws
        self.uv = uv

    async def check(self) -> HealthStatus:
        async with httpx.AsyncClient(timeout=HEALTH_TIMEOUT) as client:
            nws_ok = await self._check_nws(client)
            uv_ok = await self._check_uv(client) if self.uv.is_enabled() else None
        return HealthStatus(
            nws_api_reachable=nws_ok,
            uv_enabled=self.uv.is_enabled(),
            uv_api_reachable=uv_ok,
            nws_cache=self.nws.get_cache_stats(),
            uv_cache=self.uv.get_cache_stats(),
            checked_at=utc_now_iso(),
        )

    async def _check_nws(self, client: httpx.AsyncClient) -> bool:
        try:
            resp = await client.get(
                self.config.nws.base_url,
                headers={"User-Agent": self.config.nws.user_agent},
            )
            return resp.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("NWS health check failed: %s", e)
            return False

    async def _check_uv(self, client: httpx.AsyncClient) -> bool:
        # Any HTTP answer other than an auth rejection means the key and host work
        try:
            resp = await client.get(
                f"{self.config.uv.base_url}/onecall",
                params={
                    "lat": "0.0000",
                    "lon": "0.0000",
                    "appid": self.config.uv.api_key,
                    "exclude": "minutely,hourly,daily,alerts",
                },
            )
            return resp.status_code not in (401, 403) and resp.status_code < 500
        except httpx.HTTPError as e:
            logger.warning("UV health check failed: %s", e)
            return False
