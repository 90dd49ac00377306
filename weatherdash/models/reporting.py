"""Operational health models."""

from dataclasses import dataclass

from weatherdash.ingest.ttl_cache import CacheStats


@dataclass(frozen=True)
class HealthStatus:
    nws_api_reachable: bool
    uv_enabled: bool
    uv_api_reachable: bool | None  # None when UV is disabled
    nws_cache: CacheStats
    uv_cache: CacheStats
    checked_at: str

    @property
    def ok(self) -> bool:
        return self.nws_api_reachable and self.uv_api_reachable is not False


@dataclass(frozen=True)
class PrefetchCycle:
    """Outcome of one cache pre-warming pass over the configured ZIP codes."""

    number: int
    started_at: str
    duration_ms: int
    refreshed: list[str]
    failed: dict[str, str]  # ZIP code -> error message

    @property
    def ok(self) -> bool:
        return not self.failed
