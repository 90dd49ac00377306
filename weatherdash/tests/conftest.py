"""Shared test fixtures."""

import json
from pathlib import Path

import pytest
import yaml

from weatherdash.config.schema import DashboardConfig, NwsConfig, UvConfig
from weatherdash.ingest.retry import RetryExecutor
from weatherdash.ingest.ttl_cache import TTLCache
from weatherdash.models.common import Coordinates
from weatherdash.models.weather import (
    GridReference,
    SunTimes,
    WeatherPackage,
    WeatherSnapshot,
)

NWS_BASE = "https://test-nws.example.com"
UV_BASE = "https://test-uv.example.com/data/3.0"
GEO_BASE = "https://test-geo.example.com/us"


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep stand-in that records requested delays and returns at once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def load_fixture(fixtures_dir: Path):
    def _load(name: str) -> dict:
        with open(fixtures_dir / name) as f:
            return json.load(f)

    return _load


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def executor(recording_sleep: RecordingSleep) -> RetryExecutor:
    return RetryExecutor(sleep=recording_sleep)


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(default_ttl=3600, clock=clock)


@pytest.fixture
def nws_config() -> NwsConfig:
    return NwsConfig(base_url=NWS_BASE, user_agent="weatherdash-tests (qa@example.com)")


@pytest.fixture
def uv_config() -> UvConfig:
    return UvConfig(api_key="test-key", base_url=UV_BASE)


@pytest.fixture
def default_config() -> DashboardConfig:
    return DashboardConfig()


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    data = {
        "nws": {"user_agent": "yaml-agent (ops@example.com)"},
        "refresh": {"interval_seconds": 120, "max_consecutive_failures": 4},
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


@pytest.fixture
def make_package():
    """Factory for minimal WeatherPackage instances."""

    def _make(zip_code: str = "10001", updated: str = "2026-10-16T14:00:00+00:00") -> WeatherPackage:
        return WeatherPackage(
            zip_code=zip_code,
            coordinates=Coordinates(40.7484, -73.9967),
            place_name="New York City, NY",
            snapshot=WeatherSnapshot(
                grid_reference=GridReference("OKX", 33, 35),
                forecast=[],
                hourly_forecast=[],
                stations=[],
                observation=None,
                alerts=[],
            ),
            uv_index=None,
            sun_times=SunTimes(None, None, None, None, None),
            last_updated=updated,
        )

    return _make
