"""Tests for background cache pre-warming."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from weatherdash.config.schema import PrefetchConfig
from weatherdash.ingest.errors import UpstreamServerError, ZipCodeNotFound
from weatherdash.pipeline.prefetcher import CachePrefetcher

ZIPS = ["75454", "75070", "75035"]


@pytest.fixture
def pipeline():
    p = MagicMock()
    p.get_weather_by_zip = AsyncMock(return_value=None)
    return p


def make_prefetcher(pipeline, **overrides) -> CachePrefetcher:
    return CachePrefetcher(pipeline, PrefetchConfig(zip_codes=ZIPS, **overrides))


class TestRunCycle:
    def test_refreshes_every_zip(self, pipeline):
        prefetcher = make_prefetcher(pipeline)
        cycle = asyncio.run(prefetcher.run_cycle())

        assert cycle.ok
        assert cycle.number == 1
        assert cycle.refreshed == ZIPS
        assert sorted(c.args[0] for c in pipeline.get_weather_by_zip.await_args_list) == sorted(ZIPS)

    def test_one_failure_does_not_stop_the_others(self, pipeline, caplog):
        async def fetch(zip_code):
            if zip_code == "75070":
                raise UpstreamServerError("NWS down", status_code=503)

        pipeline.get_weather_by_zip.side_effect = fetch
        prefetcher = make_prefetcher(pipeline)

        with caplog.at_level(logging.INFO, logger="weatherdash.pipeline.prefetcher"):
            cycle = asyncio.run(prefetcher.run_cycle())

        assert cycle.refreshed == ["75454", "75035"]
        assert cycle.failed == {"75070": "NWS down"}
        assert "Failed to refresh ZIP 75070: NWS down" in caplog.text
        summaries = [r for r in caplog.records if "Prefetch cycle #1" in r.getMessage()]
        assert len(summaries) == 1
        assert "2/3 ZIP codes refreshed" in summaries[0].getMessage()


class TestBackoff:
    def test_success_uses_interval(self, pipeline):
        prefetcher = make_prefetcher(pipeline, interval_seconds=300)
        cycle = asyncio.run(prefetcher.run_cycle())
        assert prefetcher.next_wait(cycle) == 300

    def test_total_failure_doubles_until_capped(self, pipeline):
        pipeline.get_weather_by_zip.side_effect = ZipCodeNotFound("gone")
        prefetcher = make_prefetcher(
            pipeline, interval_seconds=300, max_backoff_seconds=1800
        )

        async def scenario():
            return [prefetcher.next_wait(await prefetcher.run_cycle()) for _ in range(3)]

        assert asyncio.run(scenario()) == [600, 1200, 1800]
        assert prefetcher.status()["consecutive_failures"] == 3

    def test_partial_success_resets(self, pipeline):
        prefetcher = make_prefetcher(pipeline, interval_seconds=300)
        prefetcher.next_wait(None)
        cycle = asyncio.run(prefetcher.run_cycle())
        assert prefetcher.next_wait(cycle) == 300
        assert prefetcher.status()["consecutive_failures"] == 0


class TestRunForever:
    def test_first_cycle_runs_at_startup(self, pipeline):
        prefetcher = make_prefetcher(pipeline, interval_seconds=3600)

        async def scenario():
            stop = asyncio.Event()
            task = asyncio.create_task(prefetcher.run_forever(stop))
            while pipeline.get_weather_by_zip.await_count < len(ZIPS):
                await asyncio.sleep(0)
            stop.set()
            await asyncio.wait_for(task, timeout=1)

        asyncio.run(scenario())
        assert prefetcher.status()["total_cycles"] == 1
        assert not prefetcher.running

    def test_repeats_every_interval(self, pipeline):
        prefetcher = make_prefetcher(pipeline, interval_seconds=0.01)

        async def scenario():
            stop = asyncio.Event()
            task = asyncio.create_task(prefetcher.run_forever(stop))
            while pipeline.get_weather_by_zip.await_count < 2 * len(ZIPS):
                await asyncio.sleep(0.005)
            stop.set()
            await asyncio.wait_for(task, timeout=1)

        asyncio.run(scenario())
        assert prefetcher.status()["total_cycles"] >= 2

    def test_disabled_returns_without_fetching(self, pipeline):
        prefetcher = make_prefetcher(pipeline, enabled=False)
        asyncio.run(prefetcher.run_forever(asyncio.Event()))
        pipeline.get_weather_by_zip.assert_not_awaited()
        assert prefetcher.status()["total_cycles"] == 0


class TestStatus:
    def test_before_first_cycle(self, pipeline):
        status = make_prefetcher(pipeline).status()
        assert status["enabled"] is True
        assert status["running"] is False
        assert status["cached_zip_codes"] == ZIPS
        assert status["refresh_interval_seconds"] == 300.0
        assert status["last_cycle"] is None

    def test_reports_last_cycle(self, pipeline):
        pipeline.get_weather_by_zip.side_effect = [None, ZipCodeNotFound("gone"), None]
        prefetcher = make_prefetcher(pipeline)
        asyncio.run(prefetcher.run_cycle())

        last = prefetcher.status()["last_cycle"]
        assert last["number"] == 1
        assert last["failed"] == {"75070": "gone"}
        assert last["refreshed"] == ["75454", "75035"]
