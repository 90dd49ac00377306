"""Tests for config schema defaults and validation."""

import pytest
from pydantic import ValidationError

from weatherdash.config.schema import (
    CacheTtlConfig,
    DashboardConfig,
    PrefetchConfig,
    RefreshConfig,
    UvConfig,
)


class TestDefaults:
    def test_refresh_defaults(self):
        refresh = RefreshConfig()
        assert refresh.interval_seconds == 60.0
        assert refresh.initial_backoff_seconds == 2.0
        assert refresh.max_backoff_seconds == 32.0
        assert refresh.max_consecutive_failures == 3
        assert refresh.error_display_seconds == 10.0
        assert refresh.max_recent_zip_codes == 5

    def test_cache_ttls(self):
        ttl = CacheTtlConfig()
        assert ttl.points == 24 * 3600
        assert ttl.forecast == ttl.hourly_forecast == 3600
        assert ttl.stations == 7 * 24 * 3600
        assert ttl.observation == 600

    def test_uv_disabled_by_default(self):
        assert UvConfig().api_key == ""
        assert UvConfig().timeout_seconds == 5.0

    def test_nws_timeout(self):
        assert DashboardConfig().nws.timeout_seconds == 30.0

    def test_prefetch_defaults(self):
        prefetch = DashboardConfig().prefetch
        assert prefetch.enabled
        assert prefetch.zip_codes == ["75454", "75070", "75035"]
        assert prefetch.interval_seconds == 300.0


class TestValidation:
    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            DashboardConfig(metrics={})

    def test_negative_interval(self):
        with pytest.raises(ValidationError):
            RefreshConfig(interval_seconds=-1)

    def test_zero_ttl_allowed(self):
        assert CacheTtlConfig(observation=0).observation == 0

    @pytest.mark.parametrize("zip_code", ["7545", "754540", "75454\n", "７５４５４"])
    def test_prefetch_rejects_malformed_zip(self, zip_code):
        with pytest.raises(ValidationError):
            PrefetchConfig(zip_codes=[zip_code])

    def test_prefetch_list_may_be_empty(self):
        assert PrefetchConfig(zip_codes=[]).zip_codes == []
