"""Tests for CLI commands."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from weatherdash.cli import main
from weatherdash.ingest.errors import ZipCodeNotFound


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.delenv("OPENWEATHER_API_KEY", raising=False)
    monkeypatch.delenv("NWS_USER_AGENT", raising=False)
    path = tmp_path / "test.yaml"
    path.write_text("")
    return path


@pytest.fixture
def fake_pipeline(make_package):
    pipeline = MagicMock()
    pipeline.get_weather_by_zip = AsyncMock(return_value=make_package())
    pipeline.refresh_weather = AsyncMock(return_value=make_package())
    pipeline.aclose = AsyncMock()
    with patch("weatherdash.cli.DashboardPipeline") as cls:
        cls.from_config.return_value = pipeline
        yield pipeline


class TestCLI:
    def test_no_command_returns_1(self, capsys):
        result = main([])
        assert result == 1

    def test_config_show_masks_key(self, config_path: Path, monkeypatch, capsys):
        monkeypatch.setenv("OPENWEATHER_API_KEY", "super-secret")
        result = main(["--config", str(config_path), "config", "show"])
        assert result == 0
        out = capsys.readouterr().out
        data = json.loads(out)
        assert data["uv"]["api_key"] == "***"
        assert "super-secret" not in out

    def test_config_get(self, config_path: Path, capsys):
        result = main(["--config", str(config_path), "config", "get", "refresh.interval_seconds"])
        assert result == 0
        assert capsys.readouterr().out.strip() == "60.0"

    def test_config_get_missing(self, config_path: Path, capsys):
        result = main(["--config", str(config_path), "config", "get", "refresh.nope"])
        assert result == 1

    def test_config_set(self, config_path: Path, capsys):
        result = main([
            "--config", str(config_path),
            "config", "set", "refresh.max_consecutive_failures=5",
        ])
        assert result == 0
        assert "= 5" in capsys.readouterr().out

    def test_config_set_invalid(self, config_path: Path, capsys):
        result = main([
            "--config", str(config_path),
            "config", "set", "refresh.max_consecutive_failures=0",
        ])
        assert result == 1
        assert "Error" in capsys.readouterr().out

    def test_config_set_requires_equals(self, config_path: Path, capsys):
        result = main(["--config", str(config_path), "config", "set", "refresh"])
        assert result == 1


class TestWeatherCommand:
    def test_text_output(self, config_path: Path, fake_pipeline, capsys):
        result = main(["--config", str(config_path), "weather", "10001"])
        assert result == 0
        assert "New York City, NY (10001)" in capsys.readouterr().out
        fake_pipeline.get_weather_by_zip.assert_awaited_once_with("10001")
        fake_pipeline.aclose.assert_awaited_once()

    def test_json_output(self, config_path: Path, fake_pipeline, capsys):
        result = main(["--config", str(config_path), "weather", "10001", "--json"])
        assert result == 0
        assert json.loads(capsys.readouterr().out)["zip_code"] == "10001"

    def test_refresh_flag(self, config_path: Path, fake_pipeline, capsys):
        result = main(["--config", str(config_path), "weather", "10001", "--refresh"])
        assert result == 0
        fake_pipeline.refresh_weather.assert_awaited_once_with("10001")
        fake_pipeline.get_weather_by_zip.assert_not_awaited()

    def test_error(self, config_path: Path, fake_pipeline, capsys):
        fake_pipeline.get_weather_by_zip.side_effect = ZipCodeNotFound(
            "ZIP code not found: 00000"
        )
        result = main(["--config", str(config_path), "weather", "00000"])
        assert result == 1
        assert "ZIP code not found" in capsys.readouterr().out
        fake_pipeline.aclose.assert_awaited_once()


class TestWatchCommand:
    def test_renders_and_exits_after_duration(self, config_path: Path, fake_pipeline, capsys):
        result = main([
            "--config", str(config_path), "watch", "10001", "--duration", "0.05",
        ])
        assert result == 0
        out = capsys.readouterr().out
        assert "New York City, NY (10001)" in out
        assert "Recent: 10001" in out
        fake_pipeline.aclose.assert_awaited_once()

    def test_invalid_zip(self, config_path: Path, fake_pipeline, capsys):
        result = main(["--config", str(config_path), "watch", "abc", "--duration", "0.05"])
        assert result == 1
        assert "Invalid ZIP code" in capsys.readouterr().out
        fake_pipeline.get_weather_by_zip.assert_not_awaited()


class TestServeCommand:
    def test_runs_app_on_requested_port(self, config_path: Path):
        with patch("uvicorn.run") as run, patch("weatherdash.server.create_app") as create:
            result = main(["--config", str(config_path), "serve", "--port", "9000"])

        assert result == 0
        config = create.call_args.args[0]
        assert config.prefetch.zip_codes == ["75454", "75070", "75035"]
        run.assert_called_once_with(create.return_value, host="127.0.0.1", port=9000)
