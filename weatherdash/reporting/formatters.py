"""Output formatters for weather packages."""

import json
from dataclasses import asdict

from weatherdash.dashboard.messages import PAUSED_MESSAGE
from weatherdash.dashboard.store import DashboardState
from weatherdash.models.weather import QuantitativeValue, WeatherPackage

MAX_TEXT_PERIODS = 4
MAX_TEXT_HOURS = 6


def format_package_text(p: WeatherPackage) -> str:
    """Plain text rendering for the terminal."""
    snap = p.snapshot
    grid = snap.grid_reference
    lines = [
        f"=== {p.place_name or p.zip_code} ({p.zip_code}) | "
        f"{p.coordinates.key()} | grid {grid.path()} ===",
    ]

    obs = snap.observation
    if obs is None:
        lines.append("Now: no current observation available")
    else:
        lines.append(
            f"Now ({obs.station_id}): {obs.text_description or '?'}, "
            f"{_value(obs.temperature, '°C')}, "
            f"humidity {_value(obs.relative_humidity, '%')}, "
            f"wind {_value(obs.wind_speed, ' km/h')}"
        )

    if p.uv_index is not None:
        lines.append(f"UV index: {p.uv_index.value:.1f}")

    sun = p.sun_times
    lines.append(f"Sunrise: {sun.sunrise or '--'} | Sunset: {sun.sunset or '--'}")

    if snap.forecast:
        lines.append("Forecast:")
        for period in snap.forecast[:MAX_TEXT_PERIODS]:
            precip = (
                f", {period.precipitation_probability}% precip"
                if period.precipitation_probability is not None
                else ""
            )
            lines.append(
                f"  {period.name}: {_degrees(period.temperature, period.temperature_unit)} "
                f"{period.short_forecast}{precip}"
            )

    if snap.hourly_forecast:
        hours = ", ".join(
            f"{h.start_time[11:16]} {_degrees(h.temperature, h.temperature_unit)}"
            for h in snap.hourly_forecast[:MAX_TEXT_HOURS]
        )
        lines.append(f"Hourly: {hours}")

    if snap.alerts:
        lines.append(f"Alerts: {len(snap.alerts)}")
        for alert in snap.alerts:
            lines.append(f"  [{alert.severity}] {alert.event}: {alert.headline}")

    lines.append(f"Updated: {p.last_updated}")
    return "\n".join(lines)


def format_package_json(p: WeatherPackage) -> str:
    """JSON rendering for programmatic consumption."""
    return json.dumps(asdict(p), indent=2)


def format_dashboard_text(state: DashboardState) -> str:
    """Full dashboard frame: banners, then the current package if any."""
    lines = []
    if state.is_loading:
        lines.append("Loading...")
    if state.error:
        lines.append(f"! {state.error}")
    if state.is_auto_refresh_paused:
        lines.append(f"! {PAUSED_MESSAGE}")
    if state.weather is not None:
        lines.append(format_package_text(state.weather))
    if state.recent_zip_codes:
        lines.append(f"Recent: {', '.join(state.recent_zip_codes)}")
    return "\n".join(lines)


def _value(q: QuantitativeValue, suffix: str) -> str:
    return "--" if q.value is None else f"{q.value:.1f}{suffix}"


def _degrees(temperature: int | None, unit: str) -> str:
    return "--" if temperature is None else f"{temperature}°{unit}"
