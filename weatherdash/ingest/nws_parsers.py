"""Parsers turning NWS geo+json payloads into weather models."""

import logging
from typing import Any

from weatherdash.models.weather import (
    Alert,
    AlertSeverity,
    AlertUrgency,
    CloudLayer,
    ForecastPeriod,
    GridReference,
    HourlyPeriod,
    Observation,
    QuantitativeValue,
    Station,
)

logger = logging.getLogger(__name__)


class MalformedResponse(ValueError):
    """Raised when a payload lacks fields we cannot do without."""


def parse_grid_reference(raw: dict) -> GridReference:
    props = raw.get("properties", {})
    office = props.get("gridId")
    grid_x = props.get("gridX")
    grid_y = props.get("gridY")
    if office is None or grid_x is None or grid_y is None:
        raise MalformedResponse("NWS points response missing grid data")
    return GridReference(office_id=office, grid_x=int(grid_x), grid_y=int(grid_y))


def parse_forecast(raw: dict) -> list[ForecastPeriod]:
    periods = raw.get("properties", {}).get("periods", [])
    return [
        ForecastPeriod(
            number=int(p.get("number", i + 1)),
            name=p.get("name", ""),
            start_time=p.get("startTime", ""),
            end_time=p.get("endTime", ""),
            is_daytime=bool(p.get("isDaytime", False)),
            temperature=_temperature(p),
            temperature_unit=p.get("temperatureUnit", "F"),
            precipitation_probability=_precipitation(p),
            wind_speed=p.get("windSpeed", ""),
            wind_direction=p.get("windDirection", ""),
            icon=p.get("icon", ""),
            short_forecast=p.get("shortForecast", ""),
            detailed_forecast=p.get("detailedForecast", ""),
        )
        for i, p in enumerate(periods)
    ]


def parse_hourly_forecast(raw: dict) -> list[HourlyPeriod]:
    periods = raw.get("properties", {}).get("periods", [])
    parsed = [
        HourlyPeriod(
            number=int(p.get("number", i + 1)),
            start_time=p.get("startTime", ""),
            end_time=p.get("endTime", ""),
            is_daytime=bool(p.get("isDaytime", False)),
            temperature=_temperature(p),
            temperature_unit=p.get("temperatureUnit", "F"),
            precipitation_probability=_precipitation(p),
            dewpoint=_optional_quantity(p.get("dewpoint")),
            relative_humidity=_optional_quantity(p.get("relativeHumidity")),
            wind_speed=p.get("windSpeed", ""),
            wind_direction=p.get("windDirection", ""),
            icon=p.get("icon", ""),
            short_forecast=p.get("shortForecast", ""),
        )
        for i, p in enumerate(periods)
    ]
    # ISO timestamps from one office share an offset, so string order is time order
    return sorted(parsed, key=lambda h: h.start_time)


def parse_stations(raw: dict) -> list[Station]:
    stations = []
    for feature in raw.get("features", []):
        props = feature.get("properties") or {}
        station_id = props.get("stationIdentifier")
        if not station_id:
            logger.warning("Skipping station feature without identifier")
            continue
        stations.append(
            Station(
                station_id=station_id,
                name=props.get("name", ""),
                time_zone=props.get("timeZone", ""),
            )
        )
    return stations


def parse_observation(raw: dict, station_id: str) -> Observation:
    props = raw.get("properties", {})
    return Observation(
        station_id=station_id,
        timestamp=props.get("timestamp", ""),
        text_description=props.get("textDescription", ""),
        icon=props.get("icon"),
        temperature=_quantity(props.get("temperature")),
        dewpoint=_quantity(props.get("dewpoint")),
        wind_direction=_quantity(props.get("windDirection")),
        wind_speed=_quantity(props.get("windSpeed")),
        wind_gust=_quantity(props.get("windGust")),
        barometric_pressure=_quantity(props.get("barometricPressure")),
        visibility=_quantity(props.get("visibility")),
        relative_humidity=_quantity(props.get("relativeHumidity")),
        heat_index=_quantity(props.get("heatIndex")),
        wind_chill=_quantity(props.get("windChill")),
        cloud_layers=[
            CloudLayer(base=_quantity(layer.get("base")), amount=layer.get("amount", ""))
            for layer in props.get("cloudLayers") or []
        ],
    )


def parse_alerts(raw: dict) -> list[Alert]:
    alerts = []
    for feature in raw.get("features", []):
        p = feature.get("properties", {})
        alerts.append(
            Alert(
                id=p.get("id") or feature.get("id", ""),
                event=p.get("event", ""),
                headline=p.get("headline") or "",
                description=p.get("description", ""),
                severity=_enum_or_unknown(AlertSeverity, p.get("severity")),
                urgency=_enum_or_unknown(AlertUrgency, p.get("urgency")),
                onset=p.get("onset"),
                expires=p.get("expires"),
                area_desc=p.get("areaDesc", ""),
                status=p.get("status", ""),
                message_type=p.get("messageType", ""),
                category=p.get("category", ""),
            )
        )
    return alerts


def _temperature(period: dict) -> int | None:
    value = period.get("temperature")
    return None if value is None else int(value)


def _precipitation(period: dict) -> int | None:
    value = (period.get("probabilityOfPrecipitation") or {}).get("value")
    return None if value is None else int(value)


def _quantity(raw: dict[str, Any] | None) -> QuantitativeValue:
    if not raw:
        return QuantitativeValue(value=None)
    value = raw.get("value")
    return QuantitativeValue(
        value=None if value is None else float(value),
        unit_code=raw.get("unitCode", ""),
    )


def _optional_quantity(raw: dict[str, Any] | None) -> QuantitativeValue | None:
    return None if raw is None else _quantity(raw)


def _enum_or_unknown(enum_cls, value: str | None):
    try:
        return enum_cls(value)
    except ValueError:
        return enum_cls.UNKNOWN
