"""NWS, UV-index and sun-time data models."""

from dataclasses import dataclass, field
from enum import StrEnum

from weatherdash.models.common import Coordinates, ZipCode


class AlertSeverity(StrEnum):
    EXTREME = "Extreme"
    SEVERE = "Severe"
    MODERATE = "Moderate"
    MINOR = "Minor"
    UNKNOWN = "Unknown"


class AlertUrgency(StrEnum):
    IMMEDIATE = "Immediate"
    EXPECTED = "Expected"
    FUTURE = "Future"
    PAST = "Past"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class GridReference:
    office_id: str
    grid_x: int
    grid_y: int

    def path(self) -> str:
        return f"{self.office_id}/{self.grid_x},{self.grid_y}"


@dataclass(frozen=True)
class QuantitativeValue:
    value: float | None  # None when the sensor is absent or QC'd out
    unit_code: str = ""


@dataclass(frozen=True)
class ForecastPeriod:
    number: int
    name: str
    start_time: str
    end_time: str
    is_daytime: bool
    temperature: int | None
    temperature_unit: str
    precipitation_probability: int | None
    wind_speed: str
    wind_direction: str
    icon: str
    short_forecast: str
    detailed_forecast: str


@dataclass(frozen=True)
class HourlyPeriod:
    number: int
    start_time: str
    end_time: str
    is_daytime: bool
    temperature: int | None
    temperature_unit: str
    precipitation_probability: int | None
    dewpoint: QuantitativeValue | None
    relative_humidity: QuantitativeValue | None
    wind_speed: str
    wind_direction: str
    icon: str
    short_forecast: str


@dataclass(frozen=True)
class Station:
    station_id: str
    name: str
    time_zone: str = ""


@dataclass(frozen=True)
class CloudLayer:
    base: QuantitativeValue
    amount: str


@dataclass(frozen=True)
class Observation:
    station_id: str
    timestamp: str
    text_description: str
    icon: str | None
    temperature: QuantitativeValue
    dewpoint: QuantitativeValue
    wind_direction: QuantitativeValue
    wind_speed: QuantitativeValue
    wind_gust: QuantitativeValue
    barometric_pressure: QuantitativeValue
    visibility: QuantitativeValue
    relative_humidity: QuantitativeValue
    heat_index: QuantitativeValue
    wind_chill: QuantitativeValue
    cloud_layers: list[CloudLayer] = field(default_factory=list)


@dataclass(frozen=True)
class Alert:
    id: str
    event: str
    headline: str
    description: str
    severity: AlertSeverity
    urgency: AlertUrgency
    onset: str | None
    expires: str | None
    area_desc: str
    status: str
    message_type: str
    category: str


@dataclass(frozen=True)
class WeatherSnapshot:
    grid_reference: GridReference
    forecast: list[ForecastPeriod]
    hourly_forecast: list[HourlyPeriod]
    stations: list[Station]
    observation: Observation | None
    alerts: list[Alert]


@dataclass(frozen=True)
class UVIndexReading:
    value: float
    timestamp: str  # ISO 8601
    latitude: float
    longitude: float


@dataclass(frozen=True)
class SunTimes:
    """Sun events as ISO 8601 strings; None when the event does not occur."""

    sunrise: str | None
    sunset: str | None
    solar_noon: str | None
    civil_dawn: str | None
    civil_dusk: str | None


@dataclass(frozen=True)
class ZipLocation:
    zip_code: ZipCode
    coordinates: Coordinates
    place_name: str
    state: str


@dataclass(frozen=True)
class WeatherPackage:
    zip_code: ZipCode
    coordinates: Coordinates
    place_name: str
    snapshot: WeatherSnapshot
    uv_index: UVIndexReading | None
    sun_times: SunTimes
    last_updated: str
