"""Sunrise, sunset and civil twilight times from the astral library."""

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime

from astral import Observer
from astral import sun as astral_sun

from weatherdash.models.common import utc_now
from weatherdash.models.weather import SunTimes

logger = logging.getLogger(__name__)


def get_sun_times(lat: float, lon: float, on: date | None = None) -> SunTimes:
    """Sun events for a location and day, as ISO 8601 UTC strings.

    Near the poles some events do not happen on a given day; those fields
    are None rather than an error.
    """
    on = on or utc_now().date()
    observer = Observer(latitude=lat, longitude=lon)
    return SunTimes(
        sunrise=_event(astral_sun.sunrise, observer, on),
        sunset=_event(astral_sun.sunset, observer, on),
        solar_noon=_event(astral_sun.noon, observer, on),
        civil_dawn=_event(astral_sun.dawn, observer, on),
        civil_dusk=_event(astral_sun.dusk, observer, on),
    )


def _event(
    fn: Callable[..., datetime], observer: Observer, on: date
) -> str | None:
    try:
        return fn(observer, on, tzinfo=UTC).isoformat()
    except ValueError as e:
        logger.debug("No %s for %s on %s: %s", fn.__name__, observer, on, e)
        return None
