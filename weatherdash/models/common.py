"""Common types and helpers shared across models."""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TypeAlias

ZipCode: TypeAlias = str

COORDINATE_DECIMALS = 4
COORDINATE_QUANTUM = Decimal(1).scaleb(-COORDINATE_DECIMALS)


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def epoch_to_iso(seconds: float) -> str:
    """Convert epoch seconds to an ISO 8601 UTC timestamp."""
    return datetime.fromtimestamp(seconds, UTC).isoformat()


def round_coordinate(value: float) -> float:
    """Round to 4 decimals, halves away from zero.

    Rounds the shortest decimal repr of the float rather than its binary
    value, so 40.71285 always becomes 40.7129.
    """
    rounded = Decimal(str(value)).quantize(COORDINATE_QUANTUM, rounding=ROUND_HALF_UP)
    # + 0.0 folds -0.0 into 0.0 so both signs share one key
    return float(rounded) + 0.0


def format_coordinate(value: float) -> str:
    """Render a coordinate with exactly 4 decimals, e.g. 40.7128 or -74.0060."""
    return f"{round_coordinate(value):.{COORDINATE_DECIMALS}f}"


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def rounded(self) -> "Coordinates":
        return Coordinates(
            round_coordinate(self.latitude), round_coordinate(self.longitude)
        )

    def key(self) -> str:
        """Fixed-precision "lat,lon" used in request paths and cache keys."""
        return f"{format_coordinate(self.latitude)},{format_coordinate(self.longitude)}"
