"""Translate raw fetch failures into plain-language dashboard messages."""

from weatherdash.ingest.errors import (
    AuthError,
    GeocodingError,
    InvalidZipCode,
    RateLimitExceeded,
    ResourceNotFound,
    TransportError,
    UpstreamError,
    UpstreamServerError,
    ZipCodeNotFound,
)

INVALID_ZIP_MESSAGE = "Invalid ZIP code. Please enter a 5-digit ZIP code."
NETWORK_MESSAGE = (
    "Unable to connect to the weather service. Please check your internet connection."
)
NOT_FOUND_MESSAGE = "Weather data not found for this location. Please verify the ZIP code."
RATE_LIMIT_MESSAGE = "Too many requests. Please wait a moment and try again."
UNAVAILABLE_MESSAGE = "Weather service is temporarily unavailable. Please try again later."
AUTH_MESSAGE = "The weather service rejected our credentials. Please check the configuration."
GENERIC_MESSAGE = "Failed to fetch weather data."
PAUSED_MESSAGE = "Auto-refresh paused after repeated failures. Refresh manually to resume."


def friendly_error_message(error: BaseException) -> str:
    if isinstance(error, InvalidZipCode):
        return INVALID_ZIP_MESSAGE
    if isinstance(error, (ZipCodeNotFound, ResourceNotFound)):
        return NOT_FOUND_MESSAGE
    if isinstance(error, TransportError):
        return NETWORK_MESSAGE
    if isinstance(error, RateLimitExceeded):
        return RATE_LIMIT_MESSAGE
    if isinstance(error, AuthError):
        return AUTH_MESSAGE
    if isinstance(error, UpstreamServerError):
        return UNAVAILABLE_MESSAGE
    if isinstance(error, UpstreamError):
        status = error.status_code
        if status == 404:
            return NOT_FOUND_MESSAGE
        if status == 429:
            return RATE_LIMIT_MESSAGE
        if status is not None and status >= 500:
            return UNAVAILABLE_MESSAGE
    if isinstance(error, GeocodingError):
        return str(error) or NOT_FOUND_MESSAGE
    return str(error) or GENERIC_MESSAGE
