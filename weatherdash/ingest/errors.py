"""Upstream failure taxonomy shared by the NWS, UV-index and geocoding clients."""


class UpstreamError(Exception):
    """Raised when an upstream weather API call fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        attempts: int = 1,
        endpoint: str = "",
        body: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts
        self.endpoint = endpoint
        self.body = body


class RateLimitExceeded(UpstreamError):
    """429 after the fixed rate-limit schedule ran out (or was empty)."""


class ResourceNotFound(UpstreamError):
    """404. Never retried."""


class UpstreamServerError(UpstreamError):
    """5xx after exhausting the exponential retry budget."""


class TransportError(UpstreamError):
    """Network failure or timeout after exhausting retries."""


class AuthError(UpstreamError):
    """401/403. Never retried."""


class GenericUpstreamError(UpstreamError):
    """Any other non-success status."""


class GeocodingError(Exception):
    """Raised when a ZIP code cannot be resolved to coordinates."""


class InvalidZipCode(GeocodingError):
    pass


class ZipCodeNotFound(GeocodingError):
    pass
