"""Bounded retry executor with per-error-class backoff policies."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from weatherdash.ingest.errors import (
    AuthError,
    GenericUpstreamError,
    RateLimitExceeded,
    ResourceNotFound,
    TransportError,
    UpstreamServerError,
)

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[httpx.Response]]
Sleep = Callable[[float], Awaitable[None]]

AUTH_STATUSES = (401, 403)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times, and after what delay, each error class is retried.

    429s follow ``rate_limit_delays`` verbatim (an empty schedule means no
    retry). 5xx responses and transport errors back off exponentially from
    their base delay, doubling on every retry.
    """

    name: str
    rate_limit_delays: tuple[float, ...] = ()
    max_retries: int = 3
    base_delay: float = 1.0
    transport_retries: int = 3
    transport_base_delay: float = 1.0
    retry_client_errors: bool = False

    def server_delay(self, retry_index: int) -> float:
        return self.base_delay * (2**retry_index)

    def transport_delay(self, retry_index: int) -> float:
        return self.transport_base_delay * (2**retry_index)


NWS_RETRY_POLICY = RetryPolicy(
    name="NWS",
    rate_limit_delays=(5.0, 10.0, 20.0),
    max_retries=3,
    base_delay=1.0,
    transport_retries=3,
    transport_base_delay=1.0,
)

# Two attempts in total for anything retryable; 401/429 fail fast.
UV_RETRY_POLICY = RetryPolicy(
    name="UV",
    rate_limit_delays=(),
    max_retries=1,
    base_delay=1.0,
    transport_retries=1,
    transport_base_delay=1.0,
    retry_client_errors=True,
)

GEOCODING_RETRY_POLICY = RetryPolicy(
    name="Geocoding",
    rate_limit_delays=(2.0,),
    max_retries=1,
    base_delay=1.0,
    transport_retries=1,
    transport_base_delay=1.0,
)


class RetryExecutor:
    def __init__(self, sleep: Sleep = asyncio.sleep):
        self._sleep = sleep

    async def execute(
        self, operation: Operation, policy: RetryPolicy, endpoint: str = ""
    ) -> httpx.Response:
        """Run ``operation`` until it yields a non-error response or the
        policy gives up.

        Returns the successful response. Raises a subclass of
        ``UpstreamError`` describing the final failure.
        """
        attempts = 0
        rate_limit_retries = 0
        server_retries = 0
        transport_retries = 0

        while True:
            attempts += 1
            try:
                resp = await operation()
            except httpx.RequestError as e:
                if transport_retries < policy.transport_retries:
                    delay = policy.transport_delay(transport_retries)
                    transport_retries += 1
                    logger.warning(
                        "%s request error on %s, retrying in %.1fs (attempt %d/%d): %s",
                        policy.name, endpoint, delay,
                        transport_retries, policy.transport_retries, e,
                    )
                    await self._sleep(delay)
                    continue
                raise TransportError(
                    f"{policy.name} request to {endpoint} failed after "
                    f"{attempts} attempts: {e}",
                    attempts=attempts,
                    endpoint=endpoint,
                ) from e

            status = resp.status_code
            if status < 400:
                return resp

            if status == 429:
                if rate_limit_retries < len(policy.rate_limit_delays):
                    delay = policy.rate_limit_delays[rate_limit_retries]
                    rate_limit_retries += 1
                    logger.warning(
                        "%s rate limit hit on %s, retrying in %.1fs (attempt %d/%d)",
                        policy.name, endpoint, delay,
                        rate_limit_retries, len(policy.rate_limit_delays),
                    )
                    await self._sleep(delay)
                    continue
                raise RateLimitExceeded(
                    f"{policy.name} rate limit exceeded after "
                    f"{rate_limit_retries} retries",
                    status_code=429,
                    attempts=attempts,
                    endpoint=endpoint,
                )

            if status == 404:
                raise ResourceNotFound(
                    f"Resource not found: {endpoint}",
                    status_code=404,
                    attempts=attempts,
                    endpoint=endpoint,
                    body=resp.text,
                )

            if status in AUTH_STATUSES:
                raise AuthError(
                    f"{policy.name} rejected credentials ({status}) for {endpoint}",
                    status_code=status,
                    attempts=attempts,
                    endpoint=endpoint,
                )

            retryable = status >= 500 or policy.retry_client_errors
            if retryable and server_retries < policy.max_retries:
                delay = policy.server_delay(server_retries)
                server_retries += 1
                logger.warning(
                    "%s %s returned %d, retrying in %.1fs (attempt %d/%d)",
                    policy.name, endpoint, status, delay,
                    server_retries, policy.max_retries,
                )
                await self._sleep(delay)
                continue

            if status >= 500:
                raise UpstreamServerError(
                    f"{policy.name} server error {status} after {attempts} attempts",
                    status_code=status,
                    attempts=attempts,
                    endpoint=endpoint,
                    body=resp.text,
                )
            raise GenericUpstreamError(
                f"HTTP error {status}: {resp.text}",
                status_code=status,
                attempts=attempts,
                endpoint=endpoint,
                body=resp.text,
            )


async def gather_or_raise(*aws: Awaitable) -> list:
    """Await everything, then raise the first failure in argument order.

    Every outcome is retrieved, so a sibling's exception is never left
    unobserved on its task.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results
