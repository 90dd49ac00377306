"""Pure state transitions for background refresh backoff."""

from dataclasses import dataclass, replace

from weatherdash.config.schema import RefreshConfig


@dataclass(frozen=True)
class RefreshState:
    location_key: str | None
    consecutive_failures: int
    backoff_delay: float
    is_paused: bool


def initial_state(config: RefreshConfig, location_key: str | None = None) -> RefreshState:
    return RefreshState(
        location_key=location_key,
        consecutive_failures=0,
        backoff_delay=config.initial_backoff_seconds,
        is_paused=False,
    )


def on_success(state: RefreshState, config: RefreshConfig) -> RefreshState:
    """Any successful fetch returns to baseline and un-pauses."""
    return replace(
        state,
        consecutive_failures=0,
        backoff_delay=config.initial_backoff_seconds,
        is_paused=False,
    )


def on_failure(state: RefreshState, config: RefreshConfig) -> RefreshState:
    """Count a background failure; double the delay or pause at the limit."""
    failures = state.consecutive_failures + 1
    if failures >= config.max_consecutive_failures:
        return replace(state, consecutive_failures=failures, is_paused=True)
    return replace(
        state,
        consecutive_failures=failures,
        backoff_delay=min(state.backoff_delay * 2, config.max_backoff_seconds),
    )


def next_delay(state: RefreshState, config: RefreshConfig) -> float | None:
    """Seconds until the next background tick, or None when paused."""
    if state.is_paused:
        return None
    if state.consecutive_failures > 0:
        return state.backoff_delay
    return config.interval_seconds
