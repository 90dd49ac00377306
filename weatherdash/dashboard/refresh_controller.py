"""Keeps the displayed weather package fresh without blocking the UI.

Manual fetches drive the loading flag and surface errors. Background
refreshes run on a timer, stay silent on failure, back off exponentially
and pause after repeated failures until a manual refresh succeeds.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from weatherdash.config.schema import RefreshConfig
from weatherdash.dashboard.messages import (
    INVALID_ZIP_MESSAGE,
    friendly_error_message,
)
from weatherdash.dashboard.refresh_state import (
    RefreshState,
    initial_state,
    next_delay,
    on_failure,
    on_success,
)
from weatherdash.dashboard.store import WeatherStore
from weatherdash.dashboard.visibility import VisibilityMonitor
from weatherdash.ingest.geocoding import is_valid_zip_code
from weatherdash.models.weather import WeatherPackage

logger = logging.getLogger(__name__)

FetchWeather = Callable[[str], Awaitable[WeatherPackage]]


class RefreshController:
    def __init__(
        self,
        store: WeatherStore,
        fetch_weather: FetchWeather,
        refresh_weather: FetchWeather | None = None,
        visibility: VisibilityMonitor | None = None,
        config: RefreshConfig | None = None,
    ):
        self.store = store
        self.config = config or RefreshConfig()
        self.visibility = visibility
        self.state: RefreshState = initial_state(self.config)
        self._fetch = fetch_weather
        self._refresh = refresh_weather or fetch_weather
        self._in_flight = 0
        self._started = False
        self._closed = False
        self._timer: asyncio.TimerHandle | None = None
        self._timer_delay: float | None = None
        self._error_timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribe_visibility: Callable[[], None] | None = None

    # --- Lifecycle ---

    def start(self) -> None:
        """Mount: listen for visibility changes and arm the refresh timer."""
        if self._started or self._closed:
            return
        self._started = True
        if self.visibility is not None:
            self._unsubscribe_visibility = self.visibility.subscribe(
                self._on_visibility_change
            )
        self._schedule_next()

    def close(self) -> None:
        """Unmount: no timer, listener or pending task fires after this."""
        self._closed = True
        self._cancel_timer()
        if self._error_timer is not None:
            self._error_timer.cancel()
            self._error_timer = None
        if self._unsubscribe_visibility is not None:
            self._unsubscribe_visibility()
            self._unsubscribe_visibility = None
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    @property
    def is_auto_refresh_paused(self) -> bool:
        return self.state.is_paused

    @property
    def scheduled_delay(self) -> float | None:
        """Delay of the currently armed refresh timer, if any."""
        return self._timer_delay if self._timer is not None else None

    @property
    def is_in_flight(self) -> bool:
        return self._in_flight > 0

    # --- Manual operations ---

    async def fetch_weather(self, zip_code: str) -> bool:
        """Load weather for a new ZIP code. Returns True on success."""
        if not is_valid_zip_code(zip_code):
            self._show_error(INVALID_ZIP_MESSAGE)
            return False
        return await self._manual(zip_code, self._fetch, remember=True)

    async def refresh_weather(self) -> bool:
        """Re-fetch the current location, bypassing caches.

        Success also clears backoff and resumes a paused auto-refresh.
        """
        zip_code = self.store.state.current_zip_code
        if not zip_code:
            return False
        return await self._manual(zip_code, self._refresh, remember=False)

    def dismiss_error(self) -> None:
        if self._error_timer is not None:
            self._error_timer.cancel()
            self._error_timer = None
        self.store.clear_error()

    async def _manual(self, zip_code: str, fetch: FetchWeather, remember: bool) -> bool:
        self.store.set_loading(True)
        self.dismiss_error()
        self._in_flight += 1
        try:
            package = await fetch(zip_code)
        except Exception as e:
            logger.warning("Weather fetch for %s failed: %s", zip_code, e)
            self._show_error(friendly_error_message(e))
            return False
        finally:
            self._in_flight -= 1
            self.store.set_loading(False)

        if self.state.location_key != zip_code:
            # New location, new session
            self.state = initial_state(self.config, zip_code)
        else:
            self.state = on_success(self.state, self.config)
        self.store.set_weather(package)
        self.store.set_zip_code(zip_code)
        if remember:
            self.store.add_recent_zip_code(zip_code)
        self.store.set_auto_refresh_paused(False)
        self._schedule_next()
        return True

    # --- Background refresh ---

    async def background_refresh(self) -> bool:
        """One silent refresh of the current location.

        Skipped (returns False) when there is no location, another fetch is
        in flight, or auto-refresh is paused.
        """
        zip_code = self.store.state.current_zip_code
        if not zip_code or self._in_flight or self.state.is_paused or self._closed:
            return False

        self._in_flight += 1
        try:
            package = await self._fetch(zip_code)
        except Exception as e:
            if zip_code == self.store.state.current_zip_code:
                self._record_background_failure(e)
            return False
        finally:
            self._in_flight -= 1

        if zip_code != self.store.state.current_zip_code:
            logger.debug("Dropping background result for stale location %s", zip_code)
            return False
        self.state = on_success(self.state, self.config)
        self.store.set_weather(package)
        self.store.set_auto_refresh_paused(False)
        return True

    async def tick(self) -> None:
        """Run one background refresh, then re-arm the timer."""
        await self.background_refresh()
        self._schedule_next()

    def _record_background_failure(self, error: Exception) -> None:
        self.state = on_failure(self.state, self.config)
        if self.state.is_paused:
            logger.warning(
                "Background refresh paused after %d consecutive failures. "
                "Use manual refresh to retry. Last error: %s",
                self.state.consecutive_failures, error,
            )
            self.store.set_auto_refresh_paused(True)
            self._cancel_timer()
        else:
            logger.warning(
                "Background refresh failed (%d/%d). Next retry in %.0fs: %s",
                self.state.consecutive_failures,
                self.config.max_consecutive_failures,
                self.state.backoff_delay,
                error,
            )

    # --- Timers ---

    def _schedule_next(self) -> None:
        """(Re)create the timer with the delay the current state calls for."""
        self._cancel_timer()
        if not self._started or self._closed:
            return
        if not self.store.state.current_zip_code:
            return
        delay = next_delay(self.state, self.config)
        if delay is None:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._on_timer)
        self._timer_delay = delay

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._timer_delay = None

    def _on_timer(self) -> None:
        self._timer = None
        self._timer_delay = None
        if self._closed:
            return
        if self.visibility is not None and not self.visibility.is_visible:
            # Hidden: keep the cadence, catch up when visible again
            self._schedule_next()
            return
        self._spawn(self.tick())

    def _on_visibility_change(self, visible: bool) -> None:
        if not visible or self._closed:
            return
        if not self.store.state.current_zip_code or self.state.is_paused:
            return
        logger.debug("Dashboard visible again, refreshing immediately")
        self._spawn(self.tick())

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # --- Errors ---

    def _show_error(self, message: str) -> None:
        """Show a dismissible error that clears itself after a while."""
        if self._error_timer is not None:
            self._error_timer.cancel()
            self._error_timer = None
        self.store.set_error(message)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._error_timer = loop.call_later(
            self.config.error_display_seconds, self._expire_error, message
        )

    def _expire_error(self, message: str) -> None:
        self._error_timer = None
        if self.store.state.error == message:
            self.store.clear_error()

