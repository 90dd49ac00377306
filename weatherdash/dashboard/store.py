"""Observable dashboard state that a UI subscribes to."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from weatherdash.models.common import ZipCode
from weatherdash.models.weather import WeatherPackage

logger = logging.getLogger(__name__)

MAX_RECENT_ZIP_CODES = 5


@dataclass(frozen=True)
class DashboardState:
    current_zip_code: ZipCode | None = None
    weather: WeatherPackage | None = None
    is_loading: bool = False
    error: str | None = None
    recent_zip_codes: tuple[ZipCode, ...] = ()
    is_auto_refresh_paused: bool = False


Listener = Callable[[DashboardState], None]


class WeatherStore:
    """Holds one immutable DashboardState and notifies listeners on change."""

    def __init__(self, max_recent: int = MAX_RECENT_ZIP_CODES):
        self.max_recent = max_recent
        self.state = DashboardState()
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> None:
        new_state = replace(self.state, **changes)
        if new_state == self.state:
            return
        self.state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("Dashboard listener failed")

    def set_zip_code(self, zip_code: ZipCode | None) -> None:
        self._update(current_zip_code=zip_code)

    def set_weather(self, weather: WeatherPackage | None) -> None:
        # A fresh package supersedes whatever error was showing
        self._update(weather=weather, error=None)

    def set_loading(self, loading: bool) -> None:
        self._update(is_loading=loading)

    def set_error(self, error: str | None) -> None:
        self._update(error=error)

    def clear_error(self) -> None:
        self._update(error=None)

    def set_auto_refresh_paused(self, paused: bool) -> None:
        self._update(is_auto_refresh_paused=paused)

    def add_recent_zip_code(self, zip_code: ZipCode) -> None:
        """Move ``zip_code`` to the front, dropping duplicates and overflow."""
        others = tuple(z for z in self.state.recent_zip_codes if z != zip_code)
        self._update(recent_zip_codes=((zip_code,) + others)[: self.max_recent])
