"""Page/terminal visibility source the refresh controller listens to."""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

VisibilityListener = Callable[[bool], None]


class VisibilityMonitor:
    """Tracks whether the dashboard is visible and broadcasts transitions.

    Listeners receive the new visibility (True = visible) only when it
    actually changes.
    """

    def __init__(self, visible: bool = True):
        self._visible = visible
        self._listeners: list[VisibilityListener] = []

    @property
    def is_visible(self) -> bool:
        return self._visible

    def subscribe(self, listener: VisibilityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_visible(self, visible: bool) -> None:
        if visible == self._visible:
            return
        self._visible = visible
        logger.debug("Visibility changed: %s", "visible" if visible else "hidden")
        for listener in list(self._listeners):
            listener(visible)

    def hide(self) -> None:
        self.set_visible(False)

    def show(self) -> None:
        self.set_visible(True)
