from __future__ import annotations

import threading
from typing import Any, Callable, Optional

SHOW_SETTINGS = "show-settings"
STORE_DETAILS = "store-details"
DISPLAY_STATS = "display-stats"
DRAW_CHART = "draw-chart"
DISPLAY_ORDERS = "display-orders"
APP_VERSION = "app-version"
FOCUS_WINDOW = "focus-window"
GET_ORDERS_ERROR = "get-orders-error"
TRAY_TITLE = "tray-title"
TOGGLE_WINDOW = "toggle-window"

Handler = Callable[[Any], None]


class EventBus:
    """Fire-and-forget channel from the sync core to the presentation layer.

    Handlers run on the publishing thread; a failing handler is logged and
    never reaches the publisher.
    """

    def __init__(self, logger: Optional[Callable[[str], None]] = None) -> None:
        self.log = logger
        self._lock = threading.Lock()
        self._handlers: dict[str, list[Handler]] = {}
        self._wildcard: list[Callable[[str, Any], None]] = []

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        with self._lock:
            self._handlers.setdefault(event, []).append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(event, [])
                if handler in handlers:
                    handlers.remove(handler)

        return _unsubscribe

    def subscribe_all(self, handler: Callable[[str, Any], None]) -> None:
        with self._lock:
            self._wildcard.append(handler)

    def publish(self, event: str, payload: Any = None) -> None:
        with self._lock:
            handlers = list(self._handlers.get(event, []))
            wildcard = list(self._wildcard)
        for handler in handlers:
            try:
                handler(payload)
            except Exception as exc:
                self._log(f"Handler for {event} failed: {exc}")
        for handler in wildcard:
            try:
                handler(event, payload)
            except Exception as exc:
                self._log(f"Wildcard handler for {event} failed: {exc}")

    def _log(self, msg: str) -> None:
        if self.log:
            try:
                self.log(msg)
            except Exception:
                pass

