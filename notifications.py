from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional
import os
import threading

from events import FOCUS_WINDOW, EventBus
from logger import report_error

NEW_ORDER_TITLE = "New Order Received!"
NEW_ORDER_BODY = "Click here to view details."

BACKEND_WIN10TOAST = "win10toast-click"
BACKEND_PLYER = "plyer"


def _log_debug(msg: str) -> None:
    """Lightweight stdout logger with timestamp."""
    try:
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        print(f"[{stamp}] {msg}")
    except Exception:
        pass


def _ui_log(ui_logger: Optional[Callable[[str], None]], msg: str) -> None:
    if ui_logger:
        try:
            ui_logger(msg)
        except Exception:
            pass


def _load_backend(os_name: Optional[str] = None) -> tuple[Optional[str], Any]:
    """Pick the toast backend: win10toast-click on Windows, plyer elsewhere.

    Only win10toast-click delivers clicks. plyer has no click callback, so
    off Windows a toast is informational and the tray opens the window.
    """
    if (os_name or os.name) == "nt":
        try:
            from win10toast_click import ToastNotifier  # type: ignore

            return BACKEND_WIN10TOAST, ToastNotifier
        except ImportError:
            pass
    try:
        from plyer import notification  # type: ignore

        return BACKEND_PLYER, notification
    except ImportError:
        return None, None


def _show_toast(backend: str, impl: Any, title: str, body: str, icon_path: Optional[str], on_click) -> None:
    if backend == BACKEND_WIN10TOAST:
        callback = None
        if on_click is not None:
            def callback():
                on_click()
                return 0
        impl().show_toast(
            title,
            body,
            icon_path=icon_path,
            duration=8,
            threaded=False,
            callback_on_click=callback,
        )
        return
    impl.notify(
        title=title,
        message=body,
        app_name="ShopTray",
        app_icon=icon_path or "",
        timeout=8,
    )


def _maybe_send_desktop_notification(
    title: str,
    body: str,
    icon: Optional[Path] = None,
    on_click: Optional[Callable[[], None]] = None,
    ui_logger: Optional[Callable[[str], None]] = None,
    threaded: bool = True,
) -> None:
    """
    Send one desktop toast. A failure is logged and reported; it is not
    retried and does not stop later toasts.
    """
    backend, impl = _load_backend()
    if backend is None:
        _log_debug("[toast] no notification backend installed.")
        _ui_log(ui_logger, "[toast] no notification backend installed.")
        return
    icon_path = str(icon.resolve()) if icon and icon.exists() else None

    def _send() -> None:
        try:
            _show_toast(backend, impl, title, body, icon_path, on_click)
            _log_debug(f"[toast] sent via {backend}: {title} | {body} (icon={icon_path})")
            _ui_log(ui_logger, f"[toast] sent: {title}")
        except Exception as exc:
            _log_debug(f"[toast] notification failed: {exc}")
            _ui_log(ui_logger, f"[toast] notification failed: {exc}")
            report_error(exc, context="desktop notification", extra={"backend": backend})

    if threaded:
        threading.Thread(target=_send, daemon=True, name="order-toast").start()
    else:
        _send()


class OrderNotifier:
    """Turns a "new order detected" event into a desktop toast.

    Clicking the toast publishes focus-window; the window owns positioning.
    """

    def __init__(
        self,
        bus: EventBus,
        icon: Optional[Path],
        logger: Callable[[str], None],
        sender: Callable[..., None] = _maybe_send_desktop_notification,
    ) -> None:
        self.bus = bus
        self.icon = icon
        self.log = logger
        self.sender = sender

    def _on_click(self) -> None:
        self.bus.publish(FOCUS_WINDOW)

    def notify_new_order(self) -> bool:
        try:
            self.sender(
                NEW_ORDER_TITLE,
                NEW_ORDER_BODY,
                self.icon,
                on_click=self._on_click,
                ui_logger=self.log,
            )
            return True
        except Exception as exc:
            self.log(f"New order notification failed: {exc}")
            return False
