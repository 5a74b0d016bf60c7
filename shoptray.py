from __future__ import annotations

import json
import socket
import sys
import threading
from pathlib import Path
from typing import Callable

import tkinter as tk

import events
from app_core import APP_DIR, APP_LOG_FILE, APP_NAME, APP_VERSION, CONFIG_FILE
from config import SettingsStore, api_key_is_set, load_config
from controller import AppController
from logger import UILogger, report_error
from resources import notification_icon, tray_icon_path
from tray import create_tray_icon, stop_tray_icon, update_tray_title
from ui_window import TrayWindow

SINGLE_INSTANCE_HOST = "127.0.0.1"
SINGLE_INSTANCE_PORT = 47661
FOCUS_TOKEN = b"SHOPTRAY_SHOW_MAIN"


def _send_focus_signal(port: int = SINGLE_INSTANCE_PORT) -> bool:
    try:
        with socket.create_connection((SINGLE_INSTANCE_HOST, port), timeout=0.35) as conn:
            conn.sendall(FOCUS_TOKEN)
        return True
    except OSError:
        return False


def _start_focus_listener(on_focus: Callable[[], None], port: int = SINGLE_INSTANCE_PORT) -> socket.socket | None:
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        server.bind((SINGLE_INSTANCE_HOST, port))
        server.listen(5)
        server.settimeout(0.5)
    except OSError:
        server.close()
        return None

    def _run() -> None:
        while True:
            try:
                conn, _addr = server.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            with conn:
                try:
                    payload = conn.recv(128)
                except OSError:
                    continue
                if payload and payload.startswith(FOCUS_TOKEN):
                    on_focus()

    threading.Thread(target=_run, daemon=True, name="single-instance-focus-listener").start()
    return server


def diagnostics_summary(config_path: Path | None = None) -> dict:
    path = Path(config_path or CONFIG_FILE)
    try:
        cfg = load_config(path, write_back=False)
    except Exception as exc:
        cfg = {"error": f"Failed to load config: {exc}"}
    loaded = isinstance(cfg, dict) and "error" not in cfg
    return {
        "app_dir": APP_DIR,
        "version": APP_VERSION,
        "config_file": str(path),
        "config_loaded": loaded,
        "config_version": cfg.get("version") if loaded else None,
        "api_key_set": api_key_is_set(cfg.get("api_key")) if loaded else False,
        "notifications_enabled": cfg.get("notifications_enabled") if loaded else None,
        "stats_interval_seconds": cfg.get("stats_interval_seconds") if loaded else None,
        "orders_interval_seconds": cfg.get("orders_interval_seconds") if loaded else None,
    }


def main() -> None:
    if "--diagnostics" in sys.argv:
        print(json.dumps(diagnostics_summary(), indent=2, ensure_ascii=False))
        return

    # Single instance: a second launch only brings the running window forward.
    if _send_focus_signal():
        return

    dev = "--dev" in sys.argv
    logger = UILogger(file_path=APP_LOG_FILE, also_stdout=dev, min_level="DEBUG" if dev else "INFO")
    bus = events.EventBus(logger=logger.error)
    if dev:
        bus.subscribe_all(lambda name, payload: logger.debug(f"event {name}: {payload!r}"))

    store = SettingsStore(Path(CONFIG_FILE), logger=logger)
    root = tk.Tk()
    root.withdraw()
    tray_ref: dict[str, object] = {}

    def _quit() -> None:
        stop_tray_icon(tray_ref.get("icon"))
        root.after(0, root.destroy)

    controller = AppController(
        store,
        bus,
        logger,
        icon=notification_icon(),
        quit_fn=_quit,
    )
    window = TrayWindow(
        root,
        controller,
        bus,
        logger,
        geometry=str(store.get("window_geometry") or "450x630"),
        on_tray_title=lambda text: update_tray_title(tray_ref.get("icon"), APP_NAME, text),
    )

    tray_ref["icon"] = create_tray_icon(
        APP_NAME,
        APP_NAME,
        on_open=lambda: bus.publish(events.TOGGLE_WINDOW),
        on_settings=lambda: bus.publish(events.SHOW_SETTINGS),
        on_quit=controller.close_app,
        icon_path=tray_icon_path(),
    )
    if tray_ref["icon"] is None:
        # Without a tray the window is the only way in, so keep it visible.
        window.hide_on_blur = False
        root.after(0, window.focus)

    focus_listener = _start_focus_listener(lambda: bus.publish(events.FOCUS_WINDOW))
    controller.start()
    try:
        root.mainloop()
    except Exception as exc:
        report_error(exc, "mainloop")
        raise
    finally:
        controller.scheduler.clear()
        stop_tray_icon(tray_ref.get("icon"))
        if focus_listener is not None:
            focus_listener.close()


if __name__ == "__main__":
    main()
