from __future__ import annotations

import json
import os
import traceback
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}
MAX_LOG_BYTES = 1_000_000


def _logs_dir() -> Path:
    return Path(os.getenv("APPDATA", os.path.expanduser("~"))) / "ShopTray" / "logs"


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _append_line(path: Path, line: str, max_bytes: int = MAX_LOG_BYTES) -> None:
    """Append one line, rolling the file over to `<name>.1` once it outgrows max_bytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if max_bytes and path.exists() and path.stat().st_size >= max_bytes:
        os.replace(path, path.with_name(path.name + ".1"))
    with path.open("a", encoding="utf-8") as fh:
        fh.write(line + "\n")


class UILogger:
    """
    Callable app logger. Lines go to an optional sink (the window's log
    view in --dev mode), a rolling log file and stdout.
    """

    def __init__(
        self,
        console_fn: Optional[Callable[[str], None]] = None,
        file_path: Optional[Path] = None,
        also_stdout: bool = True,
        min_level: str = "INFO",
    ) -> None:
        self.console_fn = console_fn
        self.file_path = Path(file_path) if file_path else None
        self.also_stdout = also_stdout
        self.min_level = LEVELS.get(min_level.upper(), LEVELS["INFO"])

    def _emit(self, level: str, msg: str) -> None:
        if LEVELS[level] < self.min_level:
            return
        line = f"[{_timestamp()}] [{level}] {msg}"
        sinks = []
        if self.console_fn:
            sinks.append(self.console_fn)
        if self.file_path:
            sinks.append(lambda text: _append_line(self.file_path, text))
        if self.also_stdout:
            sinks.append(print)
        for sink in sinks:
            try:
                sink(line)
            except Exception:
                # Logging must never take the tray down.
                pass

    def debug(self, msg: str) -> None:
        self._emit("DEBUG", msg)

    def info(self, msg: str) -> None:
        self._emit("INFO", msg)

    def warn(self, msg: str) -> None:
        self._emit("WARN", msg)

    def error(self, msg: str) -> None:
        self._emit("ERROR", msg)

    def __call__(self, msg: str) -> None:
        self.info(msg)


def log_event(event: str, detail: dict | None = None, file_name: str = "app.log") -> None:
    """Append a JSON line {ts, event, detail} to a file under the logs dir."""
    record = {"ts": _timestamp(), "event": event, "detail": detail or {}}
    line = json.dumps(record, ensure_ascii=False, default=str)
    try:
        _append_line(_logs_dir() / file_name, line)
    except OSError:
        print(line)


def report_error(exc: BaseException, context: str = "", extra: dict | None = None) -> None:
    """Record an exception in errors.log."""
    detail = {
        "context": context,
        "type": type(exc).__name__,
        "message": str(exc),
        "trace": "".join(traceback.format_exception_only(type(exc), exc)).strip(),
    }
    detail.update(extra or {})
    log_event("error", detail, file_name="errors.log")
