from __future__ import annotations

import base64
import ctypes
import json
import os
import shutil
import threading
from ctypes import wintypes
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from app_core import DEFAULT_API_BASE_URL

SCHEMA_VERSION = 2
SECRET_KEYS = ["api_key"]
SECRET_PREFIX = "enc:"
DEFAULT_CONFIG = {
    "version": SCHEMA_VERSION,
    "api_key": "",
    "notifications_enabled": True,
    "auto_launch_enabled": True,
    "api_base_url": DEFAULT_API_BASE_URL,
    "stats_interval_seconds": 10.0,
    "orders_interval_seconds": 10.0,
    "stats_range_days": 7,
    "orders_page_size": 100,
    "request_timeout_seconds": 20.0,
    "window_geometry": "450x630",
}

# Keys written by the original Electron store (electron-store JSON).
_LEGACY_KEYS = {
    "apiKey": "api_key",
    "notificationsEnabled": "notifications_enabled",
    "autoLaunch": "auto_launch_enabled",
}

# key -> (type, lower bound); values below the bound are clamped to it.
_NUMERIC_KEYS = {
    "stats_interval_seconds": (float, 1.0),
    "orders_interval_seconds": (float, 1.0),
    "request_timeout_seconds": (float, 1.0),
    "stats_range_days": (int, 0),
    "orders_page_size": (int, 1),
}
_BOOL_KEYS = ("notifications_enabled", "auto_launch_enabled")
_TRUTHY = {"1", "true", "yes", "on"}


def _read_json(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _looks_like_legacy(raw: dict) -> bool:
    return "version" not in raw and any(key in raw for key in _LEGACY_KEYS)


def _migrate_legacy(raw: dict) -> dict:
    migrated = {new: raw[old] for old, new in _LEGACY_KEYS.items() if old in raw}
    for key in DEFAULT_CONFIG:
        if key in raw:
            migrated.setdefault(key, raw[key])
    return migrated


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    if isinstance(value, (bool, int, float)):
        return bool(value)
    return default


def _as_number(value: Any, kind: type, default, floor):
    try:
        number = kind(float(value))
    except (TypeError, ValueError):
        return default
    return max(number, floor)


def _validate_config(raw: dict) -> dict:
    """Return a complete config: defaults filled in, types coerced, bounds applied."""
    cfg = dict(DEFAULT_CONFIG)
    if not isinstance(raw, dict):
        return cfg
    cfg["api_key"] = str(raw.get("api_key") or "")
    for key in _BOOL_KEYS:
        cfg[key] = _as_bool(raw.get(key), DEFAULT_CONFIG[key])
    for key, (kind, floor) in _NUMERIC_KEYS.items():
        cfg[key] = _as_number(raw.get(key), kind, DEFAULT_CONFIG[key], floor)
    base_url = str(raw.get("api_base_url") or "").strip() or DEFAULT_API_BASE_URL
    cfg["api_base_url"] = base_url if base_url.endswith("/") else base_url + "/"
    cfg["window_geometry"] = str(raw.get("window_geometry") or "").strip() or DEFAULT_CONFIG["window_geometry"]
    return cfg


def load_config(path: Path, logger=None, write_back: bool = True) -> dict:
    """Read, decrypt and validate the config file.

    Legacy Electron stores and older schema versions are rewritten in the
    current format when write_back is set; a missing file is created.
    """
    raw = _read_json(path)
    legacy = _looks_like_legacy(raw)
    if legacy:
        raw = _migrate_legacy(raw)
    else:
        raw = {key: (decrypt_secret(value) if key in SECRET_KEYS else value) for key, value in raw.items()}

    prev_version = None if legacy else raw.get("version")
    cfg = _validate_config(raw)
    needs_migration = bool(raw) and (legacy or prev_version != SCHEMA_VERSION)
    if write_back and (needs_migration or not path.exists()):
        try:
            save_config(path, cfg)
        except OSError as exc:
            _log_migration(f"Config write failed: {exc}", logger=logger)
        else:
            if needs_migration:
                _log_migration(f"Config migrated v{prev_version or 'none'} -> v{SCHEMA_VERSION}", logger=logger)
    return cfg


def _atomic_write_json(path: Path, data: dict) -> None:
    """Write via a temp file and os.replace, keeping the previous file as .bak."""
    ensure_dir(path.parent)
    tmp = path.with_name(path.name + ".tmp")
    if path.exists():
        shutil.copy2(path, path.with_name(path.name + ".bak"))
    try:
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


def save_config(path: Path, data: dict) -> None:
    cfg = _validate_config(data or {})
    for key in SECRET_KEYS:
        cfg[key] = encrypt_secret(cfg[key])
    _atomic_write_json(path, cfg)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


class DATA_BLOB(ctypes.Structure):
    _fields_ = [("cbData", wintypes.DWORD), ("pbData", ctypes.POINTER(ctypes.c_byte))]


def _dpapi(func_name: str, data: bytes) -> bytes | None:
    """Run CryptProtectData/CryptUnprotectData for the current user. None off Windows."""
    if os.name != "nt":
        return None
    try:
        buffer = ctypes.create_string_buffer(data, len(data))
        blob_in = DATA_BLOB(len(data), ctypes.cast(buffer, ctypes.POINTER(ctypes.c_byte)))
        blob_out = DATA_BLOB()
        func = getattr(ctypes.windll.crypt32, func_name)
        if not func(ctypes.byref(blob_in), None, None, None, None, 0, ctypes.byref(blob_out)):
            return None
        try:
            return ctypes.string_at(blob_out.pbData, blob_out.cbData)
        finally:
            ctypes.windll.kernel32.LocalFree(blob_out.pbData)
    except (OSError, AttributeError, ValueError):
        return None


def encrypt_secret(value: str) -> str:
    """DPAPI-protect a secret on Windows; elsewhere it is only base64 obfuscated."""
    if not value:
        return value
    raw = value.encode("utf-8")
    payload = _dpapi("CryptProtectData", raw) or raw
    return SECRET_PREFIX + base64.b64encode(payload).decode("ascii")


def decrypt_secret(value: str) -> str:
    if not value or not isinstance(value, str) or not value.startswith(SECRET_PREFIX):
        return "" if value is None else str(value)
    try:
        payload = base64.b64decode(value[len(SECRET_PREFIX):].encode("ascii"))
    except ValueError:
        return value
    plain = _dpapi("CryptUnprotectData", payload) or payload
    try:
        return plain.decode("utf-8")
    except UnicodeDecodeError:
        return value


def _migration_log_path() -> Path:
    return Path(os.getenv("APPDATA", os.path.expanduser("~"))) / "ShopTray" / "data" / "config_migrations.log"


def _log_migration(message: str, logger=None) -> None:
    line = f"[{datetime.now().strftime('%Y-%m-%d %H:%M:%S')}] {message}"
    if logger:
        logger(line)
    try:
        path = _migration_log_path()
        ensure_dir(path.parent)
        with path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")
    except OSError:
        pass


def api_key_is_set(value: str | None) -> bool:
    return bool(value and str(value).strip())


class SettingsStore:
    """Credential and preference store backed by the JSON config file.

    Every setter persists immediately.
    """

    def __init__(self, path: Path, logger: Callable[[str], None] | None = None) -> None:
        self.path = Path(path)
        self.log = logger
        self._lock = threading.RLock()
        self._cfg: dict = load_config(self.path, logger=logger)

    def snapshot(self) -> dict:
        with self._lock:
            return dict(self._cfg)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._cfg.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._cfg = _validate_config(dict(self._cfg, **{key: value}))
            try:
                save_config(self.path, self._cfg)
            except OSError as exc:
                if self.log:
                    self.log(f"Config save failed: {exc}")

    @property
    def api_key(self) -> str:
        return str(self.get("api_key") or "")

    @api_key.setter
    def api_key(self, value: str) -> None:
        self.set("api_key", value or "")

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.get("notifications_enabled", True))

    @notifications_enabled.setter
    def notifications_enabled(self, value: bool) -> None:
        self.set("notifications_enabled", bool(value))

    @property
    def auto_launch_enabled(self) -> bool:
        return bool(self.get("auto_launch_enabled", True))

    @auto_launch_enabled.setter
    def auto_launch_enabled(self, value: bool) -> None:
        self.set("auto_launch_enabled", bool(value))


@dataclass(frozen=True)
class Session:
    """Immutable view of the settings one bootstrap runs with."""

    api_key: str
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout_seconds: float = 20.0
    stats_interval_seconds: float = 10.0
    orders_interval_seconds: float = 10.0
    stats_range_days: int = 7
    orders_page_size: int = 100

    @property
    def has_credential(self) -> bool:
        return api_key_is_set(self.api_key)

    @classmethod
    def from_config(cls, cfg: dict) -> "Session":
        cfg = _validate_config(cfg)
        return cls(
            api_key=cfg["api_key"],
            api_base_url=cfg["api_base_url"],
            request_timeout_seconds=cfg["request_timeout_seconds"],
            stats_interval_seconds=cfg["stats_interval_seconds"],
            orders_interval_seconds=cfg["orders_interval_seconds"],
            stats_range_days=cfg["stats_range_days"],
            orders_page_size=cfg["orders_page_size"],
        )
