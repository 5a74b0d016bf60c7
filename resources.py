from __future__ import annotations

import sys
from pathlib import Path


def asset_path(*parts: str) -> Path:
    """Find a bundled asset inside a PyInstaller bundle, beside the code or under the cwd."""
    bundle = Path(getattr(sys, "_MEIPASS", Path(__file__).resolve().parent))
    for root in (bundle, Path.cwd()):
        candidate = root.joinpath("assets", *parts)
        if candidate.exists():
            return candidate
    return bundle.joinpath("assets", *parts)


def _icon_folder(platform: str) -> str:
    return "windows" if platform.startswith("win") else "mac"


def notification_icon(platform: str | None = None) -> Path:
    """Platform icon used for toasts (.icns on macOS, .ico elsewhere)."""
    platform = platform or sys.platform
    if platform == "darwin":
        return asset_path("icons", "mac", "icon.icns")
    return asset_path("icons", "windows", "icon.ico")


def tray_icon_name(platform: str | None = None, scale_factor: float = 1.0) -> str:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return "icon.ico"
    return "iconTemplate@2x.png" if scale_factor > 1 else "iconTemplate.png"


def tray_icon_path(platform: str | None = None, scale_factor: float = 1.0) -> Path:
    platform = platform or sys.platform
    return asset_path("icons", _icon_folder(platform), tray_icon_name(platform, scale_factor))
