from __future__ import annotations

import os
import plistlib
import sys
from pathlib import Path
from typing import Callable, Optional

RUN_KEY = r"Software\Microsoft\Windows\CurrentVersion\Run"


def launch_command() -> list[str]:
    """Command line that starts this app (frozen exe or script)."""
    if getattr(sys, "frozen", False):
        return [sys.executable]
    script = Path(__file__).resolve().parent / "shoptray.py"
    return [sys.executable, str(script)]


def _quote(arg: str) -> str:
    return f'"{arg}"' if " " in arg else arg


class AutoLaunch:
    """Per-user login item: HKCU Run key, LaunchAgent plist or XDG autostart entry."""

    def __init__(
        self,
        name: str,
        command: Optional[list[str]] = None,
        platform: Optional[str] = None,
        home: Optional[Path] = None,
        winreg_module=None,
    ) -> None:
        self.name = name
        self.command = command or launch_command()
        self.platform = platform or sys.platform
        self.home = Path(home) if home else Path.home()
        self._winreg = winreg_module

    def _registry(self):
        if self._winreg is None:
            import winreg  # type: ignore

            self._winreg = winreg
        return self._winreg

    @property
    def _label(self) -> str:
        return f"io.{self.name.lower()}.app"

    def _plist_path(self) -> Path:
        return self.home / "Library" / "LaunchAgents" / f"{self._label}.plist"

    def _desktop_path(self) -> Path:
        config_home = Path(os.getenv("XDG_CONFIG_HOME") or (self.home / ".config"))
        return config_home / "autostart" / f"{self.name.lower()}.desktop"

    def is_enabled(self) -> bool:
        if self.platform.startswith("win"):
            reg = self._registry()
            try:
                with reg.OpenKey(reg.HKEY_CURRENT_USER, RUN_KEY, 0, reg.KEY_READ) as key:
                    reg.QueryValueEx(key, self.name)
                    return True
            except OSError:
                return False
        if self.platform == "darwin":
            return self._plist_path().exists()
        return self._desktop_path().exists()

    def enable(self) -> None:
        if self.platform.startswith("win"):
            reg = self._registry()
            value = " ".join(_quote(arg) for arg in self.command)
            with reg.CreateKeyEx(reg.HKEY_CURRENT_USER, RUN_KEY, 0, reg.KEY_SET_VALUE) as key:
                reg.SetValueEx(key, self.name, 0, reg.REG_SZ, value)
            return
        if self.platform == "darwin":
            path = self._plist_path()
            path.parent.mkdir(parents=True, exist_ok=True)
            payload = {"Label": self._label, "ProgramArguments": list(self.command), "RunAtLoad": True}
            with path.open("wb") as fh:
                plistlib.dump(payload, fh)
            return
        path = self._desktop_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [
            "[Desktop Entry]",
            "Type=Application",
            f"Name={self.name}",
            f"Exec={' '.join(_quote(arg) for arg in self.command)}",
            "X-GNOME-Autostart-enabled=true",
        ]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    def disable(self) -> None:
        if self.platform.startswith("win"):
            reg = self._registry()
            try:
                with reg.OpenKey(reg.HKEY_CURRENT_USER, RUN_KEY, 0, reg.KEY_SET_VALUE) as key:
                    reg.DeleteValue(key, self.name)
            except OSError:
                pass
            return
        path = self._plist_path() if self.platform == "darwin" else self._desktop_path()
        try:
            path.unlink()
        except FileNotFoundError:
            pass


def sync_auto_launch(
    launcher: AutoLaunch, wanted: bool, log: Optional[Callable[[str], None]] = None
) -> bool:
    """Enable or disable the login item to match `wanted`. Returns the final state."""
    try:
        current = launcher.is_enabled()
        if wanted and not current:
            launcher.enable()
        elif not wanted and current:
            launcher.disable()
        return launcher.is_enabled()
    except Exception as exc:
        if log:
            try:
                log(f"Auto-launch update failed: {exc}")
            except Exception:
                pass
        return False
