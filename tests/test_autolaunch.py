import plistlib
from types import SimpleNamespace

from autolaunch import RUN_KEY, AutoLaunch, sync_auto_launch


class FakeKey:
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeWinreg:
    HKEY_CURRENT_USER = "HKCU"
    KEY_READ = 1
    KEY_SET_VALUE = 2
    REG_SZ = 1

    def __init__(self):
        self.values = {}

    def OpenKey(self, root, path, reserved, access):
        assert path == RUN_KEY
        return FakeKey()

    def CreateKeyEx(self, root, path, reserved, access):
        return FakeKey()

    def QueryValueEx(self, key, name):
        if name not in self.values:
            raise FileNotFoundError(name)
        return self.values[name], self.REG_SZ

    def SetValueEx(self, key, name, reserved, kind, value):
        self.values[name] = value

    def DeleteValue(self, key, name):
        if name not in self.values:
            raise FileNotFoundError(name)
        del self.values[name]


def test_linux_autostart_entry(tmp_path, monkeypatch):
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    launcher = AutoLaunch("ShopTray", command=["/opt/shop tray/shoptray"], platform="linux", home=tmp_path)
    assert not launcher.is_enabled()
    launcher.enable()
    entry = tmp_path / ".config" / "autostart" / "shoptray.desktop"
    assert entry.exists()
    assert 'Exec="/opt/shop tray/shoptray"' in entry.read_text(encoding="utf-8")
    launcher.disable()
    assert not launcher.is_enabled()


def test_macos_launch_agent(tmp_path):
    launcher = AutoLaunch("ShopTray", command=["/Applications/ShopTray.app/Contents/MacOS/ShopTray"], platform="darwin", home=tmp_path)
    launcher.enable()
    plist = tmp_path / "Library" / "LaunchAgents" / "io.shoptray.app.plist"
    with plist.open("rb") as fh:
        data = plistlib.load(fh)
    assert data["RunAtLoad"] is True
    assert data["Label"] == "io.shoptray.app"
    launcher.disable()
    assert not plist.exists()


def test_windows_run_key():
    reg = FakeWinreg()
    launcher = AutoLaunch("ShopTray", command=["C:\\Program Files\\ShopTray\\ShopTray.exe"], platform="win32", winreg_module=reg)
    assert sync_auto_launch(launcher, True) is True
    assert reg.values["ShopTray"] == '"C:\\Program Files\\ShopTray\\ShopTray.exe"'
    assert sync_auto_launch(launcher, False) is False
    assert reg.values == {}


def test_sync_failure_is_logged():
    logs = []

    def broken():
        raise PermissionError("denied")

    launcher = SimpleNamespace(is_enabled=broken)
    assert sync_auto_launch(launcher, True, logs.append) is False
    assert "denied" in logs[0]
