import unittest
from types import SimpleNamespace

import tray
from resources import notification_icon, tray_icon_name, tray_icon_path
from tray import stop_tray_icon, update_tray_title


class TestTray(unittest.TestCase):
    def test_stop_tray_icon_noop(self):
        # Should not raise
        stop_tray_icon(None)

    def test_update_title_without_icon(self):
        update_tray_title(None, "ShopTray", "  10")

    def test_update_title_appends_revenue(self):
        if not tray.tray_supported():
            self.skipTest("pystray not available")
        icon = SimpleNamespace(title="ShopTray")
        update_tray_title(icon, "ShopTray", "  99.5")
        self.assertEqual(icon.title, "ShopTray  99.5")
        update_tray_title(icon, "ShopTray", "")
        self.assertEqual(icon.title, "ShopTray")

    def test_fallback_image(self):
        if tray.Image is None:
            self.skipTest("Pillow not available")
        img = tray.make_tray_image(None)
        self.assertEqual(img.size, (32, 32))
        self.assertEqual(img.getpixel((16, 20)), (255, 99, 71, 255))

    def test_icon_names(self):
        self.assertEqual(tray_icon_name("win32"), "icon.ico")
        self.assertEqual(tray_icon_name("darwin", 2.0), "iconTemplate@2x.png")
        self.assertEqual(notification_icon("darwin").suffix, ".icns")
        self.assertEqual(notification_icon("win32").suffix, ".ico")
        self.assertEqual(tray_icon_path("win32").parent.name, "windows")
        self.assertEqual(tray_icon_path("darwin").name, "iconTemplate.png")


if __name__ == "__main__":
    unittest.main()
