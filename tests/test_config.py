import json
import tempfile
import unittest
from pathlib import Path

import config


class ConfigTests(unittest.TestCase):
    def test_load_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            cfg = config.load_config(path, write_back=False)
            self.assertEqual(cfg["api_key"], "")
            self.assertTrue(cfg["notifications_enabled"])
            self.assertTrue(cfg["auto_launch_enabled"])
            self.assertEqual(cfg["stats_interval_seconds"], 10.0)
            self.assertEqual(cfg["orders_interval_seconds"], 10.0)
            self.assertFalse(path.exists())

    def test_load_writes_defaults_when_missing(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            config.load_config(path)
            self.assertTrue(path.exists())
            data = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual(data["version"], config.SCHEMA_VERSION)

    def test_api_key_encrypted_on_disk(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            config.save_config(path, {"api_key": "sk_live_123"})
            data = json.loads(path.read_text(encoding="utf-8"))
            self.assertTrue(data["api_key"].startswith("enc:"))
            self.assertNotIn("sk_live_123", path.read_text(encoding="utf-8"))
            cfg = config.load_config(path, write_back=False)
            self.assertEqual(cfg["api_key"], "sk_live_123")

    def test_legacy_store_is_migrated(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(
                json.dumps({"apiKey": "legacy-key", "notificationsEnabled": False, "autoLaunch": False}),
                encoding="utf-8",
            )
            cfg = config.load_config(path)
            self.assertEqual(cfg["api_key"], "legacy-key")
            self.assertFalse(cfg["notifications_enabled"])
            self.assertFalse(cfg["auto_launch_enabled"])
            data = json.loads(path.read_text(encoding="utf-8"))
            self.assertNotIn("apiKey", data)
            self.assertEqual(data["version"], config.SCHEMA_VERSION)

    def test_invalid_values_fall_back(self):
        cfg = config._validate_config(
            {"stats_interval_seconds": "soon", "orders_interval_seconds": 0.1, "api_base_url": "https://api.test"}
        )
        self.assertEqual(cfg["stats_interval_seconds"], 10.0)
        self.assertEqual(cfg["orders_interval_seconds"], 1.0)
        self.assertEqual(cfg["api_base_url"], "https://api.test/")

    def test_blank_api_key_is_unset(self):
        self.assertFalse(config.api_key_is_set(""))
        self.assertFalse(config.api_key_is_set("   "))
        self.assertFalse(config.api_key_is_set(None))
        self.assertTrue(config.api_key_is_set("k"))


class SettingsStoreTests(unittest.TestCase):
    def test_setters_persist(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            store = config.SettingsStore(path)
            store.api_key = "abc"
            store.notifications_enabled = False
            store.auto_launch_enabled = False
            reloaded = config.SettingsStore(path)
            self.assertEqual(reloaded.api_key, "abc")
            self.assertFalse(reloaded.notifications_enabled)
            self.assertFalse(reloaded.auto_launch_enabled)

    def test_session_from_config(self):
        session = config.Session.from_config({"api_key": "abc", "orders_interval_seconds": 30})
        self.assertTrue(session.has_credential)
        self.assertEqual(session.orders_interval_seconds, 30.0)
        self.assertEqual(session.stats_interval_seconds, 10.0)
        self.assertFalse(config.Session.from_config({}).has_credential)


if __name__ == "__main__":
    unittest.main()
