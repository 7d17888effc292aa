import tempfile
import unittest
from pathlib import Path

from misub.core.kv_store import KV_KEY_SETTINGS, MemoryKVStore, SqliteKVStore
from misub.core.settings_manager import SettingsManager


class TestSettingsManager(unittest.TestCase):
    def test_defaults_when_nothing_stored(self):
        merged = SettingsManager.merge(None)
        self.assertEqual(merged["mytoken"], "auto")
        self.assertEqual(merged["profileToken"], "profiles")
        self.assertEqual(merged["FileName"], "MiSub")

    def test_stored_values_override_defaults(self):
        merged = SettingsManager.merge({"mytoken": "abc123", "extra": 1})
        self.assertEqual(merged["mytoken"], "abc123")
        self.assertEqual(merged["extra"], 1)
        self.assertTrue(merged["prependSubName"])

    def test_legacy_keys_are_migrated(self):
        merged = SettingsManager.merge({"subconverter": "https://old.example/", "filename": "Legacy"})
        self.assertEqual(merged["subConverter"], "old.example")
        self.assertEqual(merged["FileName"], "Legacy")
        self.assertNotIn("subconverter", merged)

    def test_current_key_beats_legacy(self):
        merged = SettingsManager.merge({"token": "old", "mytoken": "new"})
        self.assertEqual(merged["mytoken"], "new")

    def test_non_dict_is_ignored(self):
        self.assertEqual(SettingsManager.merge(["x"]), SettingsManager.DEFAULT_SETTINGS)


class TestKVStores(unittest.TestCase):
    def test_sqlite_round_trip(self):
        with tempfile.TemporaryDirectory() as td:
            store = SqliteKVStore(Path(td))
            self.assertIsNone(store.get(KV_KEY_SETTINGS))
            store.put(KV_KEY_SETTINGS, {"FileName": "订阅", "mytoken": "abc"})
            store.put(KV_KEY_SETTINGS, {"FileName": "订阅", "mytoken": "xyz"})
            self.assertEqual(store.get(KV_KEY_SETTINGS), {"FileName": "订阅", "mytoken": "xyz"})
            self.assertTrue(store.db_path.exists())
            store.close()

    def test_memory_store_returns_copies(self):
        store = MemoryKVStore({"k": [{"id": "a"}]})
        value = store.get("k")
        value.append({"id": "b"})
        self.assertEqual(store.get("k"), [{"id": "a"}])


if __name__ == "__main__":
    unittest.main()
