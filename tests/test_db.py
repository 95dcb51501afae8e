"""Tests for the SQLAlchemy key-value store."""

from db import KeyValueStore


class TestKeyValueStore:

    def test_missing_key(self, kv):
        assert kv.get("trades") is None

    def test_set_then_get(self, kv):
        assert kv.set("trades", "[]") == {"success": True}
        assert kv.get("trades") == "[]"

    def test_last_write_wins(self, kv):
        kv.set("userProfile", '{"name": "A"}')
        kv.set("userProfile", '{"name": "B"}')
        assert kv.get("userProfile") == '{"name": "B"}'

    def test_keys_are_independent(self, kv):
        kv.set("trades", "[1]")
        kv.set("userProfile", "{}")
        assert kv.get("trades") == "[1]"

    def test_survives_new_connection(self, kv):
        kv.set("trades", "[2]")
        other = KeyValueStore(kv.url)
        assert other.get("trades") == "[2]"
        other.dispose()

    def test_write_failure_reported(self, tmp_path):
        # table never created, so the insert fails
        kv = KeyValueStore(f"sqlite:///{tmp_path / 'empty.db'}")
        res = kv.set("trades", "[]")
        assert res["success"] is False
        assert res["error"]
        assert kv.get("trades") is None
        kv.dispose()
