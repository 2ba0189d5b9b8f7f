from __future__ import annotations

import json

from statspace.cache import CacheEntry, DataCache


def test_cache_roundtrip(tmp_path):
    cache = DataCache(str(tmp_path), clock=lambda: 1000.0)
    cache.set("key", {"a": 1})
    assert cache.get("key") == CacheEntry(value={"a": 1}, stored_at=1000.0)


def test_cache_file_name_is_digest_of_key(tmp_path):
    cache = DataCache(str(tmp_path))
    cache.set('{"entity":"محمد صلاح"}', [1, 2])
    (path,) = tmp_path.glob("*.json")
    assert len(path.stem) == 40
    assert json.loads(path.read_text(encoding="utf-8"))["key"] == '{"entity":"محمد صلاح"}'


def test_missing_or_corrupt_entries_are_misses(tmp_path):
    cache = DataCache(str(tmp_path))
    assert cache.get("absent") is None

    cache.set("key", {"a": 1})
    (path,) = tmp_path.glob("*.json")
    path.write_text("{not json", encoding="utf-8")
    assert cache.get("key") is None

    path.write_text(json.dumps({"key": "other", "stored_at": 1, "value": 2}), encoding="utf-8")
    assert cache.get("key") is None


def test_delete_and_clear(tmp_path):
    cache = DataCache(str(tmp_path))
    cache.set("one", 1)
    cache.set("two", 2)
    cache.delete("one")
    cache.delete("never-written")
    assert cache.get("one") is None
    assert cache.get("two").value == 2
    cache.clear()
    assert list(tmp_path.glob("*.json")) == []
