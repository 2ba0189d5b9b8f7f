"""
Simple disk backed key/value store for computed statistics.
"""
from __future__ import annotations

import hashlib
import json
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float


class DataCache:
    """
    Persist JSON serialisable payloads on disk together with their write time.

    Expiry is the caller's concern: ``get`` hands back the stored timestamp and
    the caller decides whether the entry is still fresh.
    """

    def __init__(self, cache_dir: str, *, clock: Callable[[], float] = time.time):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    def _path_for_key(self, key: str) -> Path:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.json"

    def get(self, key: str) -> Optional[CacheEntry]:
        """
        Retrieve the cached entry, or None when absent or unreadable.
        """
        path = self._path_for_key(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (json.JSONDecodeError, OSError):
            return None
        if not isinstance(payload, dict) or payload.get("key") != key:
            return None
        try:
            stored_at = float(payload["stored_at"])
        except (KeyError, TypeError, ValueError):
            return None
        return CacheEntry(value=payload.get("value"), stored_at=stored_at)

    def set(self, key: str, value: Any) -> None:
        """
        Store value in the cache.
        """
        path = self._path_for_key(key)
        tmp_path = Path(f"{path}.{os.getpid()}.tmp")
        payload = {"key": key, "stored_at": self._clock(), "value": value}
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False)
        tmp_path.replace(path)

    def delete(self, key: str) -> None:
        path = self._path_for_key(key)
        if path.exists():
            path.unlink()

    def clear(self) -> None:
        """
        Remove all cached entries.
        """
        for file in self.cache_dir.glob("*.json"):
            file.unlink()
