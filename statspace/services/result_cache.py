"""
Two-tier memoisation of computed statistics.

Results are keyed by entity, canonical filter signature and schema version.
Lookups try a bounded in-memory LRU first and the persistent
:class:`~statspace.cache.DataCache` second; entries older than the TTL are
treated as misses on either tier. Bumping the schema version changes every
key, so older entries are never read again.
"""
from __future__ import annotations

import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from ..analytics.filters import FilterSignature
from ..analytics.goalkeepers import ScorerRecord
from ..cache import DataCache
from ..models import GoalkeeperStats, StatVector

LOGGER = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class ResultKey:
    entity: str
    signature: FilterSignature
    schema_version: str = "1"

    def token(self) -> str:
        payload = {
            "entity": self.entity,
            "signature": self.signature.token(),
            "schema": self.schema_version,
        }
        return json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def encode_result(value: Any) -> Dict[str, Any]:
    """Tag a computed result with its type so it can be stored as JSON."""
    if isinstance(value, StatVector):
        return {"type": "stat_vector", "data": value.to_dict()}
    if isinstance(value, GoalkeeperStats):
        return {"type": "goalkeeper_stats", "data": value.to_dict()}
    if isinstance(value, list):
        if value and all(isinstance(item, ScorerRecord) for item in value):
            return {"type": "scorers", "data": [item.to_dict() for item in value]}
        kind = "grouped_goalkeeper" if value and isinstance(value[0][1], GoalkeeperStats) else "grouped"
        return {"type": kind, "data": [[label, stats.to_dict()] for label, stats in value]}
    raise TypeError(f"Cannot cache results of type {type(value).__name__}")


def decode_result(payload: Dict[str, Any]) -> Any:
    kind = payload.get("type")
    data = payload.get("data")
    if kind == "stat_vector":
        return StatVector.from_dict(data)
    if kind == "goalkeeper_stats":
        return GoalkeeperStats.from_dict(data)
    if kind == "grouped":
        return [(str(label), StatVector.from_dict(stats)) for label, stats in data]
    if kind == "grouped_goalkeeper":
        return [(str(label), GoalkeeperStats.from_dict(stats)) for label, stats in data]
    if kind == "scorers":
        return [ScorerRecord.from_dict(item) for item in data]
    raise ValueError(f"Unknown cached result type {kind!r}")


class ResultCache:
    """
    Memoise stat computations in memory and, optionally, on disk.
    """

    def __init__(
        self,
        persistent: Optional[DataCache] = None,
        *,
        ttl_seconds: int = 24 * 60 * 60,
        max_memory_items: int = 100,
        schema_version: str = "1",
        clock: Callable[[], float] = time.time,
    ):
        self.persistent = persistent
        self.ttl_seconds = ttl_seconds
        self.max_memory_items = max(1, max_memory_items)
        self.schema_version = schema_version
        self._clock = clock
        self._memory: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()

    def key_for(self, entity: str, signature: FilterSignature) -> ResultKey:
        return ResultKey(entity=entity, signature=signature, schema_version=self.schema_version)

    def _fresh(self, stored_at: float) -> bool:
        return self._clock() - stored_at < self.ttl_seconds

    def _remember(self, token: str, value: Any, stored_at: float) -> None:
        # Lists are held as tuples; every hit hands out a fresh list.
        if isinstance(value, list):
            value = tuple(value)
        self._memory[token] = (value, stored_at)
        self._memory.move_to_end(token)
        while len(self._memory) > self.max_memory_items:
            self._memory.popitem(last=False)

    def get(self, entity: str, signature: FilterSignature, default: Any = None) -> Any:
        """
        Return the cached result, or ``default`` on a miss or an expired entry.
        """
        token = self.key_for(entity, signature).token()
        cached = self._memory.get(token)
        if cached is not None:
            value, stored_at = cached
            if self._fresh(stored_at):
                self._memory.move_to_end(token)
                LOGGER.debug("Memory cache hit for %s", entity)
                return list(value) if isinstance(value, tuple) else value
            del self._memory[token]

        if self.persistent is None:
            return default
        entry = self.persistent.get(token)
        if entry is None:
            return default
        if not self._fresh(entry.stored_at):
            LOGGER.debug("Discarding expired cache entry for %s", entity)
            self.persistent.delete(token)
            return default
        try:
            value = decode_result(entry.value)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable cache entry for %s: %s", entity, exc)
            return default
        LOGGER.debug("Persistent cache hit for %s", entity)
        self._remember(token, value, entry.stored_at)
        return value

    def set(self, entity: str, signature: FilterSignature, value: Any) -> None:
        token = self.key_for(entity, signature).token()
        self._remember(token, value, self._clock())
        if self.persistent is not None:
            self.persistent.set(token, encode_result(value))

    def get_or_compute(self, entity: str, signature: FilterSignature, compute: Callable[[], Any]) -> Any:
        cached = self.get(entity, signature, _MISSING)
        if cached is not _MISSING:
            return cached
        value = compute()
        self.set(entity, signature, value)
        return value

    def clear(self) -> None:
        """
        Drop every entry from both tiers.
        """
        self._memory.clear()
        if self.persistent is not None:
            self.persistent.clear()

    def __len__(self) -> int:
        return len(self._memory)
