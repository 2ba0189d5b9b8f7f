"""
Configuration helpers for the statistics engine.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

LOGGER = logging.getLogger(__name__)

_ENV_LOADED = False

DEFAULT_COMPETITION_CONFIG = Path("config/competitions.yml")


def _env_file_candidates() -> List[Path]:
    paths = []
    explicit = os.getenv("STATSPACE_ENV_FILE")
    if explicit:
        paths.append(Path(explicit))
    paths.append(Path.cwd() / ".env")
    paths.append(Path(__file__).resolve().parents[1] / ".env")
    return list(dict.fromkeys(paths))


def _read_env_file(path: Path) -> Dict[str, str]:
    """``KEY=value`` pairs of one dotenv file; comments and malformed lines are ignored."""
    values: Dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and key:
            values[key] = value.strip().strip("\"'")
    return values


def _ensure_env_loaded() -> None:
    """
    Copy settings from the dotenv files into ``os.environ``.

    Variables already in the environment win, then earlier files over later ones.
    """
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    for path in _env_file_candidates():
        if not path.is_file():
            continue
        try:
            values = _read_env_file(path)
        except OSError as exc:
            LOGGER.warning("Could not read env file %s: %s", path, exc)
            continue
        for key, value in values.items():
            os.environ.setdefault(key, value)
    _ENV_LOADED = True


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-integer value %r for %s", raw, name)
        return default


@dataclass(frozen=True)
class EngineSettings:
    """
    Runtime configuration for caching, batching and competition ordering.
    """

    cache_dir: str = ".cache/statspace"
    cache_ttl_seconds: int = 24 * 60 * 60
    memory_cache_max_items: int = 100
    schema_version: str = "1"
    batch_chunk_size: int = 25
    competition_config: str = str(DEFAULT_COMPETITION_CONFIG)

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """
        Construct settings using environment variables with sensible defaults.
        """
        _ensure_env_loaded()
        return cls(
            cache_dir=os.getenv("STATSPACE_CACHE_DIR", ".cache/statspace"),
            cache_ttl_seconds=_env_int("STATSPACE_CACHE_TTL", 24 * 60 * 60),
            memory_cache_max_items=_env_int("STATSPACE_MEMORY_CACHE_ITEMS", 100),
            schema_version=os.getenv("STATSPACE_SCHEMA_VERSION", "1"),
            batch_chunk_size=max(1, _env_int("STATSPACE_BATCH_CHUNK_SIZE", 25)),
            competition_config=os.getenv(
                "STATSPACE_COMPETITION_CONFIG", str(DEFAULT_COMPETITION_CONFIG)
            ),
        )


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_competition_priority(path: Optional[Path] = None) -> Tuple[str, ...]:
    """
    Read the ordered competition priority list used when grouping by competition.

    The YAML file holds a single ``competition_priority`` list; ranked
    competitions come first in list order. A missing file means no ranking.
    """
    config_path = Path(path) if path is not None else DEFAULT_COMPETITION_CONFIG
    if not config_path.exists():
        LOGGER.debug("No competition priority config at %s", config_path)
        return ()
    raw = _load_yaml(config_path)
    entries = raw.get("competition_priority", []) or []
    return tuple(str(item).strip() for item in entries if str(item).strip())
