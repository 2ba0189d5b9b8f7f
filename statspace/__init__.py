"""
Statspace player and goalkeeper statistics package.
"""

from .cache import DataCache
from .config import EngineSettings, load_competition_priority
from .exceptions import SchemaError, StatsEngineError, UnsupportedDimensionError
from .models import (
    ActionEvent,
    ActionKind,
    EventTables,
    GoalkeeperAppearance,
    GoalkeeperStats,
    KeeperRole,
    LineupAppearance,
    Match,
    StatVector,
)
from .services.stats_engine import StatsEngine

__all__ = [
    "ActionEvent",
    "ActionKind",
    "DataCache",
    "EngineSettings",
    "EventTables",
    "GoalkeeperAppearance",
    "GoalkeeperStats",
    "KeeperRole",
    "LineupAppearance",
    "Match",
    "SchemaError",
    "StatVector",
    "StatsEngine",
    "StatsEngineError",
    "UnsupportedDimensionError",
    "load_competition_priority",
]
